"""
用户资料 ORM 模型
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import CHAR, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.connection import Base


class ProfileORM(Base):
    """用户资料表（由认证平台在注册时写入）"""
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, comment="用户ID")
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, comment="邮箱")
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, comment="姓名")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now, comment="创建时间")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now, comment="更新时间"
    )
