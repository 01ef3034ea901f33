"""
个人收藏与点评 ORM 模型
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import CHAR, JSON, DateTime, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.connection import Base


def new_id() -> str:
    return str(uuid.uuid4())


class SavedTripORM(Base):
    """收藏行程表"""
    __tablename__ = "saved_trips"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(CHAR(36), nullable=False)
    destination_name: Mapped[str] = mapped_column(String(200), nullable=False)
    destination_state: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    duration: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image_url: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    restaurants: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        UniqueConstraint("user_id", "destination_name", name="uq_saved_trip"),
    )


class ReviewORM(Base):
    """目的地点评表"""
    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(CHAR(36), nullable=False)
    destination_name: Mapped[str] = mapped_column(String(200), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review_text: Mapped[str] = mapped_column(Text, nullable=False)
    tips: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    photos: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    __table_args__ = (
        Index("idx_reviews_destination", "destination_name"),
    )
