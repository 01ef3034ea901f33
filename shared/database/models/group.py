"""
协作行程域 SQLAlchemy ORM 模型
"""

import uuid
from datetime import date, datetime, time
from typing import Optional

from sqlalchemy import (
    CHAR, Date, DateTime, Enum as SQLEnum, Float, ForeignKey, Index, String, Text, Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.connection import Base
from shared.models.group import InvitationStatus, MemberRole, TransportMode


def new_id() -> str:
    return str(uuid.uuid4())


def enum_column(enum_cls):
    """以枚举值（而非名称）存储的字符串列"""
    return SQLEnum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=20,
    )


def group_fk():
    return ForeignKey("trip_groups.id", ondelete="CASCADE")


# ==================== 行程小组 ====================
class TripGroupORM(Base):
    """行程小组表"""
    __tablename__ = "trip_groups"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=new_id, comment="小组ID")
    name: Mapped[str] = mapped_column(String(200), nullable=False, comment="小组名称")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="小组描述")
    destination_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, comment="目的地")
    total_budget: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="总预算")
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="开始日期")
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="结束日期")
    created_by: Mapped[str] = mapped_column(CHAR(36), nullable=False, comment="创建者ID")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now, comment="创建时间")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now, comment="更新时间"
    )

    __table_args__ = (
        Index("idx_trip_groups_created_by", "created_by"),
    )


class GroupMemberORM(Base):
    """小组成员表"""
    __tablename__ = "trip_group_members"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=new_id)
    group_id: Mapped[str] = mapped_column(CHAR(36), group_fk(), nullable=False, comment="小组ID")
    user_id: Mapped[str] = mapped_column(CHAR(36), nullable=False, comment="用户ID")
    role: Mapped[MemberRole] = mapped_column(
        enum_column(MemberRole), nullable=False, default=MemberRole.MEMBER, comment="角色"
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now, comment="加入时间")

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_member"),
        Index("idx_group_members_user_id", "user_id"),
    )


class InvitationORM(Base):
    """小组邀请表"""
    __tablename__ = "trip_invitations"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=new_id)
    group_id: Mapped[str] = mapped_column(CHAR(36), group_fk(), nullable=False, comment="小组ID")
    inviter_id: Mapped[str] = mapped_column(CHAR(36), nullable=False, comment="邀请人ID")
    invitee_email: Mapped[str] = mapped_column(String(255), nullable=False, comment="被邀请人邮箱")
    invitee_id: Mapped[Optional[str]] = mapped_column(CHAR(36), nullable=True, comment="被邀请人ID")
    status: Mapped[InvitationStatus] = mapped_column(
        enum_column(InvitationStatus), nullable=False, default=InvitationStatus.PENDING, comment="状态"
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    __table_args__ = (
        UniqueConstraint("group_id", "invitee_email", name="uq_group_invitee"),
        Index("idx_invitations_invitee_email", "invitee_email"),
    )


# ==================== 投票与分摊 ====================
class DestinationVoteORM(Base):
    """目的地投票表"""
    __tablename__ = "destination_votes"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=new_id)
    group_id: Mapped[str] = mapped_column(CHAR(36), group_fk(), nullable=False)
    user_id: Mapped[str] = mapped_column(CHAR(36), nullable=False)
    destination_name: Mapped[str] = mapped_column(String(200), nullable=False, comment="目的地名称")
    destination_state: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, comment="省/国家")
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="预估费用")
    duration: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", "destination_name", name="uq_vote_per_destination"),
    )


class BudgetSplitORM(Base):
    """预算分摊表"""
    __tablename__ = "budget_splits"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=new_id)
    group_id: Mapped[str] = mapped_column(CHAR(36), group_fk(), nullable=False)
    user_id: Mapped[str] = mapped_column(CHAR(36), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False, comment="应付金额")
    paid_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True, default=0.0, comment="已付金额")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_budget_split_member"),
    )


# ==================== 聊天、行程、交通 ====================
class GroupMessageORM(Base):
    """小组消息表（只追加）"""
    __tablename__ = "group_messages"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=new_id)
    group_id: Mapped[str] = mapped_column(CHAR(36), group_fk(), nullable=False)
    user_id: Mapped[str] = mapped_column(CHAR(36), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        Index("idx_group_messages_group_created", "group_id", "created_at"),
    )


class ItineraryItemORM(Base):
    """行程活动表"""
    __tablename__ = "itinerary_items"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=new_id)
    group_id: Mapped[str] = mapped_column(CHAR(36), group_fk(), nullable=False)
    user_id: Mapped[str] = mapped_column(CHAR(36), nullable=False)
    day_date: Mapped[date] = mapped_column(Date, nullable=False, comment="日期")
    start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    __table_args__ = (
        Index("idx_itinerary_group_day", "group_id", "day_date"),
    )


class TransportBookingORM(Base):
    """交通预订表"""
    __tablename__ = "transport_bookings"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=new_id)
    group_id: Mapped[str] = mapped_column(CHAR(36), group_fk(), nullable=False)
    user_id: Mapped[str] = mapped_column(CHAR(36), nullable=False)
    transport_type: Mapped[TransportMode] = mapped_column(enum_column(TransportMode), nullable=False)
    from_location: Mapped[str] = mapped_column(String(200), nullable=False)
    to_location: Mapped[str] = mapped_column(String(200), nullable=False)
    departure_date: Mapped[date] = mapped_column(Date, nullable=False)
    return_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    estimated_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )
