"""
协作行程数据模型
定义行程小组、成员、投票、聊天、行程安排、交通预订、预算分摊和邀请
"""

from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional

from pydantic import EmailStr, Field, computed_field, field_validator

from .common import BaseModel


class MemberRole(str, Enum):
    """成员角色"""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


# 可以管理小组（邀请、修改、移除成员）的角色
MANAGER_ROLES = frozenset({MemberRole.OWNER.value, MemberRole.ADMIN.value})


class InvitationStatus(str, Enum):
    """邀请状态"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class TransportMode(str, Enum):
    """交通方式"""
    FLIGHT = "flight"
    TRAIN = "train"
    BUS = "bus"
    CAB = "cab"


class ProfileSummary(BaseModel):
    """用于展示“谁做了什么”的用户资料"""
    user_id: str
    email: str = ""
    display_name: str


class GroupRow(BaseModel):
    """按小组分区的数据行"""
    id: str
    group_id: str
    user_id: str
    profile: Optional[ProfileSummary] = None


# ==================== 行程小组 ====================
class TripGroupCreate(BaseModel):
    """创建行程小组"""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    destination_name: Optional[str] = None
    total_budget: Optional[float] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class TripGroupUpdate(BaseModel):
    """修改行程小组"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    destination_name: Optional[str] = None
    total_budget: Optional[float] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class TripGroup(BaseModel):
    """行程小组"""
    id: str
    name: str
    description: Optional[str] = None
    destination_name: Optional[str] = None
    total_budget: Optional[float] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class GroupOverview(TripGroup):
    """小组列表项（含成员数和当前用户角色）"""
    member_count: int = 0
    user_role: Optional[MemberRole] = None


# ==================== 成员 ====================
class GroupMember(GroupRow):
    """小组成员"""
    role: MemberRole = MemberRole.MEMBER
    joined_at: datetime


# ==================== 目的地投票 ====================
class VoteCreate(BaseModel):
    """提议目的地（同时投出第一票）"""
    destination_name: str = Field(..., min_length=1, max_length=200)
    destination_state: Optional[str] = None
    category: Optional[str] = None
    cost: Optional[float] = Field(None, ge=0)
    duration: Optional[str] = None

    @field_validator("destination_name")
    @classmethod
    def strip_destination(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("destination_name must not be blank")
        return v


class DestinationVote(GroupRow):
    """目的地投票"""
    destination_name: str
    destination_state: Optional[str] = None
    category: Optional[str] = None
    cost: Optional[float] = None
    duration: Optional[str] = None
    created_at: datetime


# ==================== 预算分摊 ====================
class BudgetSplit(GroupRow):
    """成员预算分摊"""
    amount: float
    paid_amount: float = 0.0

    @field_validator("paid_amount", mode="before")
    @classmethod
    def default_paid(cls, v):
        return 0.0 if v is None else v

    @computed_field
    @property
    def remaining(self) -> float:
        return self.amount - self.paid_amount


class PaymentUpdate(BaseModel):
    """记录付款；不传金额表示付清"""
    paid_amount: Optional[float] = Field(None, ge=0)


# ==================== 小组聊天 ====================
class MessageCreate(BaseModel):
    """发送消息"""
    message: str = Field(..., max_length=4000)

    @field_validator("message")
    @classmethod
    def require_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message cannot be empty")
        return v


class GroupMessage(GroupRow):
    """小组消息"""
    message: str
    created_at: datetime


# ==================== 行程安排 ====================
class ItineraryItemCreate(BaseModel):
    """新增行程活动"""
    day_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None


class ItineraryItem(GroupRow):
    """行程活动"""
    day_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None


class ItineraryDay(BaseModel):
    """按日期分组的行程"""
    day_date: date
    items: List[ItineraryItem] = Field(default_factory=list)


# ==================== 交通预订 ====================
class TransportBookingCreate(BaseModel):
    """新增交通预订"""
    transport_type: TransportMode = TransportMode.FLIGHT
    from_location: str = Field(..., min_length=1)
    to_location: str = Field(..., min_length=1)
    departure_date: date
    return_date: Optional[date] = None
    estimated_price: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class TransportBooking(GroupRow):
    """交通预订"""
    transport_type: TransportMode
    from_location: str
    to_location: str
    departure_date: date
    return_date: Optional[date] = None
    estimated_price: Optional[float] = None
    notes: Optional[str] = None


# ==================== 邀请 ====================
class InvitationCreate(BaseModel):
    """发送邀请"""
    invitee_email: EmailStr


class Invitation(BaseModel):
    """小组邀请"""
    id: str
    group_id: str
    inviter_id: str
    invitee_email: str
    invitee_id: Optional[str] = None
    status: InvitationStatus = InvitationStatus.PENDING
    created_at: datetime


# ==================== 汇总视图 ====================
class VoteTally(BaseModel):
    """单个目的地的得票统计"""
    destination_name: str
    destination_state: Optional[str] = None
    category: Optional[str] = None
    cost: Optional[float] = None
    duration: Optional[str] = None
    count: int
    percentage: float
    user_voted: bool = False
    voters: List[ProfileSummary] = Field(default_factory=list)


class BudgetSplitLine(BudgetSplit):
    """带付款进度的分摊行；超过 100% 表示多付"""
    percentage: float


class BudgetSummary(BaseModel):
    """小组预算汇总；未设置预算时 total_remaining 为空"""
    total_budget: Optional[float] = None
    total_paid: float
    total_remaining: Optional[float] = None
    overall_progress: Optional[float] = None
    splits: List[BudgetSplitLine] = Field(default_factory=list)


class TransportSummary(BaseModel):
    """交通预订列表及合计"""
    bookings: List[TransportBooking] = Field(default_factory=list)
    total_estimated_cost: float = 0.0


# ==================== 用户资料 ====================
class ProfileUpdate(BaseModel):
    """当前用户同步自己的资料"""
    email: EmailStr
    full_name: Optional[str] = Field(None, max_length=200)


class Profile(BaseModel):
    """用户资料"""
    id: str
    email: str
    full_name: Optional[str] = None
    display_name: str
