"""
Budget Trip Planner - 数据模型模块
统一导入所有数据模型
"""

# 通用模型
from .common import (
    BaseModel,
    BaseResponse,
    ErrorResponse,
    ResponseStatus,
)

# 协作行程域模型
from .group import (
    MANAGER_ROLES,
    BudgetSplit,
    DestinationVote,
    GroupMember,
    GroupMessage,
    GroupOverview,
    GroupRow,
    Invitation,
    InvitationCreate,
    InvitationStatus,
    ItineraryDay,
    ItineraryItem,
    ItineraryItemCreate,
    MemberRole,
    MessageCreate,
    PaymentUpdate,
    ProfileSummary,
    TransportBooking,
    TransportBookingCreate,
    TransportMode,
    TripGroup,
    TripGroupCreate,
    TripGroupUpdate,
    VoteCreate,
)

# 旅行推荐域模型
from .travel import (
    Destination,
    DetailedRestaurant,
    Expense,
    ExpenseCreate,
    RecommendationResult,
    RecommendationSort,
    Review,
    ReviewCreate,
    SavedTrip,
    SavedTripCreate,
    SimpleRestaurant,
    TripPreferences,
)

__all__ = [
    "BaseModel", "BaseResponse", "ErrorResponse", "ResponseStatus",
    "MANAGER_ROLES", "BudgetSplit", "DestinationVote", "GroupMember", "GroupMessage",
    "GroupOverview", "GroupRow", "Invitation", "InvitationCreate", "InvitationStatus",
    "ItineraryDay", "ItineraryItem", "ItineraryItemCreate", "MemberRole", "MessageCreate",
    "PaymentUpdate", "ProfileSummary", "TransportBooking", "TransportBookingCreate",
    "TransportMode", "TripGroup", "TripGroupCreate", "TripGroupUpdate", "VoteCreate",
    "Destination", "DetailedRestaurant", "Expense", "ExpenseCreate", "RecommendationResult",
    "RecommendationSort", "Review", "ReviewCreate", "SavedTrip", "SavedTripCreate",
    "SimpleRestaurant", "TripPreferences",
]
