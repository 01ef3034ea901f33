"""
数据库 ORM 模型统一导入
"""

from shared.database.connection import Base

from .user import ProfileORM
from .group import (
    TripGroupORM,
    GroupMemberORM,
    InvitationORM,
    DestinationVoteORM,
    BudgetSplitORM,
    GroupMessageORM,
    ItineraryItemORM,
    TransportBookingORM,
)
from .trip import SavedTripORM, ReviewORM

__all__ = [
    "Base",
    "ProfileORM",
    "TripGroupORM",
    "GroupMemberORM",
    "InvitationORM",
    "DestinationVoteORM",
    "BudgetSplitORM",
    "GroupMessageORM",
    "ItineraryItemORM",
    "TransportBookingORM",
    "SavedTripORM",
    "ReviewORM",
]
