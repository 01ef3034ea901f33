"""
协作服务资源仓库
"""

from .base import ResourceRepository
from .groups import GroupRepository, MemberRepository
from .invitations import InvitationRepository
from .activity import MessageRepository, VoteRepository
from .planning import ItineraryRepository, TransportRepository
from .budget import BudgetRepository
from .personal import ProfileRepository, ReviewRepository, SavedTripRepository

__all__ = [
    "ResourceRepository",
    "GroupRepository",
    "MemberRepository",
    "InvitationRepository",
    "MessageRepository",
    "VoteRepository",
    "ItineraryRepository",
    "TransportRepository",
    "BudgetRepository",
    "ProfileRepository",
    "ReviewRepository",
    "SavedTripRepository",
]
