"""
协作服务组件装配
"""

import random
from typing import Optional

from fastapi import Request

from shared.database.connection import DatabaseManager
from shared.database.policy import AccessPolicy
from shared.database.row_store import RowStore
from shared.realtime.change_feed import ChangeFeed

from .profile_joiner import ProfileJoiner
from .repositories import (
    BudgetRepository,
    GroupRepository,
    InvitationRepository,
    ItineraryRepository,
    MemberRepository,
    MessageRepository,
    ProfileRepository,
    ReviewRepository,
    SavedTripRepository,
    TransportRepository,
    VoteRepository,
)


class CollabContainer:
    """持有行存储、访问策略和全部资源仓库"""

    def __init__(self, db: DatabaseManager, change_feed: ChangeFeed,
                 rng: Optional[random.Random] = None):
        self.db = db
        self.change_feed = change_feed
        self.store = RowStore(db, change_feed)
        self.policy = AccessPolicy(self.store)
        self.profile_joiner = ProfileJoiner(self.store)

        self.profiles = ProfileRepository(self.store, self.policy)
        self.groups = GroupRepository(self.store, self.policy)
        self.members = MemberRepository(self.store, self.policy, self.profile_joiner)
        self.invitations = InvitationRepository(self.store, self.policy)
        self.votes = VoteRepository(self.store, self.policy, self.profile_joiner)
        self.messages = MessageRepository(self.store, self.policy, self.profile_joiner)
        self.itinerary = ItineraryRepository(self.store, self.policy, self.profile_joiner)
        self.transport = TransportRepository(self.store, self.policy, self.profile_joiner, rng=rng)
        self.budget = BudgetRepository(self.store, self.policy, self.profile_joiner)
        self.saved_trips = SavedTripRepository(self.store, self.policy)
        self.reviews = ReviewRepository(self.store, self.policy, self.profile_joiner)


def get_container(request: Request) -> CollabContainer:
    """FastAPI 依赖：从 app.state 取组件"""
    return request.app.state.container
