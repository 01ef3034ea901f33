"""
用户资料、收藏行程与目的地点评仓库（按用户归属，与小组无关）
"""

from typing import List, Optional

from shared.database.models import ProfileORM, ReviewORM, SavedTripORM
from shared.database.policy import AccessPolicy
from shared.database.row_store import Row, RowStore
from shared.errors import NotAuthorized, NotFound
from shared.models.group import Profile, ProfileUpdate
from shared.models.travel import Review, ReviewCreate, ReviewList, SavedTrip, SavedTripCreate
from shared.utils.logger import get_logger

from ..profile_joiner import ProfileJoiner, display_name

logger = get_logger(__name__)


class ProfileRepository:
    """用户资料；只能写自己的资料"""

    def __init__(self, store: RowStore, policy: AccessPolicy):
        self.store = store
        self.policy = policy

    @staticmethod
    def _to_profile(row: Row) -> Profile:
        return Profile(
            id=row["id"],
            email=row["email"],
            full_name=row.get("full_name"),
            display_name=display_name(row.get("full_name"), row.get("email")),
        )

    async def upsert(self, user_id: Optional[str], data: ProfileUpdate) -> Profile:
        user_id = self.policy.require_identity(user_id)
        values = {"email": str(data.email).strip().lower(), "full_name": data.full_name}
        try:
            row = await self.store.update(ProfileORM, user_id, values)
        except NotFound:
            row = await self.store.insert(ProfileORM, {**values, "id": user_id})
        return self._to_profile(row)

    async def get(self, user_id: Optional[str]) -> Profile:
        user_id = self.policy.require_identity(user_id)
        return self._to_profile(await self.store.get(ProfileORM, user_id))


class SavedTripRepository:
    """收藏行程；同一用户同一目的地只能收藏一次"""

    def __init__(self, store: RowStore, policy: AccessPolicy):
        self.store = store
        self.policy = policy

    async def save(self, user_id: Optional[str], data: SavedTripCreate) -> SavedTrip:
        user_id = self.policy.require_identity(user_id)
        row = await self.store.insert(SavedTripORM, {**data.model_dump(), "user_id": user_id})
        return SavedTrip(**row)

    async def list_for_user(self, user_id: Optional[str]) -> List[SavedTrip]:
        user_id = self.policy.require_identity(user_id)
        rows = await self.store.select(SavedTripORM, {"user_id": user_id}, order_by="created_at", descending=True)
        return [SavedTrip(**row) for row in rows]

    async def delete(self, user_id: Optional[str], trip_id: str):
        user_id = self.policy.require_identity(user_id)
        row = await self.store.get(SavedTripORM, trip_id)
        if row["user_id"] != user_id:
            raise NotAuthorized("You can only remove your own saved trips")
        await self.store.delete(SavedTripORM, trip_id)


class ReviewRepository:
    """目的地点评"""

    def __init__(self, store: RowStore, policy: AccessPolicy, profiles: ProfileJoiner):
        self.store = store
        self.policy = policy
        self.profiles = profiles

    @staticmethod
    def _to_review(row: Row) -> Review:
        profile = row.get("profile")
        return Review(**row, author=profile.display_name if profile else None)

    async def add(self, user_id: Optional[str], data: ReviewCreate) -> Review:
        user_id = self.policy.require_identity(user_id)
        row = await self.store.insert(ReviewORM, {**data.model_dump(), "user_id": user_id})
        logger.info(f"用户 {user_id} 点评 {data.destination_name}")
        return self._to_review(await self.profiles.join_one(row))

    async def list_for_destination(self, destination_name: str) -> ReviewList:
        """最新的在前，附平均评分"""
        rows = await self.store.select(
            ReviewORM, {"destination_name": destination_name}, order_by="created_at", descending=True
        )
        reviews = [self._to_review(row) for row in await self.profiles.join(rows)]
        average = round(sum(r.rating for r in reviews) / len(reviews), 1) if reviews else None
        return ReviewList(reviews=reviews, average_rating=average, count=len(reviews))

    async def delete(self, user_id: Optional[str], review_id: str):
        user_id = self.policy.require_identity(user_id)
        row = await self.store.get(ReviewORM, review_id)
        if row["user_id"] != user_id:
            raise NotAuthorized("You can only delete your own reviews")
        await self.store.delete(ReviewORM, review_id)
