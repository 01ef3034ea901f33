"""
行程小组与成员仓库
"""

from collections import Counter
from typing import Dict, List, Optional

from shared.database.models import GroupMemberORM, TripGroupORM
from shared.database.policy import AccessPolicy
from shared.database.row_store import RowStore
from shared.errors import TravelPlannerError, ValidationError
from shared.models.group import (
    GroupMember,
    GroupOverview,
    MemberRole,
    TripGroupCreate,
    TripGroupUpdate,
)
from shared.utils.logger import get_logger

from .base import ResourceRepository

logger = get_logger(__name__)


def _check_dates(start_date, end_date):
    if start_date and end_date and end_date < start_date:
        raise ValidationError("End date must be on or after the start date", field="end_date")


class GroupRepository:
    """行程小组"""

    def __init__(self, store: RowStore, policy: AccessPolicy):
        self.store = store
        self.policy = policy

    async def create(self, user_id: Optional[str], data: TripGroupCreate) -> GroupOverview:
        """创建小组并把创建者加为 owner；成员写入失败时删除小组"""
        user_id = self.policy.require_identity(user_id)
        _check_dates(data.start_date, data.end_date)

        group = await self.store.insert(TripGroupORM, {**data.model_dump(), "created_by": user_id})
        try:
            await self.store.insert(GroupMemberORM, {
                "group_id": group["id"],
                "user_id": user_id,
                "role": MemberRole.OWNER.value,
            })
        except TravelPlannerError as e:
            logger.error(f"小组 {group['id']} 写入 owner 失败，回滚小组: {e}")
            try:
                await self.store.delete(TripGroupORM, group["id"])
            except TravelPlannerError as cleanup_error:
                logger.error(f"回滚小组 {group['id']} 失败: {cleanup_error}")
            raise

        logger.info(f"用户 {user_id} 创建小组 {group['id']}")
        return GroupOverview(**group, member_count=1, user_role=MemberRole.OWNER)

    async def list_for_user(self, user_id: Optional[str]) -> List[GroupOverview]:
        """当前用户加入的小组，最新创建的在前"""
        user_id = self.policy.require_identity(user_id)
        memberships = await self.store.select(GroupMemberORM, {"user_id": user_id})
        if not memberships:
            return []

        roles: Dict[str, str] = {m["group_id"]: m["role"] for m in memberships}
        group_ids = list(roles)
        groups = await self.store.select_in(TripGroupORM, "id", group_ids)
        all_members = await self.store.select_in(GroupMemberORM, "group_id", group_ids)
        counts = Counter(m["group_id"] for m in all_members)

        overviews = [
            GroupOverview(**group, member_count=counts.get(group["id"], 0), user_role=roles.get(group["id"]))
            for group in groups
        ]
        return sorted(overviews, key=lambda g: g.created_at, reverse=True)

    async def get(self, group_id: str, user_id: Optional[str]) -> GroupOverview:
        member = await self.policy.require_member(group_id, user_id)
        group = await self.store.get(TripGroupORM, group_id)
        member_count = await self.store.count(GroupMemberORM, {"group_id": group_id})
        return GroupOverview(**group, member_count=member_count, user_role=member["role"])

    async def update(self, group_id: str, user_id: Optional[str], data: TripGroupUpdate) -> GroupOverview:
        """仅 owner/admin 可修改"""
        member = await self.policy.require_manager(group_id, user_id)
        patch = data.model_dump(exclude_unset=True)
        if "name" in patch:
            name = (patch["name"] or "").strip()
            if not name:
                raise ValidationError("Group name is required", field="name")
            patch["name"] = name

        current = await self.store.get(TripGroupORM, group_id)
        _check_dates(patch.get("start_date", current["start_date"]),
                     patch.get("end_date", current["end_date"]))

        group = await self.store.update(TripGroupORM, group_id, patch) if patch else current
        member_count = await self.store.count(GroupMemberORM, {"group_id": group_id})
        return GroupOverview(**group, member_count=member_count, user_role=member["role"])


class MemberRepository(ResourceRepository):
    """小组成员，按加入时间排序"""

    model = GroupMemberORM
    view = GroupMember
    order_by = "joined_at"

    async def remove(self, group_id: str, user_id: Optional[str], member_id: str):
        """owner 不能被移除；移除自己即退出小组"""
        await self.policy.require_member(group_id, user_id)
        target = await self.get_in_group(group_id, member_id)
        actor = await self.policy.check_member_removal(group_id, user_id, target)
        await self.store.delete(GroupMemberORM, member_id)
        if target["user_id"] == actor["user_id"]:
            logger.info(f"用户 {actor['user_id']} 退出小组 {group_id}")
        else:
            logger.info(f"用户 {actor['user_id']} 将 {target['user_id']} 移出小组 {group_id}")
