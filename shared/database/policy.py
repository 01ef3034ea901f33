"""
行级访问策略
按调用者身份和小组成员角色判断是否允许读写
"""

from typing import Any, Dict, Optional

from shared.database.models import GroupMemberORM
from shared.database.row_store import Row, RowStore
from shared.errors import NotAuthorized
from shared.models.group import MANAGER_ROLES, MemberRole
from shared.utils.logger import get_logger

logger = get_logger(__name__)


class AccessPolicy:
    """行级访问策略"""

    def __init__(self, store: RowStore):
        self.store = store

    @staticmethod
    def require_identity(user_id: Optional[str]) -> str:
        if not user_id:
            raise NotAuthorized("Please sign in", unauthenticated=True)
        return user_id

    async def membership(self, group_id: str, user_id: str) -> Optional[Row]:
        return await self.store.find_one(GroupMemberORM, {"group_id": group_id, "user_id": user_id})

    async def require_member(self, group_id: str, user_id: Optional[str]) -> Row:
        """调用者必须是小组成员，返回其成员行"""
        user_id = self.require_identity(user_id)
        member = await self.membership(group_id, user_id)
        if member is None:
            logger.info(f"用户 {user_id} 不是小组 {group_id} 的成员")
            raise NotAuthorized("You are not a member of this group")
        return member

    async def require_manager(self, group_id: str, user_id: Optional[str]) -> Row:
        """调用者必须是 owner 或 admin"""
        member = await self.require_member(group_id, user_id)
        if member["role"] not in MANAGER_ROLES:
            raise NotAuthorized("Only the group owner or admins can do this")
        return member

    async def require_author_or_manager(self, group_id: str, user_id: Optional[str],
                                        row: Dict[str, Any]) -> Row:
        """作者本人或管理者可删除行程活动、交通预订"""
        member = await self.require_member(group_id, user_id)
        if row.get("user_id") != member["user_id"] and member["role"] not in MANAGER_ROLES:
            raise NotAuthorized("Only the author or a group admin can delete this")
        return member

    async def require_payment_right(self, group_id: str, user_id: Optional[str],
                                    split: Dict[str, Any]) -> Row:
        """成员只能给自己的分摊记账，管理者可以给任何人记账"""
        member = await self.require_member(group_id, user_id)
        if split.get("user_id") != member["user_id"] and member["role"] not in MANAGER_ROLES:
            raise NotAuthorized("You can only record payments for your own share")
        return member

    async def check_member_removal(self, group_id: str, user_id: Optional[str],
                                   target: Dict[str, Any]) -> Row:
        """owner 永远不能被移除；移除自己等同于退出小组"""
        actor = await self.require_member(group_id, user_id)
        if target.get("role") == MemberRole.OWNER.value:
            raise NotAuthorized("The group owner cannot be removed")
        if target.get("user_id") != actor["user_id"] and actor["role"] not in MANAGER_ROLES:
            raise NotAuthorized("Only the group owner or admins can remove members")
        return actor
