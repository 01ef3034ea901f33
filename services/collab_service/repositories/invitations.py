"""
小组邀请仓库

接受邀请分两步：先把邀请标为 accepted，再写入成员行。
成员行已存在视为成功；其他失败把邀请恢复为 pending 后重新抛出。
"""

from typing import List, Optional

from shared.database.models import GroupMemberORM, InvitationORM, ProfileORM
from shared.database.policy import AccessPolicy
from shared.database.row_store import Row, RowStore
from shared.errors import DuplicateEntry, NotAuthorized, TravelPlannerError, ValidationError
from shared.models.group import Invitation, InvitationCreate, InvitationStatus, MemberRole
from shared.utils.logger import get_logger

logger = get_logger(__name__)


class InvitationRepository:
    """小组邀请"""

    def __init__(self, store: RowStore, policy: AccessPolicy):
        self.store = store
        self.policy = policy

    async def send(self, group_id: str, user_id: Optional[str], data: InvitationCreate) -> Invitation:
        """仅 owner/admin 可邀请；同一邮箱已有待处理邀请时报重复"""
        inviter = await self.policy.require_manager(group_id, user_id)
        email = str(data.invitee_email).strip().lower()

        profile = await self.store.find_one(ProfileORM, {"email": email})
        invitee_id = profile["id"] if profile else None
        if invitee_id and await self.policy.membership(group_id, invitee_id):
            raise DuplicateEntry("trip_group_members")

        existing = await self.store.find_one(InvitationORM, {"group_id": group_id, "invitee_email": email})
        if existing is not None:
            if existing["status"] == InvitationStatus.PENDING.value:
                raise DuplicateEntry("trip_invitations")
            # 已拒绝或已接受后退出的邀请重新打开
            row = await self.store.update(InvitationORM, existing["id"], {
                "inviter_id": inviter["user_id"],
                "invitee_id": invitee_id,
                "status": InvitationStatus.PENDING.value,
            })
        else:
            row = await self.store.insert(InvitationORM, {
                "group_id": group_id,
                "inviter_id": inviter["user_id"],
                "invitee_email": email,
                "invitee_id": invitee_id,
                "status": InvitationStatus.PENDING.value,
            })

        logger.info(f"小组 {group_id} 邀请 {email}")
        return Invitation(**row)

    async def list_for_group(self, group_id: str, user_id: Optional[str]) -> List[Invitation]:
        await self.policy.require_member(group_id, user_id)
        rows = await self.store.select(InvitationORM, {"group_id": group_id}, order_by="created_at", descending=True)
        return [Invitation(**row) for row in rows]

    async def list_pending_for_user(self, user_id: Optional[str]) -> List[Invitation]:
        """发给当前用户邮箱的待处理邀请"""
        user_id = self.policy.require_identity(user_id)
        profile = await self.store.find_one(ProfileORM, {"id": user_id})
        if profile is None:
            return []
        rows = await self.store.select(
            InvitationORM,
            {"invitee_email": profile["email"].lower(), "status": InvitationStatus.PENDING.value},
            order_by="created_at",
            descending=True,
        )
        return [Invitation(**row) for row in rows]

    async def _require_invitee(self, invitation_id: str, user_id: Optional[str]) -> Row:
        user_id = self.policy.require_identity(user_id)
        invitation = await self.store.get(InvitationORM, invitation_id)
        if invitation.get("invitee_id") != user_id:
            profile = await self.store.find_one(ProfileORM, {"id": user_id})
            if profile is None or profile["email"].lower() != invitation["invitee_email"]:
                raise NotAuthorized("This invitation was sent to someone else")
        if invitation["status"] != InvitationStatus.PENDING.value:
            raise ValidationError("This invitation has already been answered", field="status")
        return invitation

    async def accept(self, invitation_id: str, user_id: Optional[str]) -> Invitation:
        invitation = await self._require_invitee(invitation_id, user_id)

        accepted = await self.store.update(InvitationORM, invitation_id, {
            "status": InvitationStatus.ACCEPTED.value,
            "invitee_id": user_id,
        })
        try:
            await self.store.insert(GroupMemberORM, {
                "group_id": invitation["group_id"],
                "user_id": user_id,
                "role": MemberRole.MEMBER.value,
            })
        except DuplicateEntry:
            logger.info(f"用户 {user_id} 已是小组 {invitation['group_id']} 成员，邀请直接完成")
        except TravelPlannerError as e:
            logger.error(f"邀请 {invitation_id} 写入成员失败，恢复为 pending: {e}")
            try:
                await self.store.update(InvitationORM, invitation_id, {
                    "status": InvitationStatus.PENDING.value,
                    "invitee_id": invitation.get("invitee_id"),
                })
            except TravelPlannerError as revert_error:
                logger.error(f"恢复邀请 {invitation_id} 失败: {revert_error}")
            raise

        logger.info(f"用户 {user_id} 接受邀请加入小组 {invitation['group_id']}")
        return Invitation(**accepted)

    async def decline(self, invitation_id: str, user_id: Optional[str]) -> Invitation:
        await self._require_invitee(invitation_id, user_id)
        row = await self.store.update(InvitationORM, invitation_id, {"status": InvitationStatus.DECLINED.value})
        return Invitation(**row)
