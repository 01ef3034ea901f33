"""
目的地投票与小组聊天仓库
"""

from typing import List, Optional

from shared.database.models import DestinationVoteORM, GroupMessageORM
from shared.errors import NotFound, ValidationError
from shared.models.group import (
    DestinationVote,
    GroupMessage,
    MessageCreate,
    VoteCreate,
    VoteTally,
)

from ..aggregates import tally_votes
from .base import ResourceRepository


class VoteRepository(ResourceRepository):
    """目的地投票；同一成员对同一目的地只能投一票（唯一约束）"""

    model = DestinationVoteORM
    view = DestinationVote

    async def propose(self, group_id: str, user_id: Optional[str], data: VoteCreate) -> DestinationVote:
        """提议目的地，同时投出第一票"""
        return await self.insert(group_id, user_id, data.model_dump())

    async def vote_for(self, group_id: str, user_id: Optional[str], destination_name: str) -> DestinationVote:
        """给已提议的目的地投票，复制提议的详细信息"""
        await self.policy.require_member(group_id, user_id)
        proposal = await self.store.find_one(
            DestinationVoteORM, {"group_id": group_id, "destination_name": destination_name}
        )
        if proposal is None:
            raise NotFound(self.table, destination_name)
        return await self.insert(group_id, user_id, {
            "destination_name": proposal["destination_name"],
            "destination_state": proposal["destination_state"],
            "category": proposal["category"],
            "cost": proposal["cost"],
            "duration": proposal["duration"],
        })

    async def tallies(self, group_id: str, user_id: Optional[str]) -> List[VoteTally]:
        votes = await self.list_by_group(group_id, user_id)
        return tally_votes(votes, user_id)


class MessageRepository(ResourceRepository):
    """小组聊天，只追加，按创建时间升序"""

    model = GroupMessageORM
    view = GroupMessage

    async def send(self, group_id: str, user_id: Optional[str], data: MessageCreate) -> GroupMessage:
        text = data.message.strip()
        if not text:
            raise ValidationError("Message cannot be empty", field="message")
        return await self.insert(group_id, user_id, {"message": text})
