"""
预算分摊仓库

每次读取前重新计算：小组总预算在当前成员间平均分摊，
保留已付金额，删除已退出成员的分摊行。
"""

from typing import List, Optional

from shared.database.models import BudgetSplitORM, GroupMemberORM, TripGroupORM
from shared.errors import DuplicateEntry, ValidationError
from shared.models.group import BudgetSplit, BudgetSummary, PaymentUpdate
from shared.utils.logger import get_logger

from ..aggregates import has_budget, summarize_budget
from .base import ResourceRepository

logger = get_logger(__name__)


class BudgetRepository(ResourceRepository):
    """预算分摊"""

    model = BudgetSplitORM
    view = BudgetSplit

    async def recalculate(self, group_id: str):
        """按当前成员重新计算分摊；未设置预算时只清理退出成员的分摊"""
        group = await self.store.get(TripGroupORM, group_id)
        members = await self.store.select(GroupMemberORM, {"group_id": group_id}, order_by="joined_at")
        splits = await self.store.select(BudgetSplitORM, {"group_id": group_id})

        member_ids = [m["user_id"] for m in members]
        departed = [s["id"] for s in splits if s["user_id"] not in member_ids]
        if departed:
            await self.store.delete_where(BudgetSplitORM, {"id": departed})

        total_budget = group.get("total_budget")
        if not has_budget(total_budget) or not member_ids:
            return

        share = round(total_budget / len(member_ids), 2)
        by_user = {s["user_id"]: s for s in splits}
        for user_id in member_ids:
            split = by_user.get(user_id)
            if split is None:
                try:
                    await self.store.insert(BudgetSplitORM, {
                        "group_id": group_id,
                        "user_id": user_id,
                        "amount": share,
                        "paid_amount": 0.0,
                    })
                except DuplicateEntry:
                    # 并发读取时另一请求已经写入
                    logger.debug(f"小组 {group_id} 成员 {user_id} 的分摊已存在")
            elif split["amount"] != share:
                await self.store.update(BudgetSplitORM, split["id"], {"amount": share})

    async def list_splits(self, group_id: str, user_id: Optional[str]) -> List[BudgetSplit]:
        await self.policy.require_member(group_id, user_id)
        await self.recalculate(group_id)
        return [BudgetSplit(**row) for row in await self.fetch_rows(group_id)]

    async def summary(self, group_id: str, user_id: Optional[str]) -> BudgetSummary:
        splits = await self.list_splits(group_id, user_id)
        group = await self.store.get(TripGroupORM, group_id)
        return summarize_budget(splits, group.get("total_budget"))

    async def record_payment(self, group_id: str, user_id: Optional[str], split_id: str,
                             data: PaymentUpdate) -> BudgetSplit:
        """记录付款；不传金额表示付清。已付金额只增不减"""
        await self.policy.require_member(group_id, user_id)
        split = await self.get_in_group(group_id, split_id)
        await self.policy.require_payment_right(group_id, user_id, split)

        paid_amount = split["amount"] if data.paid_amount is None else data.paid_amount
        current = split.get("paid_amount") or 0.0
        if paid_amount < current:
            raise ValidationError("Recorded payments cannot be reduced", field="paid_amount")

        row = await self.store.update(BudgetSplitORM, split_id, {"paid_amount": paid_amount})
        logger.info(f"小组 {group_id} 分摊 {split_id} 已付 {paid_amount}")
        return BudgetSplit(**await self.profiles.join_one(row))
