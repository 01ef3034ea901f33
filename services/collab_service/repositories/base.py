"""
按小组分区的资源仓库基类
"""

from typing import Any, ClassVar, Dict, List, Optional, Sequence, Type, Union

from shared.database.policy import AccessPolicy
from shared.database.row_store import ModelType, Row, RowStore
from shared.errors import NotFound
from shared.models.group import GroupRow
from shared.utils.logger import get_logger

from ..profile_joiner import ProfileJoiner
from ..realtime import InsertHandler, RealtimeReconciler, RevokedHandler, SnapshotHandler

logger = get_logger(__name__)


class ResourceRepository:
    """列表、插入、删除的通用实现；成员校验在每个操作之前完成"""

    model: ClassVar[ModelType]
    view: ClassVar[Type[GroupRow]]
    order_by: ClassVar[Union[str, Sequence[str]]] = "created_at"
    descending: ClassVar[bool] = False

    def __init__(self, store: RowStore, policy: AccessPolicy, profiles: ProfileJoiner):
        self.store = store
        self.policy = policy
        self.profiles = profiles

    @property
    def table(self) -> str:
        return self.model.__tablename__

    async def fetch_rows(self, group_id: str) -> List[Row]:
        """按顺序取出小组全部行并关联用户资料（不做权限校验）"""
        rows = await self.store.select(
            self.model, {"group_id": group_id}, order_by=self.order_by, descending=self.descending
        )
        return await self.profiles.join(rows)

    async def _authorized_fetch(self, group_id: str, user_id: Optional[str]) -> List[Row]:
        await self.policy.require_member(group_id, user_id)
        return await self.fetch_rows(group_id)

    async def list_by_group(self, group_id: str, user_id: Optional[str]) -> List[Any]:
        await self.policy.require_member(group_id, user_id)
        return [self.view(**row) for row in await self.fetch_rows(group_id)]

    async def get_in_group(self, group_id: str, row_id: str) -> Row:
        row = await self.store.get(self.model, row_id)
        if row.get("group_id") != group_id:
            raise NotFound(self.table, row_id)
        return row

    async def insert(self, group_id: str, user_id: Optional[str], values: Dict[str, Any]) -> Any:
        member = await self.policy.require_member(group_id, user_id)
        row = await self.store.insert(
            self.model, {**values, "group_id": group_id, "user_id": member["user_id"]}
        )
        return self.view(**await self.profiles.join_one(row))

    async def delete(self, group_id: str, user_id: Optional[str], row_id: str):
        """作者本人或管理者可删除"""
        await self.policy.require_member(group_id, user_id)
        row = await self.get_in_group(group_id, row_id)
        await self.policy.require_author_or_manager(group_id, user_id, row)
        await self.store.delete(self.model, row_id)
        logger.info(f"删除 {self.table} {row_id}")

    async def open_stream(
        self,
        group_id: str,
        user_id: Optional[str],
        on_snapshot: Optional[SnapshotHandler] = None,
        on_insert: Optional[InsertHandler] = None,
        on_revoked: Optional[RevokedHandler] = None,
        resync_delay: float = 1.0,
    ) -> RealtimeReconciler:
        """创建（未启动的）实时合并器；调用方负责 start/stop 或 async with

        每条推送在发给调用方之前都重新校验成员身份，被移出小组后订阅立即终止
        """
        await self.policy.require_member(group_id, user_id)
        return RealtimeReconciler(
            table=self.table,
            group_id=group_id,
            fetch=lambda: self._authorized_fetch(group_id, user_id),
            subscribe=lambda: self.store.subscribe(self.table, group_id),
            resolve_row=self.profiles.join_one,
            on_snapshot=on_snapshot,
            on_insert=on_insert,
            authorize=lambda: self.policy.require_member(group_id, user_id),
            on_revoked=on_revoked,
            resync_delay=resync_delay,
        )
