"""
实时合并器
把一次全量拉取和持续的插入推送合并为一个有序、无重复的行序列

状态: SYNCING -> LIVE -> DISCONNECTED -> SYNCING ... -> CLOSED
- 先订阅再拉取，拉取期间到达的推送留在订阅队列里，消费时按ID去重
- 推送的行直接追加到末尾，不重新排序
- 通道断开（或消费推送时存储不可用）后等待 resync_delay 秒，重新订阅并全量拉取
- 每次拉取/订阅都带代号，stop() 之后到达的结果一律丢弃
- 每条推送在合并前重新校验访问权限；权限失效（NotAuthorized）即终止，不再重连
"""

import asyncio
import contextlib
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Set

from shared.errors import NotAuthorized, TransientStoreError
from shared.realtime.change_feed import Subscription
from shared.utils.logger import get_logger

logger = get_logger(__name__)

Row = dict
FetchRows = Callable[[], Awaitable[List[Row]]]
Subscribe = Callable[[], Awaitable[Subscription]]
ResolveRow = Callable[[Row], Awaitable[Row]]
SnapshotHandler = Callable[[List[Row]], Awaitable[Any]]
InsertHandler = Callable[[Row], Awaitable[Any]]
Authorize = Callable[[], Awaitable[Any]]
RevokedHandler = Callable[[NotAuthorized], Awaitable[Any]]


class ReconcilerState(str, Enum):
    SYNCING = "syncing"
    LIVE = "live"
    DISCONNECTED = "disconnected"
    CLOSED = "closed"


class RealtimeReconciler:
    """单个 (小组, 资源) 的实时行序列"""

    def __init__(
        self,
        table: str,
        group_id: str,
        fetch: FetchRows,
        subscribe: Subscribe,
        resolve_row: Optional[ResolveRow] = None,
        on_snapshot: Optional[SnapshotHandler] = None,
        on_insert: Optional[InsertHandler] = None,
        authorize: Optional[Authorize] = None,
        on_revoked: Optional[RevokedHandler] = None,
        resync_delay: float = 1.0,
    ):
        self.table = table
        self.group_id = group_id
        self._fetch = fetch
        self._subscribe = subscribe
        self._resolve_row = resolve_row
        self._on_snapshot = on_snapshot
        self._on_insert = on_insert
        self._authorize = authorize
        self._on_revoked = on_revoked
        self.resync_delay = resync_delay

        self._rows: List[Row] = []
        self._ids: Set[Any] = set()
        self._state = ReconcilerState.SYNCING
        self._generation = 0
        self._subscription: Optional[Subscription] = None
        self._task: Optional[asyncio.Task] = None
        self._started = False

    @property
    def state(self) -> ReconcilerState:
        return self._state

    @property
    def rows(self) -> List[Row]:
        return list(self._rows)

    @property
    def subscription(self) -> Optional[Subscription]:
        return self._subscription

    def _set_state(self, state: ReconcilerState):
        if state is not self._state:
            logger.info(f"{self.table}/{self.group_id} 实时状态 {self._state.value} -> {state.value}")
            self._state = state

    # ==================== 合并 ====================
    def replace(self, rows: List[Row]):
        """用全量结果替换当前序列（结果自身也去重）"""
        self._rows = []
        self._ids = set()
        for row in rows:
            self.merge(row)

    def merge(self, row: Row) -> bool:
        """追加一行；ID 已存在时丢弃并返回 False"""
        row_id = row.get("id")
        if row_id in self._ids:
            return False
        self._ids.add(row_id)
        self._rows.append(row)
        return True

    # ==================== 生命周期 ====================
    async def start(self):
        """订阅并完成首次全量拉取，然后在后台消费推送"""
        if self._started:
            raise RuntimeError("reconciler already started")
        self._started = True
        await self._sync()
        if self._state is not ReconcilerState.CLOSED:
            self._task = asyncio.create_task(self._run())

    async def stop(self):
        """关闭订阅，之后到达的任何结果都被丢弃"""
        if self._state is ReconcilerState.CLOSED:
            return
        self._set_state(ReconcilerState.CLOSED)
        self._generation += 1

        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.close()

        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def __aenter__(self) -> "RealtimeReconciler":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    # ==================== 内部流程 ====================
    async def _sync(self):
        self._generation += 1
        generation = self._generation
        self._set_state(ReconcilerState.SYNCING)

        previous, self._subscription = self._subscription, None
        if previous is not None:
            await previous.close()

        subscription = await self._subscribe()
        try:
            rows = await self._fetch()
        except BaseException:
            await subscription.close()
            raise

        if generation != self._generation or self._state is ReconcilerState.CLOSED:
            # 等待期间已 stop() 或已开始新一轮同步
            await subscription.close()
            return

        self._subscription = subscription
        self.replace(rows)
        self._set_state(ReconcilerState.LIVE)
        if self._on_snapshot is not None:
            await self._on_snapshot(self.rows)

    async def _apply(self, row: Row):
        if row.get("id") in self._ids:
            return
        generation = self._generation
        if self._authorize is not None:
            await self._authorize()
        if self._resolve_row is not None:
            row = await self._resolve_row(row)
        if generation != self._generation or self._state is ReconcilerState.CLOSED:
            return
        if self.merge(row) and self._on_insert is not None:
            await self._on_insert(row)

    async def _run(self):
        while self._state is not ReconcilerState.CLOSED:
            subscription = self._subscription
            if subscription is None:
                return
            try:
                async for row in subscription:
                    await self._apply(row)
                return
            except TransientStoreError as e:
                if self._state is ReconcilerState.CLOSED:
                    return
                logger.warning(f"{self.table}/{self.group_id} 推送通道断开: {e}")
                self._set_state(ReconcilerState.DISCONNECTED)
            except NotAuthorized as e:
                await self._revoke(e)
                return
            await self._resync()

    async def _resync(self):
        while self._state is not ReconcilerState.CLOSED:
            await asyncio.sleep(self.resync_delay)
            if self._state is ReconcilerState.CLOSED:
                return
            try:
                await self._sync()
                return
            except TransientStoreError as e:
                logger.warning(f"{self.table}/{self.group_id} 重新同步失败，稍后重试: {e}")
                self._set_state(ReconcilerState.DISCONNECTED)
            except NotAuthorized as e:
                await self._revoke(e)
                return

    async def _revoke(self, error: NotAuthorized):
        logger.info(f"{self.table}/{self.group_id} 已无访问权限，停止同步: {error}")
        await self.stop()
        if self._on_revoked is not None:
            await self._on_revoked(error)
