"""
变更订阅模块
按 (表, 小组) 分区推送新插入的数据行，提供进程内与 Redis 发布订阅两种实现
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from redis.exceptions import RedisError

from shared.cache.redis_client import RedisClient
from shared.errors import TransientStoreError
from shared.monitoring.metrics import REALTIME_SUBSCRIPTIONS
from shared.utils.logger import get_logger

logger = get_logger(__name__)

_ROW = "row"
_CLOSED = "closed"
_DISCONNECTED = "disconnected"


class ChannelDisconnected(TransientStoreError):
    """推送通道断开"""

    code = "CHANNEL_DISCONNECTED"


class Subscription:
    """单个 (表, 小组) 的订阅，异步迭代得到新插入的行

    通道断开时迭代抛出 ChannelDisconnected；close() 之后迭代正常结束。
    """

    def __init__(self, table: str, group_id: str,
                 on_close: Callable[["Subscription"], Awaitable[None]]):
        self.table = table
        self.group_id = group_id
        self._on_close = on_close
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._disconnected = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    def deliver(self, row: Dict[str, Any]):
        if not self._closed and not self._disconnected:
            self._queue.put_nowait((_ROW, row))

    def sever(self):
        """标记通道丢失，唤醒正在等待的消费者"""
        if not self._closed and not self._disconnected:
            self._disconnected = True
            self._queue.put_nowait((_DISCONNECTED, None))

    def __aiter__(self):
        return self

    async def __anext__(self) -> Dict[str, Any]:
        if self._closed:
            raise StopAsyncIteration
        kind, payload = await self._queue.get()
        if kind == _ROW:
            return payload
        if kind == _CLOSED:
            raise StopAsyncIteration
        raise ChannelDisconnected(f"Change feed for {self.table}/{self.group_id} disconnected")

    async def close(self):
        """取消订阅并立即从变更源移除"""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait((_CLOSED, None))
        await self._on_close(self)


class ChangeFeed(ABC):
    """变更源接口"""

    @abstractmethod
    async def publish(self, table: str, row: Dict[str, Any]) -> int:
        """推送一行，返回投递到的订阅数"""

    @abstractmethod
    async def subscribe(self, table: str, group_id: str) -> Subscription:
        """订阅某小组某表的插入事件"""

    @abstractmethod
    def subscriber_count(self, table: str, group_id: str) -> int:
        """当前订阅数"""

    @abstractmethod
    async def close(self):
        """关闭变更源，断开所有订阅"""


class InMemoryChangeFeed(ChangeFeed):
    """进程内变更源，每个订阅一个 asyncio.Queue"""

    def __init__(self):
        self._subscriptions: Dict[Tuple[str, str], List[Subscription]] = {}

    async def publish(self, table: str, row: Dict[str, Any]) -> int:
        group_id = row.get("group_id")
        if group_id is None:
            return 0
        subscribers = list(self._subscriptions.get((table, group_id), []))
        for subscription in subscribers:
            subscription.deliver(dict(row))
        return len(subscribers)

    async def subscribe(self, table: str, group_id: str) -> Subscription:
        subscription = Subscription(table, group_id, self._remove)
        self._subscriptions.setdefault((table, group_id), []).append(subscription)
        REALTIME_SUBSCRIPTIONS.labels(table=table).inc()
        logger.debug(f"订阅 {table}/{group_id}")
        return subscription

    def subscriber_count(self, table: str, group_id: str) -> int:
        return len(self._subscriptions.get((table, group_id), []))

    async def disconnect(self, table: str, group_id: str):
        """模拟通道丢失：断开该分区的全部订阅"""
        for subscription in list(self._subscriptions.get((table, group_id), [])):
            self._detach(subscription)
            subscription.sever()

    async def close(self):
        for subscriptions in list(self._subscriptions.values()):
            for subscription in list(subscriptions):
                self._detach(subscription)
                subscription.sever()

    async def _remove(self, subscription: Subscription):
        self._detach(subscription)

    def _detach(self, subscription: Subscription):
        key = (subscription.table, subscription.group_id)
        subscriptions = self._subscriptions.get(key)
        if subscriptions and subscription in subscriptions:
            subscriptions.remove(subscription)
            REALTIME_SUBSCRIPTIONS.labels(table=subscription.table).dec()
            if not subscriptions:
                del self._subscriptions[key]


class RedisChangeFeed(ChangeFeed):
    """基于 Redis 发布订阅的变更源，频道名 changes:{table}:{group_id}"""

    def __init__(self, client: RedisClient):
        self.client = client
        self._subscriptions: Dict[Subscription, Tuple[Any, asyncio.Task]] = {}

    @staticmethod
    def channel_name(table: str, group_id: str) -> str:
        return f"changes:{table}:{group_id}"

    async def publish(self, table: str, row: Dict[str, Any]) -> int:
        group_id = row.get("group_id")
        if group_id is None:
            return 0
        return await self.client.publish(self.channel_name(table, group_id), row)

    async def subscribe(self, table: str, group_id: str) -> Subscription:
        pubsub = self.client.pubsub()
        try:
            await pubsub.subscribe(self.channel_name(table, group_id))
        except (RedisError, OSError) as e:
            logger.error(f"订阅 {table}/{group_id} 失败: {e}")
            await pubsub.aclose()
            raise TransientStoreError(f"Change feed unavailable: {e}") from e

        subscription = Subscription(table, group_id, self._remove)
        task = asyncio.create_task(self._pump(pubsub, subscription))
        self._subscriptions[subscription] = (pubsub, task)
        REALTIME_SUBSCRIPTIONS.labels(table=table).inc()
        return subscription

    async def _pump(self, pubsub, subscription: Subscription):
        """把频道消息转交给订阅；连接中断时转换为断开事件"""
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    subscription.deliver(json.loads(message["data"]))
                except ValueError as e:
                    logger.warning(f"忽略无法解析的变更消息 {subscription.table}: {e}")
        except (RedisError, OSError) as e:
            logger.warning(f"变更通道 {subscription.table}/{subscription.group_id} 断开: {e}")
        subscription.sever()
        await self._release(subscription, cancel_task=False)

    def subscriber_count(self, table: str, group_id: str) -> int:
        return sum(
            1 for s in self._subscriptions
            if s.table == table and s.group_id == group_id
        )

    async def close(self):
        for subscription in list(self._subscriptions):
            subscription.sever()
            await self._release(subscription)

    async def _remove(self, subscription: Subscription):
        await self._release(subscription)

    async def _release(self, subscription: Subscription, cancel_task: bool = True):
        entry: Optional[Tuple[Any, asyncio.Task]] = self._subscriptions.pop(subscription, None)
        if entry is None:
            return
        pubsub, task = entry
        REALTIME_SUBSCRIPTIONS.labels(table=subscription.table).dec()
        if cancel_task:
            task.cancel()
        try:
            await pubsub.unsubscribe()
            await pubsub.aclose()
        except (RedisError, OSError) as e:
            logger.warning(f"释放订阅 {subscription.table}/{subscription.group_id} 失败: {e}")


def create_change_feed(backend: str, redis_client: Optional[RedisClient] = None) -> ChangeFeed:
    """按配置创建变更源"""
    if backend == "redis":
        if redis_client is None:
            raise ValueError("redis backend requires a Redis client")
        return RedisChangeFeed(redis_client)
    return InMemoryChangeFeed()
