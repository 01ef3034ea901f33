"""
Redis客户端模块
提供Redis连接、键值读写和发布订阅功能
"""

import json
from typing import Any, Dict, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from shared.config.settings import get_settings
from shared.errors import TransientStoreError
from shared.utils.logger import get_logger

logger = get_logger(__name__)


def _json_default(value: Any) -> str:
    """日期时间按 ISO 格式序列化"""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


class RedisClient:
    """Redis客户端类

    读写失败统一转换为 TransientStoreError，由调用方决定如何提示用户。
    """

    def __init__(self, redis_client: Redis):
        self.redis = redis_client

    async def ping(self) -> bool:
        """检查Redis连接"""
        try:
            await self.redis.ping()
            return True
        except (RedisError, OSError) as e:
            logger.error(f"Redis ping失败: {e}")
            return False

    async def set(self, key: str, value: str, expire: Optional[int] = None) -> bool:
        """设置值"""
        try:
            if expire:
                return bool(await self.redis.setex(key, expire, value))
            return bool(await self.redis.set(key, value))
        except (RedisError, OSError) as e:
            logger.error(f"Redis set失败 {key}: {e}")
            raise TransientStoreError(f"Cache unavailable: {e}") from e

    async def set_json(self, key: str, value: Dict[str, Any], expire: Optional[int] = None) -> bool:
        """设置JSON值"""
        json_str = json.dumps(value, ensure_ascii=False, default=_json_default)
        return await self.set(key, json_str, expire)

    async def take_json(self, key: str) -> Optional[Dict[str, Any]]:
        """读取一次后删除（GETDEL）"""
        try:
            value = await self.redis.getdel(key)
        except (RedisError, OSError) as e:
            logger.error(f"Redis getdel失败 {key}: {e}")
            raise TransientStoreError(f"Cache unavailable: {e}") from e
        if value:
            return json.loads(value)
        return None

    async def publish(self, channel: str, message: Dict[str, Any]) -> int:
        """发布消息，返回收到消息的订阅者数"""
        try:
            return await self.redis.publish(channel, json.dumps(message, ensure_ascii=False, default=_json_default))
        except (RedisError, OSError) as e:
            logger.error(f"Redis publish失败 {channel}: {e}")
            raise TransientStoreError(f"Change feed unavailable: {e}") from e

    def pubsub(self):
        """创建发布订阅对象"""
        return self.redis.pubsub(ignore_subscribe_messages=True)

    async def close(self):
        """关闭连接"""
        try:
            await self.redis.aclose()
        except (RedisError, OSError) as e:
            logger.error(f"关闭Redis连接失败: {e}")


# 全局Redis实例
_redis_pools: Dict[int, ConnectionPool] = {}
_redis_clients: Dict[int, RedisClient] = {}


def get_redis_pool(db: int = 0) -> ConnectionPool:
    """获取Redis连接池"""
    if db not in _redis_pools:
        _redis_pools[db] = ConnectionPool.from_url(
            get_settings().REDIS_URL,
            db=db,
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
            retry_on_timeout=True
        )
    return _redis_pools[db]


def get_redis_client(db: int = 0) -> RedisClient:
    """获取Redis客户端"""
    if db not in _redis_clients:
        pool = get_redis_pool(db)
        _redis_clients[db] = RedisClient(Redis(connection_pool=pool))
    return _redis_clients[db]


async def close_all_redis_connections():
    """关闭所有Redis连接"""
    for client in _redis_clients.values():
        await client.close()

    for pool in _redis_pools.values():
        await pool.disconnect()

    _redis_clients.clear()
    _redis_pools.clear()
