"""
旅行偏好会话
表单提交后把偏好存入Redis并返回检索ID，结果页凭ID读取一次
"""

import uuid
from typing import Optional

from shared.cache.redis_client import RedisClient
from shared.config.settings import get_settings
from shared.errors import NotFound
from shared.models.travel import PreferenceSession, TripPreferences
from shared.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

KEY_PREFIX = "trip_preferences:"


class PreferenceStore:
    """偏好会话存储"""

    def __init__(self, cache: RedisClient, ttl_seconds: Optional[int] = None):
        self.cache = cache
        self.ttl_seconds = ttl_seconds or settings.PREFERENCES_TTL_SECONDS

    async def save(self, prefs: TripPreferences) -> PreferenceSession:
        search_id = uuid.uuid4().hex
        await self.cache.set_json(KEY_PREFIX + search_id, prefs.model_dump(mode="json"), expire=self.ttl_seconds)
        logger.info(f"保存旅行偏好 {search_id}，{self.ttl_seconds} 秒后过期")
        return PreferenceSession(search_id=search_id, expires_in=self.ttl_seconds)

    async def take(self, search_id: str) -> TripPreferences:
        """读取后即删除；已读取或已过期时抛出 NotFound"""
        data = await self.cache.take_json(KEY_PREFIX + search_id)
        if data is None:
            raise NotFound("preferences", search_id)
        return TripPreferences.model_validate(data)
