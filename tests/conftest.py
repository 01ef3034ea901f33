"""
测试公共夹具
内存SQLite行存储、进程内变更推送、假Redis与预置用户
"""

import os
import random

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REALTIME_BACKEND", "memory")
os.environ.setdefault("PROVIDER_RETRY_ATTEMPTS", "2")

import pytest

from shared.cache.redis_client import RedisClient
from shared.database.connection import DatabaseManager
from shared.database.models import ProfileORM
from shared.database.policy import AccessPolicy
from shared.database.row_store import RowStore
from shared.realtime.change_feed import InMemoryChangeFeed
from services.collab_service.container import CollabContainer

ALICE = "00000000-0000-0000-0000-00000000000a"
BOB = "00000000-0000-0000-0000-00000000000b"
CAROL = "00000000-0000-0000-0000-00000000000c"
DAVE = "00000000-0000-0000-0000-00000000000d"

PROFILES = [
    {"id": ALICE, "email": "alice@example.com", "full_name": "Alice Sharma"},
    {"id": BOB, "email": "bob@example.com", "full_name": "Bob Mehta"},
    {"id": CAROL, "email": "carol@example.com", "full_name": None},
    {"id": DAVE, "email": "dave@example.com", "full_name": "Dave Rao"},
]


class FakeRedis:
    """只实现测试用到的 redis.asyncio 命令"""

    def __init__(self):
        self.data = {}
        self.expiry = {}
        self.published = []

    async def ping(self):
        return True

    async def set(self, key, value):
        self.data[key] = value
        return True

    async def setex(self, key, seconds, value):
        self.data[key] = value
        self.expiry[key] = seconds
        return True

    async def getdel(self, key):
        self.expiry.pop(key, None)
        return self.data.pop(key, None)

    async def publish(self, channel, message):
        self.published.append((channel, message))
        return 0

    async def aclose(self):
        return None


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return RedisClient(fake_redis)


@pytest.fixture
async def db():
    manager = DatabaseManager("sqlite+aiosqlite:///:memory:")
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def change_feed():
    return InMemoryChangeFeed()


@pytest.fixture
def store(db, change_feed):
    return RowStore(db, change_feed)


@pytest.fixture
def policy(store):
    return AccessPolicy(store)


@pytest.fixture
async def profiles(store):
    for profile in PROFILES:
        await store.insert(ProfileORM, profile)
    return {"alice": ALICE, "bob": BOB, "carol": CAROL, "dave": DAVE}


@pytest.fixture
def container(db, change_feed):
    return CollabContainer(db, change_feed, rng=random.Random(7))
