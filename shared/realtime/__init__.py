from .change_feed import (
    ChangeFeed,
    ChannelDisconnected,
    InMemoryChangeFeed,
    RedisChangeFeed,
    Subscription,
    create_change_feed,
)

__all__ = [
    "ChangeFeed",
    "ChannelDisconnected",
    "InMemoryChangeFeed",
    "RedisChangeFeed",
    "Subscription",
    "create_change_feed",
]
