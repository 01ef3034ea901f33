from .redis_client import RedisClient, close_all_redis_connections, get_redis_client

__all__ = ["RedisClient", "close_all_redis_connections", "get_redis_client"]
