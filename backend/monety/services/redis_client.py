import redis

from monety.core.config import get_settings


def get_redis_client() -> redis.Redis | None:
    settings = get_settings()
    if not settings.record_lock_use_redis:
        return None
    try:
        return redis.Redis.from_url(settings.redis_url, decode_responses=True)
    except redis.RedisError:
        return None
