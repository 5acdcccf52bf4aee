"""Redis async connection pool and dispatch-lock backend selection."""

from typing import Optional

import redis.asyncio as aioredis

from src.config import Settings, settings
from .locks import LocalLockManager, LockManager, RedisLockManager

_pool: Optional[aioredis.ConnectionPool] = None


def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    global _pool
    if _pool is None:
        _pool = aioredis.ConnectionPool.from_url(
            settings.redis_url, decode_responses=True
        )
    return aioredis.Redis(connection_pool=_pool)


def build_lock_manager(config: Settings = settings) -> LockManager:
    if config.lock_backend == "redis":
        return RedisLockManager(
            get_redis(),
            ttl_seconds=config.lock_ttl_seconds,
            timeout_seconds=config.lock_timeout_seconds,
        )
    return LocalLockManager()
