"""
Dispatch locks.

Booking and trip completion hold a lock per trip id and per cab id so
two callers can never both see the same cab as available and assign it.

Two backends share the ``hold(key)`` interface:

* ``LocalLockManager``  -- one ``asyncio.Lock`` per key; enough for a
  single process (console session, single API worker).
* ``RedisLockManager``  -- ``DistributedLock`` per key for multiple API
  processes.  Acquire uses SET NX EX; release uses a Lua script for
  atomic check-and-delete.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Protocol

import redis.asyncio as aioredis


class LockTimeout(Exception):
    """Raised when a dispatch lock could not be acquired in time."""


def trip_key(trip_id: int) -> str:
    return f"trip:{trip_id}"


def cab_key(cab_id: int) -> str:
    return f"cab:{cab_id}"


class LockManager(Protocol):
    def hold(self, key: str) -> AsyncContextManager[None]: ...


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())

    async def acquire(self) -> bool:
        """Try to acquire once. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def acquire_within(
        self, timeout: float, retry_interval: float = 0.05
    ) -> bool:
        """Poll ``acquire`` until it succeeds or *timeout* seconds pass."""
        deadline = time.monotonic() + timeout
        while True:
            if await self.acquire():
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(retry_interval)

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        lua = """
        if redis.call("get", KEYS[1]) == ARGV[1] then
            return redis.call("del", KEYS[1])
        else
            return 0
        end
        """
        await self.redis.eval(lua, 1, self.key, self.token)

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire()
        if not acquired:
            raise LockTimeout(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()


class LocalLockManager:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # drop the entry once nobody holds or waits on the key
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]


class RedisLockManager:
    def __init__(
        self,
        client: aioredis.Redis,
        ttl_seconds: int = 30,
        timeout_seconds: float = 5.0,
    ):
        self.redis = client
        self.ttl = ttl_seconds
        self.timeout = timeout_seconds

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = DistributedLock(self.redis, key, ttl_seconds=self.ttl)
        if not await lock.acquire_within(self.timeout):
            raise LockTimeout(f"Could not acquire lock: {lock.key}")
        try:
            yield
        finally:
            await lock.release()
