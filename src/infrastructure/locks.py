"""
Redis-based per-shipment lock.

Every mutation of a shipment is a read-modify-write of its row.  Holding
``lock:shipment:<tracking number>`` for the duration serialises
concurrent writers across all API processes, so no update is lost.

Implementation uses SET NX EX for acquire (polling until a deadline) and
a Lua script for atomic check-and-delete on release.
"""

from __future__ import annotations

import asyncio
import time
import uuid

import redis.asyncio as aioredis

_RELEASE_LUA = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockNotAcquired(RuntimeError):
    """The lock stayed held by someone else for the whole wait window."""


class ShipmentLock:
    def __init__(
        self,
        client: aioredis.Redis,
        tracking_number: str,
        ttl_seconds: int = 10,
        wait_seconds: float = 2.0,
        poll_interval: float = 0.05,
    ):
        self.redis = client
        self.key = f"lock:shipment:{tracking_number}"
        self.ttl = ttl_seconds
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval
        self.token = str(uuid.uuid4())

    async def try_acquire(self) -> bool:
        """Single attempt. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def acquire(self) -> bool:
        """Retry until acquired or ``wait_seconds`` elapse."""
        deadline = time.monotonic() + self.wait_seconds
        while True:
            if await self.try_acquire():
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(self.poll_interval)

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        await self.redis.eval(_RELEASE_LUA, 1, self.key, self.token)

    async def __aenter__(self):
        if not await self.acquire():
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()
