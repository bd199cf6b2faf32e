import logging
from contextlib import asynccontextmanager
from redis.asyncio import from_url as redis_from_url
from redis.exceptions import LockError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.errors import SlotLockTimeout
from app.platform.ports.slot_lock import SlotLockPort

log = logging.getLogger("lock.redis")

class RedisSlotLock(SlotLockPort):
    """Redis lease lock shared by every worker; released after the transaction ends."""

    def __init__(self, timeout_seconds: float, lease_seconds: int):
        if not settings.REDIS_URL:
            raise RuntimeError("REDIS_URL not configured")
        self.redis = redis_from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        self.timeout = timeout_seconds
        self.lease = lease_seconds

    @asynccontextmanager
    async def unit_of_work(self, session: AsyncSession, key: str):
        lock = self.redis.lock(f"slotlock:{key}", timeout=self.lease, blocking_timeout=self.timeout)
        if not await lock.acquire():
            log.warning(f"[REDIS LOCK] timeout key={key}")
            raise SlotLockTimeout(key)
        try:
            async with session.begin():
                yield
        finally:
            try:
                await lock.release()
            except LockError:
                log.warning(f"[REDIS LOCK] lease on {key} expired before release")
