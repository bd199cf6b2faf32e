import asyncio
import logging
from contextlib import asynccontextmanager
from weakref import WeakValueDictionary
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.errors import SlotLockTimeout
from app.platform.ports.slot_lock import SlotLockPort

log = logging.getLogger("lock.local")

class LocalSlotLock(SlotLockPort):
    """In-process asyncio lock per key, for sqlite and single-worker deployments."""

    def __init__(self, timeout_seconds: float):
        self.timeout = timeout_seconds
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def unit_of_work(self, session: AsyncSession, key: str):
        lock = self._lock_for(key)
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
        except asyncio.TimeoutError:
            log.warning(f"[LOCAL LOCK] timeout key={key}")
            raise SlotLockTimeout(key)
        try:
            async with session.begin():
                yield
        finally:
            lock.release()
