import logging
from contextlib import asynccontextmanager
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.errors import SlotLockTimeout
from app.platform.ports.slot_lock import SlotLockPort

log = logging.getLogger("lock.postgres")

LOCK_NOT_AVAILABLE = "55P03"

def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)

class PostgresAdvisoryLock(SlotLockPort):
    """pg_advisory_xact_lock on hashtext(key); Postgres drops it at commit or rollback."""

    def __init__(self, timeout_seconds: float):
        self.timeout_ms = max(int(timeout_seconds * 1000), 1)

    @asynccontextmanager
    async def unit_of_work(self, session: AsyncSession, key: str):
        async with session.begin():
            # SET does not take bind parameters
            await session.execute(text(f"SET LOCAL lock_timeout = '{self.timeout_ms}ms'"))
            try:
                await session.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {"key": key})
            except DBAPIError as e:
                if _sqlstate(e) == LOCK_NOT_AVAILABLE:
                    log.warning(f"[PG LOCK] timeout key={key}")
                    raise SlotLockTimeout(key) from e
                raise
            log.debug(f"[PG LOCK] acquired key={key}")
            yield
