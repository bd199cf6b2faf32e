from contextlib import AbstractAsyncContextManager
from typing import Protocol, runtime_checkable
from sqlalchemy.ext.asyncio import AsyncSession

@runtime_checkable
class SlotLockPort(Protocol):
    """Exclusive lock on one (doctor, slot start) key, scoped to a single transaction.

    `unit_of_work` begins a transaction on `session`, holds the lock for its whole
    duration and releases it once the transaction has committed or rolled back.
    Raises SlotLockTimeout when the lock cannot be taken in time.
    """

    def unit_of_work(self, session: AsyncSession, key: str) -> AbstractAsyncContextManager[None]: ...
