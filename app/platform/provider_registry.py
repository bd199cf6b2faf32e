from app.core.config import settings
from app.platform.ports.slot_lock import SlotLockPort
from app.platform.adapters.lock_local import LocalSlotLock
from app.platform.adapters.lock_postgres import PostgresAdvisoryLock

class ProviderRegistry:
    _slot_lock: SlotLockPort | None = None

    @classmethod
    def slot_lock(cls) -> SlotLockPort:
        if cls._slot_lock is None:
            prov = (settings.SLOT_LOCK_PROVIDER or "postgres").lower()
            if prov == "redis":
                from app.platform.adapters.lock_redis import RedisSlotLock
                cls._slot_lock = RedisSlotLock(settings.SLOT_LOCK_TIMEOUT_SECONDS, settings.SLOT_LOCK_LEASE_SECONDS)
            elif prov == "local":
                cls._slot_lock = LocalSlotLock(settings.SLOT_LOCK_TIMEOUT_SECONDS)
            else:
                cls._slot_lock = PostgresAdvisoryLock(settings.SLOT_LOCK_TIMEOUT_SECONDS)
        return cls._slot_lock

    @classmethod
    def reset(cls) -> None:
        cls._slot_lock = None

registry = ProviderRegistry()

def get_slot_lock() -> SlotLockPort:
    return registry.slot_lock()
