"""Infrastructure adapters for Device Router."""

from device_router.adapters.memory_storage import MemoryStorageAdapter
from device_router.adapters.redis_storage import RedisStorageAdapter

__all__ = [
    "MemoryStorageAdapter",
    "RedisStorageAdapter",
]
