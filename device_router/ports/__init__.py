"""Port interfaces for Device Router."""

from device_router.ports.storage import StorageAdapter

__all__ = [
    "StorageAdapter",
]
