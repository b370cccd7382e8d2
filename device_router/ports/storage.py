"""Protocol interface for profile storage.

This protocol defines the contract between the DeviceRouter service and
storage infrastructure. Using typing.Protocol enables structural subtyping,
so any object with these coroutine methods can be plugged in.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from device_router.core.models import DeviceProfile


@runtime_checkable
class StorageAdapter(Protocol):
    """Protocol for session-token keyed profile storage with TTL expiry.

    Implementations:
        - MemoryStorageAdapter: in-process, single-heap expiry sweep.
        - RedisStorageAdapter: redis.asyncio client, native key expiry.
    """

    async def get(self, session_token: str) -> DeviceProfile | None:
        """Get the profile stored under a token.

        Args:
            session_token: Opaque session identifier.

        Returns:
            The DeviceProfile, or None if absent or expired.
        """
        ...

    async def set(
        self, session_token: str, profile: DeviceProfile, ttl_seconds: float
    ) -> None:
        """Store a profile, replacing any previous one, expiring after ttl_seconds.

        Args:
            session_token: Opaque session identifier.
            profile: The profile to store.
            ttl_seconds: Lifetime in seconds.
        """
        ...

    async def delete(self, session_token: str) -> None:
        """Remove a profile if present."""
        ...

    async def exists(self, session_token: str) -> bool:
        """Return True if a non-expired profile is stored under the token."""
        ...

    async def clear(self) -> None:
        """Remove every profile owned by this adapter."""
        ...

    async def count(self) -> int:
        """Number of non-expired profiles."""
        ...

    async def keys(self) -> list[str]:
        """Session tokens of all non-expired profiles."""
        ...
