"""In-process profile storage with TTL expiry.

Expiry uses a single min-heap of deadlines instead of one timer per
session, so the adapter scales to large numbers of live sessions:
- Every operation first sweeps heap records whose deadline has passed
- get/exists/count/keys also compare each entry's own deadline against
  the clock, so a read never returns an expired profile
- Overwritten and deleted entries leave stale heap records behind; a
  generation number on each record lets the sweep skip them
- An optional asyncio sweeper task releases idle entries without traffic

Usage:
    from device_router.adapters.memory_storage import MemoryStorageAdapter

    storage = MemoryStorageAdapter()
    await storage.set("token", profile, ttl_seconds=3600)
    profile = await storage.get("token")
"""

from __future__ import annotations

import asyncio
import contextlib
import heapq
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from device_router.core.errors import mask_token
from device_router.core.models import DeviceProfile

logger = logging.getLogger(__name__)

# Rebuild the heap when stale records outnumber live ones by this factor
_HEAP_COMPACTION_FACTOR = 2
_HEAP_COMPACTION_MIN = 64


@dataclass
class StoredEntry:
    """A stored profile with its expiry metadata.

    Attributes:
        profile: The stored profile.
        expires_at: Clock value at which the entry expires.
        generation: Matches the heap record that schedules this entry's expiry.
    """

    profile: DeviceProfile
    expires_at: float
    generation: int


class MemoryStorageAdapter:
    """Thread-safe in-memory StorageAdapter.

    The clock is injectable (defaults to ``time.monotonic``, immune to
    system clock changes) so expiry can be tested without sleeping.

    Example:
        storage = MemoryStorageAdapter()
        await storage.set("tok", profile, 60)
        assert await storage.exists("tok")
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize an empty store.

        Args:
            clock: Returns the current time in seconds.
        """
        self._clock = clock
        self._store: dict[str, StoredEntry] = {}
        self._expiry_heap: list[tuple[float, int, str]] = []
        self._generation = 0
        self._lock = threading.Lock()
        self._sweeper: asyncio.Task[None] | None = None

    def _sweep_locked(self, now: float) -> int:
        evicted = 0
        heap = self._expiry_heap
        while heap and heap[0][0] <= now:
            _, generation, token = heapq.heappop(heap)
            entry = self._store.get(token)
            if entry is not None and entry.generation == generation:
                del self._store[token]
                evicted += 1
        if evicted:
            logger.debug("Memory storage swept %d expired profiles", evicted)
        return evicted

    def _compact_locked(self) -> None:
        if len(self._expiry_heap) < max(
            _HEAP_COMPACTION_MIN, _HEAP_COMPACTION_FACTOR * len(self._store)
        ):
            return
        self._expiry_heap = [
            (entry.expires_at, entry.generation, token) for token, entry in self._store.items()
        ]
        heapq.heapify(self._expiry_heap)

    def _live_entry_locked(self, session_token: str, now: float) -> StoredEntry | None:
        entry = self._store.get(session_token)
        if entry is None:
            return None
        if now >= entry.expires_at:
            del self._store[session_token]
            return None
        return entry

    def sweep(self) -> int:
        """Evict every expired profile now.

        Returns:
            The number of profiles evicted.
        """
        with self._lock:
            return self._sweep_locked(self._clock())

    async def get(self, session_token: str) -> DeviceProfile | None:
        with self._lock:
            now = self._clock()
            self._sweep_locked(now)
            entry = self._live_entry_locked(session_token, now)
            return entry.profile if entry is not None else None

    async def set(
        self, session_token: str, profile: DeviceProfile, ttl_seconds: float
    ) -> None:
        """Store a profile, replacing any previous entry and its deadline.

        Raises:
            ValueError: If ttl_seconds is not positive.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        with self._lock:
            now = self._clock()
            self._sweep_locked(now)
            self._generation += 1
            expires_at = now + ttl_seconds
            self._store[session_token] = StoredEntry(
                profile=profile,
                expires_at=expires_at,
                generation=self._generation,
            )
            heapq.heappush(self._expiry_heap, (expires_at, self._generation, session_token))
            self._compact_locked()
            logger.debug(
                "Memory storage set: %s (ttl=%.1fs)", mask_token(session_token), ttl_seconds
            )

    async def delete(self, session_token: str) -> None:
        with self._lock:
            self._store.pop(session_token, None)

    async def exists(self, session_token: str) -> bool:
        return await self.get(session_token) is not None

    async def clear(self) -> None:
        """Drop every profile together with every pending deadline."""
        with self._lock:
            count = len(self._store)
            self._store.clear()
            self._expiry_heap.clear()
            logger.debug("Memory storage cleared: %d profiles", count)

    async def count(self) -> int:
        with self._lock:
            self._evict_expired_locked(self._clock())
            return len(self._store)

    async def keys(self) -> list[str]:
        with self._lock:
            self._evict_expired_locked(self._clock())
            return list(self._store)

    def _evict_expired_locked(self, now: float) -> None:
        self._sweep_locked(now)
        expired = [token for token, entry in self._store.items() if now >= entry.expires_at]
        for token in expired:
            del self._store[token]

    async def start_sweeper(self, interval: float = 60.0) -> None:
        """Start a background task that sweeps expired profiles periodically.

        Args:
            interval: Seconds between sweeps. Must be positive.

        Raises:
            ValueError: If interval is not positive.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(interval))

    async def stop_sweeper(self) -> None:
        """Cancel the background sweeper if running."""
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()
