"""Redis-backed profile storage.

Works with ``redis.asyncio.Redis`` or any client exposing the same
coroutine methods. Expiry is delegated to Redis (SET ... EX). EX only
accepts a positive whole number of seconds, so fractional TTLs are rounded
up.

Transport and decode errors are logged and converted to "not found" or a
no-op: a flaky cache must never take down request handling, since the
probe simply re-runs on the client's next visit.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Protocol

from pydantic import ValidationError as PydanticValidationError

from device_router.core.errors import mask_token
from device_router.core.models import DeviceProfile

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "dr:profile:"


class RedisClientProtocol(Protocol):
    """Subset of the redis.asyncio.Redis API used by the adapter.

    ``scan`` is optional at runtime; when a client lacks it the adapter
    falls back to the blocking KEYS command.
    """

    async def get(self, name: str) -> bytes | str | None: ...

    async def execute_command(self, *args: Any, **options: Any) -> Any: ...

    async def delete(self, *names: str) -> int: ...

    async def exists(self, *names: str) -> int: ...

    async def keys(self, pattern: str = "*") -> list[bytes | str]: ...


def _as_str(value: bytes | str) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisStorageAdapter:
    """StorageAdapter over a Redis client.

    Example:
        import redis.asyncio as redis

        client = redis.Redis.from_url("redis://localhost:6379/0")
        storage = RedisStorageAdapter(client, key_prefix="dr:profile:")
    """

    def __init__(
        self,
        client: RedisClientProtocol,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        scan_count: int | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            client: Async Redis client.
            key_prefix: Prefix for every key owned by this adapter.
            scan_count: Optional COUNT hint for SCAN paging.
        """
        self._client = client
        self._prefix = key_prefix
        self._scan_count = scan_count

    @property
    def key_prefix(self) -> str:
        return self._prefix

    def _key(self, session_token: str) -> str:
        return f"{self._prefix}{session_token}"

    async def _scan_keys(self) -> list[str]:
        pattern = f"{self._prefix}*"
        scan = getattr(self._client, "scan", None)
        if scan is None:
            return [_as_str(k) for k in await self._client.keys(pattern)]

        all_keys: list[str] = []
        cursor = 0
        while True:
            if self._scan_count is not None:
                next_cursor, batch = await scan(cursor, match=pattern, count=self._scan_count)
            else:
                next_cursor, batch = await scan(cursor, match=pattern)
            all_keys.extend(_as_str(k) for k in batch)
            cursor = int(next_cursor)
            if cursor == 0:
                return all_keys

    async def get(self, session_token: str) -> DeviceProfile | None:
        try:
            data = await self._client.get(self._key(session_token))
            if not data:
                return None
            return DeviceProfile.from_json(data)
        except PydanticValidationError as e:
            logger.debug(
                "Discarding undecodable profile for %s: %s", mask_token(session_token), e
            )
            return None
        except Exception as e:
            logger.debug("Redis get failed for %s: %s", mask_token(session_token), e)
            return None

    async def set(
        self, session_token: str, profile: DeviceProfile, ttl_seconds: float
    ) -> None:
        try:
            await self._client.execute_command(
                "SET",
                self._key(session_token),
                profile.to_json(),
                "EX",
                str(max(1, math.ceil(ttl_seconds))),
            )
        except Exception as e:
            # Profile is not stored; the probe re-runs on the next visit
            logger.debug("Redis set failed for %s: %s", mask_token(session_token), e)

    async def delete(self, session_token: str) -> None:
        try:
            await self._client.delete(self._key(session_token))
        except Exception as e:
            # Key still expires via its TTL
            logger.debug("Redis delete failed for %s: %s", mask_token(session_token), e)

    async def exists(self, session_token: str) -> bool:
        try:
            return await self._client.exists(self._key(session_token)) > 0
        except Exception as e:
            logger.debug("Redis exists failed for %s: %s", mask_token(session_token), e)
            return False

    async def clear(self) -> None:
        try:
            keys = await self._scan_keys()
            if keys:
                await self._client.delete(*keys)
        except Exception as e:
            logger.debug("Redis clear failed: %s", e)

    async def count(self) -> int:
        try:
            return len(await self._scan_keys())
        except Exception as e:
            logger.debug("Redis count failed: %s", e)
            return 0

    async def keys(self) -> list[str]:
        try:
            keys = await self._scan_keys()
        except Exception as e:
            logger.debug("Redis keys failed: %s", e)
            return []
        return [k[len(self._prefix):] for k in keys]
