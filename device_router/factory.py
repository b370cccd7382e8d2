"""Service factory for dependency injection and initialization.

This module centralizes creation of the storage adapter and the
DeviceRouter service from Settings, so HTTP adapters only need one call.

Usage:
    from device_router.factory import ServiceFactory

    factory = ServiceFactory(settings)
    router = factory.create_device_router(on_event=observer)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from device_router.adapters.memory_storage import MemoryStorageAdapter
from device_router.adapters.redis_storage import RedisStorageAdapter
from device_router.config import Settings
from device_router.core.errors import ConfigurationError
from device_router.core.logging import configure_logging
from device_router.services.device_router import DeviceRouter

if TYPE_CHECKING:
    from device_router.core.events import OnEventCallback
    from device_router.ports.storage import StorageAdapter

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Factory for creating and wiring Device Router services.

    Example:
        factory = ServiceFactory(settings)
        router = factory.create_device_router()
    """

    def __init__(
        self,
        settings: Settings,
        storage: StorageAdapter | None = None,
    ) -> None:
        """Initialize the factory.

        Args:
            settings: Application settings.
            storage: Optional storage override for testing.
        """
        self._settings = settings
        self._injected_storage = storage

    def configure_logging(self) -> None:
        """Apply the logging settings."""
        configure_logging(
            level=self._settings.log_level,
            json_format=self._settings.log_json,
        )

    def create_redis_storage(self) -> RedisStorageAdapter:
        """Create Redis storage from ``redis_url``.

        Raises:
            ConfigurationError: If redis_url is unset or redis is not installed.
        """
        if not self._settings.redis_url:
            raise ConfigurationError("redis_url is required for Redis storage")
        try:
            import redis.asyncio as redis
        except ImportError as e:
            raise ConfigurationError(
                "Redis storage requires the 'redis' package: pip install device-router[redis]"
            ) from e

        client = redis.Redis.from_url(self._settings.redis_url)
        return RedisStorageAdapter(client, key_prefix=self._settings.redis_key_prefix)

    def create_storage(self) -> StorageAdapter:
        """Create the configured storage adapter.

        Returns:
            The injected storage, Redis storage when redis_url is set,
            otherwise in-memory storage.
        """
        if self._injected_storage is not None:
            return self._injected_storage
        if self._settings.redis_url:
            logger.info("Using Redis profile storage")
            return self.create_redis_storage()
        logger.info("Using in-memory profile storage")
        return MemoryStorageAdapter()

    def create_device_router(self, on_event: OnEventCallback | None = None) -> DeviceRouter:
        """Create the DeviceRouter service.

        Args:
            on_event: Optional observer for DeviceRouterEvent notifications.

        Returns:
            Configured DeviceRouter.

        Raises:
            ThresholdValidationError: If configured thresholds are invalid.
        """
        return DeviceRouter.from_settings(self.create_storage(), self._settings, on_event)
