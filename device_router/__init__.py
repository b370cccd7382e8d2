"""Device Router - device capability classification and profile storage."""

__version__ = "0.1.0"

# Re-export core components for convenience
from device_router.adapters import MemoryStorageAdapter, RedisStorageAdapter
from device_router.config import Settings, get_settings
from device_router.core import (
    ACCEPT_CH_VALUE,
    CONSERVATIVE_TIERS,
    OPTIMISTIC_TIERS,
    BotRejectedError,
    ClassifiedProfile,
    ConfigurationError,
    DeviceProfile,
    DeviceRouterError,
    DeviceRouterEvent,
    DeviceTiers,
    InvalidSignalsError,
    ProfileStorageError,
    RawSignals,
    RenderingHints,
    StoredSignals,
    ThresholdValidationError,
    TierThresholds,
    classify,
    classify_from_headers,
    derive_hints,
    emit_event,
    is_bot_signals,
    is_valid_signals,
    resolve_fallback,
    validate_thresholds,
)
from device_router.ports import StorageAdapter
from device_router.services import DeviceRouter, ProbeResult

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "DeviceRouterError",
    "ConfigurationError",
    "ThresholdValidationError",
    "InvalidSignalsError",
    "BotRejectedError",
    "ProfileStorageError",
    # Models
    "RawSignals",
    "StoredSignals",
    "DeviceProfile",
    "DeviceTiers",
    "RenderingHints",
    "ClassifiedProfile",
    "TierThresholds",
    # Operations
    "classify",
    "derive_hints",
    "is_valid_signals",
    "is_bot_signals",
    "validate_thresholds",
    "classify_from_headers",
    "resolve_fallback",
    "emit_event",
    "DeviceRouterEvent",
    "ACCEPT_CH_VALUE",
    "CONSERVATIVE_TIERS",
    "OPTIMISTIC_TIERS",
    # Storage
    "StorageAdapter",
    "MemoryStorageAdapter",
    "RedisStorageAdapter",
    # Service
    "DeviceRouter",
    "ProbeResult",
]
