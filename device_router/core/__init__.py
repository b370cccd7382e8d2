"""Core components for Device Router."""

from device_router.core.bot import is_bot_signals
from device_router.core.classify import (
    CONSERVATIVE_TIERS,
    OPTIMISTIC_TIERS,
    classify,
    classify_connection,
    classify_cpu,
    classify_gpu,
    classify_memory,
)
from device_router.core.errors import (
    BotRejectedError,
    ConfigurationError,
    DeviceRouterError,
    InvalidSignalsError,
    ProfileStorageError,
    StorageError,
    ThresholdValidationError,
    ValidationError,
)
from device_router.core.events import (
    BotRejectEvent,
    DeviceRouterEvent,
    ErrorEvent,
    NoProbeDataDiagnostic,
    OnEventCallback,
    ProfileClassifyEvent,
    ProfileStoreEvent,
    emit_event,
    extract_error_message,
)
from device_router.core.headers import (
    ACCEPT_CH_VALUE,
    classify_from_headers,
    resolve_fallback,
)
from device_router.core.health import NO_PROBE_DATA_THRESHOLD, ProbeHealthMonitor
from device_router.core.hints import derive_hints
from device_router.core.models import (
    BatteryInfo,
    ClassifiedProfile,
    ConnectionInfo,
    ConnectionTier,
    CpuTier,
    DeviceProfile,
    DeviceTiers,
    FallbackProfile,
    GpuTier,
    MemoryTier,
    ProfileSource,
    RawSignals,
    RenderingHints,
    StoredSignals,
    Viewport,
)
from device_router.core.thresholds import (
    DEFAULT_CONNECTION_THRESHOLDS,
    DEFAULT_CPU_THRESHOLDS,
    DEFAULT_GPU_THRESHOLDS,
    DEFAULT_MEMORY_THRESHOLDS,
    ConnectionThresholds,
    CpuThresholds,
    GpuThresholds,
    MemoryThresholds,
    ResolvedThresholds,
    TierThresholds,
    validate_thresholds,
)
from device_router.core.validation import is_valid_signals, parse_signals

__all__ = [
    # Errors
    "DeviceRouterError",
    "ConfigurationError",
    "ThresholdValidationError",
    "ValidationError",
    "InvalidSignalsError",
    "BotRejectedError",
    "StorageError",
    "ProfileStorageError",
    # Models
    "RawSignals",
    "StoredSignals",
    "ConnectionInfo",
    "Viewport",
    "BatteryInfo",
    "DeviceProfile",
    "DeviceTiers",
    "CpuTier",
    "MemoryTier",
    "ConnectionTier",
    "GpuTier",
    "RenderingHints",
    "ClassifiedProfile",
    "ProfileSource",
    "FallbackProfile",
    # Thresholds
    "CpuThresholds",
    "MemoryThresholds",
    "ConnectionThresholds",
    "GpuThresholds",
    "TierThresholds",
    "ResolvedThresholds",
    "DEFAULT_CPU_THRESHOLDS",
    "DEFAULT_MEMORY_THRESHOLDS",
    "DEFAULT_CONNECTION_THRESHOLDS",
    "DEFAULT_GPU_THRESHOLDS",
    "validate_thresholds",
    # Classification
    "classify",
    "classify_cpu",
    "classify_memory",
    "classify_connection",
    "classify_gpu",
    "CONSERVATIVE_TIERS",
    "OPTIMISTIC_TIERS",
    "classify_from_headers",
    "resolve_fallback",
    "ACCEPT_CH_VALUE",
    "derive_hints",
    # Screening
    "is_valid_signals",
    "parse_signals",
    "is_bot_signals",
    # Events & health
    "DeviceRouterEvent",
    "ProfileClassifyEvent",
    "ProfileStoreEvent",
    "BotRejectEvent",
    "ErrorEvent",
    "NoProbeDataDiagnostic",
    "OnEventCallback",
    "emit_event",
    "extract_error_message",
    "ProbeHealthMonitor",
    "NO_PROBE_DATA_THRESHOLD",
]
