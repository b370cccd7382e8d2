"""Capability tier classification.

Four independent pure functions, one per dimension, composed by
``classify``. There is no cross-dimension interaction: a low CPU never
forces a low GPU.
"""

from __future__ import annotations

from device_router.core.models import (
    ConnectionTier,
    CpuTier,
    DeviceTiers,
    GpuTier,
    MemoryTier,
    StoredSignals,
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
    Overrides,
    ResolvedThresholds,
    TierThresholds,
    merge,
)


def classify_cpu(
    hardware_concurrency: float | None = None,
    thresholds: Overrides | CpuThresholds | None = None,
) -> CpuTier:
    """Classify logical core count. Unknown counts as low."""
    bounds = merge(DEFAULT_CPU_THRESHOLDS, thresholds)
    if hardware_concurrency is None or hardware_concurrency <= bounds.low_upper_bound:
        return CpuTier.LOW
    if hardware_concurrency <= bounds.mid_upper_bound:
        return CpuTier.MID
    return CpuTier.HIGH


def classify_memory(
    device_memory: float | None = None,
    thresholds: Overrides | MemoryThresholds | None = None,
) -> MemoryTier:
    """Classify device memory in GB. Unknown counts as low."""
    bounds = merge(DEFAULT_MEMORY_THRESHOLDS, thresholds)
    if device_memory is None or device_memory <= bounds.low_upper_bound:
        return MemoryTier.LOW
    if device_memory <= bounds.mid_upper_bound:
        return MemoryTier.MID
    return MemoryTier.HIGH


def classify_connection(
    effective_type: str | None = None,
    downlink: float | None = None,
    thresholds: Overrides | ConnectionThresholds | None = None,
) -> ConnectionTier:
    """Classify the network connection.

    An explicit effective type takes precedence over downlink. A "4g"
    effective type is only kept as 4g when the measured downlink is below
    the 4g bound; otherwise it is promoted to high. Without any signal the
    connection is assumed to be an average 4g one.

    Args:
        effective_type: Network Information API effectiveType.
        downlink: Estimated bandwidth in Mbps.
        thresholds: Partial or full connection thresholds.

    Returns:
        The connection tier.
    """
    bounds = merge(DEFAULT_CONNECTION_THRESHOLDS, thresholds)

    if effective_type in ("slow-2g", "2g"):
        return ConnectionTier.TWO_G
    if effective_type == "3g":
        return ConnectionTier.THREE_G
    if effective_type == "4g":
        if downlink is not None and downlink < bounds.downlink_4g_upper_bound:
            return ConnectionTier.FOUR_G
        return ConnectionTier.HIGH

    if downlink is not None:
        if downlink < bounds.downlink_2g_upper_bound:
            return ConnectionTier.TWO_G
        if downlink < bounds.downlink_3g_upper_bound:
            return ConnectionTier.THREE_G
        if downlink < bounds.downlink_4g_upper_bound:
            return ConnectionTier.FOUR_G
        return ConnectionTier.HIGH

    return ConnectionTier.FOUR_G


def classify_gpu(
    renderer: str | None = None,
    thresholds: Overrides | GpuThresholds | None = None,
) -> GpuTier:
    """Classify a WebGL renderer string. Missing renderer means no GPU."""
    if not renderer:
        return GpuTier.NONE
    bounds = merge(DEFAULT_GPU_THRESHOLDS, thresholds)
    if bounds.software_pattern.search(renderer):
        return GpuTier.LOW
    if bounds.high_end_pattern.search(renderer):
        return GpuTier.HIGH
    return GpuTier.MID


def classify(
    signals: StoredSignals,
    thresholds: TierThresholds | ResolvedThresholds | None = None,
) -> DeviceTiers:
    """Classify every dimension of a signal record independently.

    Args:
        signals: Raw or stored signals.
        thresholds: Partial overrides or already-resolved thresholds.

    Returns:
        DeviceTiers for cpu, memory, connection and gpu.
    """
    connection = signals.connection
    return DeviceTiers(
        cpu=classify_cpu(signals.hardware_concurrency, thresholds and thresholds.cpu),
        memory=classify_memory(signals.device_memory, thresholds and thresholds.memory),
        connection=classify_connection(
            connection.effective_type if connection else None,
            connection.downlink if connection else None,
            thresholds and thresholds.connection,
        ),
        gpu=classify_gpu(signals.gpu_renderer, thresholds and thresholds.gpu),
    )


CONSERVATIVE_TIERS = DeviceTiers(
    cpu=CpuTier.LOW,
    memory=MemoryTier.LOW,
    connection=ConnectionTier.THREE_G,
    gpu=GpuTier.LOW,
)

OPTIMISTIC_TIERS = DeviceTiers(
    cpu=CpuTier.HIGH,
    memory=MemoryTier.HIGH,
    connection=ConnectionTier.HIGH,
    gpu=GpuTier.MID,
)
