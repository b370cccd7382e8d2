"""Rendering hint derivation.

Hints are never stored; they are recomputed on every request from the
tiers plus optional live signals (battery state, reduced-motion preference).
"""

from __future__ import annotations

from device_router.core.models import (
    ConnectionTier,
    CpuTier,
    DeviceTiers,
    GpuTier,
    MemoryTier,
    RenderingHints,
    StoredSignals,
)

# Battery level below which an unplugged device is treated as constrained
LOW_BATTERY_LEVEL = 0.15


def is_battery_constrained(signals: StoredSignals | None) -> bool:
    """Return True when the device is unplugged and below the low-battery level."""
    if signals is None or signals.battery is None:
        return False
    battery = signals.battery
    return not battery.charging and battery.level < LOW_BATTERY_LEVEL


def derive_hints(tiers: DeviceTiers, signals: StoredSignals | None = None) -> RenderingHints:
    """Map tiers and optional live signals to rendering hints.

    Args:
        tiers: Classified device tiers.
        signals: Optional signals used for battery and motion refinements.

    Returns:
        RenderingHints; deterministic for a given input.
    """
    is_low_end = tiers.cpu == CpuTier.LOW or tiers.memory == MemoryTier.LOW
    is_slow_connection = tiers.connection in (ConnectionTier.TWO_G, ConnectionTier.THREE_G)
    battery_constrained = is_battery_constrained(signals)
    prefers_reduced_motion = signals is not None and signals.prefers_reduced_motion is True

    lighten = is_low_end or is_slow_connection or battery_constrained

    return RenderingHints(
        defer_heavy_components=lighten,
        serve_minimal_css=is_low_end,
        reduce_animations=is_low_end or prefers_reduced_motion or battery_constrained,
        use_image_placeholders=is_slow_connection,
        disable_autoplay=lighten,
        prefer_server_rendering=is_low_end,
        disable_3d_effects=tiers.gpu in (GpuTier.NONE, GpuTier.LOW),
    )
