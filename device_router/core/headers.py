"""First-request classification from HTTP headers and static presets.

Used only when no stored profile exists yet for the session.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from device_router.core.classify import CONSERVATIVE_TIERS, OPTIMISTIC_TIERS
from device_router.core.hints import derive_hints
from device_router.core.models import (
    ClassifiedProfile,
    ConnectionTier,
    CpuTier,
    DeviceProfile,
    DeviceTiers,
    FallbackProfile,
    GpuTier,
    MemoryTier,
    ProfileSource,
)
from device_router.core.patterns import MOBILE_UA_PATTERNS, TABLET_UA_PATTERNS, matches_any

ACCEPT_CH_VALUE = "Sec-CH-UA-Mobile, Sec-CH-UA-Platform, Device-Memory, Save-Data"

HeaderValue = str | Sequence[str] | None

MOBILE_BASELINE = DeviceTiers(
    cpu=CpuTier.LOW,
    memory=MemoryTier.LOW,
    connection=ConnectionTier.FOUR_G,
    gpu=GpuTier.MID,
)

TABLET_BASELINE = DeviceTiers(
    cpu=CpuTier.MID,
    memory=MemoryTier.MID,
    connection=ConnectionTier.FOUR_G,
    gpu=GpuTier.MID,
)

DESKTOP_BASELINE = DeviceTiers(
    cpu=CpuTier.HIGH,
    memory=MemoryTier.HIGH,
    connection=ConnectionTier.HIGH,
    gpu=GpuTier.MID,
)


def normalize_headers(headers: Mapping[str, HeaderValue]) -> dict[str, str]:
    """Lower-case header names and keep the first value of multi-valued headers."""
    flat: dict[str, str] = {}
    for name, value in headers.items():
        if value is None:
            continue
        if not isinstance(value, str):
            if not value:
                continue
            value = value[0]
        flat[name.lower()] = value
    return flat


def _memory_tier_from_header(value: str) -> MemoryTier | None:
    try:
        gb = float(value)
    except ValueError:
        return None
    if gb != gb:  # NaN
        return None
    if gb <= 2:
        return MemoryTier.LOW
    if gb <= 4:
        return MemoryTier.MID
    return MemoryTier.HIGH


def classify_from_headers(
    headers: Mapping[str, HeaderValue],
    *,
    mobile_patterns: Sequence[re.Pattern[str]] = MOBILE_UA_PATTERNS,
    tablet_patterns: Sequence[re.Pattern[str]] = TABLET_UA_PATTERNS,
) -> DeviceTiers:
    """Estimate tiers from User-Agent and Client Hints headers.

    The User-Agent picks a mobile, tablet or desktop baseline (mobile is
    checked first). Client Hints then override specific dimensions:
    ``Sec-CH-UA-Mobile: ?1`` forces the mobile baseline, a numeric
    ``Device-Memory`` sets the memory tier and ``Save-Data: on`` forces 3g.

    Args:
        headers: Request headers; names are matched case-insensitively.
        mobile_patterns: Mobile User-Agent patterns.
        tablet_patterns: Tablet User-Agent patterns.

    Returns:
        Estimated DeviceTiers.
    """
    flat = normalize_headers(headers)
    ua = flat.get("user-agent", "")

    if flat.get("sec-ch-ua-mobile") == "?1" or matches_any(ua, mobile_patterns):
        tiers = MOBILE_BASELINE
    elif matches_any(ua, tablet_patterns):
        tiers = TABLET_BASELINE
    else:
        tiers = DESKTOP_BASELINE

    device_memory = flat.get("device-memory")
    if device_memory:
        memory = _memory_tier_from_header(device_memory)
        if memory is not None:
            tiers = tiers.model_copy(update={"memory": memory})

    if flat.get("save-data") == "on":
        tiers = tiers.model_copy(update={"connection": ConnectionTier.THREE_G})

    return tiers


def classify_headers_profile(headers: Mapping[str, HeaderValue]) -> ClassifiedProfile:
    """Header classification wrapped as a synthetic ClassifiedProfile."""
    tiers = classify_from_headers(headers)
    return ClassifiedProfile(
        profile=DeviceProfile.synthetic(),
        tiers=tiers,
        hints=derive_hints(tiers),
        source=ProfileSource.HEADERS,
    )


def resolve_fallback(fallback: FallbackProfile) -> ClassifiedProfile:
    """Build a ClassifiedProfile from a preset name or explicit tiers.

    Args:
        fallback: "conservative", "optimistic" or a DeviceTiers.

    Returns:
        A ClassifiedProfile with a synthetic profile and source "fallback".

    Raises:
        ValueError: If a preset name is not recognized.
    """
    if fallback == "conservative":
        tiers = CONSERVATIVE_TIERS
    elif fallback == "optimistic":
        tiers = OPTIMISTIC_TIERS
    elif isinstance(fallback, DeviceTiers):
        tiers = fallback
    else:
        raise ValueError(f"Unknown fallback profile: {fallback!r}")

    return ClassifiedProfile(
        profile=DeviceProfile.synthetic(),
        tiers=tiers,
        hints=derive_hints(tiers),
        source=ProfileSource.FALLBACK,
    )
