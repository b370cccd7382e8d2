"""Heuristic screening of automated traffic.

Cheap and stateless: no external lookups. False positives are tolerated,
since a rejected client simply keeps the fallback profile.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from device_router.core.models import RawSignals
from device_router.core.patterns import (
    BOT_UA_PATTERNS,
    HEADLESS_GPU_PATTERNS,
    matches_any,
)


def has_substance(signals: RawSignals) -> bool:
    """Return True if any field a real browser always reports is present."""
    return not (
        signals.viewport is None
        and signals.hardware_concurrency is None
        and signals.device_memory is None
        and signals.user_agent is None
    )


def is_bot_signals(
    signals: RawSignals | Mapping[str, Any],
    *,
    ua_patterns: Sequence[re.Pattern[str]] = BOT_UA_PATTERNS,
    gpu_patterns: Sequence[re.Pattern[str]] = HEADLESS_GPU_PATTERNS,
) -> bool:
    """Flag a signal record as non-human traffic.

    Args:
        signals: Validated probe signals, as a model or wire-format mapping.
        ua_patterns: Bot User-Agent patterns.
        gpu_patterns: Headless software renderer patterns.

    Returns:
        True if the user agent or GPU renderer matches a known automation
        signature, or if the payload carries no substantive field at all.
    """
    if isinstance(signals, Mapping):
        signals = RawSignals.model_validate(signals)
    if matches_any(signals.user_agent, ua_patterns):
        return True
    if matches_any(signals.gpu_renderer, gpu_patterns):
        return True
    return not has_substance(signals)
