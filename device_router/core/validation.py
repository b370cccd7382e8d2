"""Structural validation of untrusted probe payloads.

``is_valid_signals`` is the first gate on any inbound payload and must run
before bot screening or classification sees the data.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeGuard

from pydantic import ValidationError as PydanticValidationError

from device_router.core.errors import InvalidSignalsError
from device_router.core.models import RawSignals
from device_router.core.utils import is_number

EFFECTIVE_TYPES = frozenset({"slow-2g", "2g", "3g", "4g"})
COLOR_SCHEMES = frozenset({"light", "dark", "no-preference"})


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _is_connection(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    return _check_fields(
        value,
        {
            "effectiveType": lambda v: v in EFFECTIVE_TYPES,
            "downlink": is_number,
            "rtt": is_number,
            "saveData": _is_bool,
        },
    )


def _is_viewport(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and is_number(value.get("width"))
        and is_number(value.get("height"))
    )


def _is_battery(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and is_number(value.get("level"))
        and _is_bool(value.get("charging"))
    )


# Wire field name -> runtime type check
SIGNAL_FIELD_CHECKS: dict[str, Callable[[Any], bool]] = {
    "hardwareConcurrency": is_number,
    "deviceMemory": is_number,
    "connection": _is_connection,
    "userAgent": _is_str,
    "viewport": _is_viewport,
    "pixelRatio": is_number,
    "prefersReducedMotion": _is_bool,
    "prefersColorScheme": lambda v: v in COLOR_SCHEMES,
    "gpuRenderer": _is_str,
    "battery": _is_battery,
}


def _check_fields(body: dict, checks: dict[str, Callable[[Any], bool]]) -> bool:
    for name, check in checks.items():
        value = body.get(name)
        if value is None:
            continue
        if not check(value):
            return False
    return True


def is_valid_signals(body: object) -> TypeGuard[dict[str, Any]]:
    """Check that an untrusted payload is a well-typed signal record.

    Absent fields (or JSON null) are always valid; present fields must have
    the declared runtime type. Booleans are never accepted as numbers.

    Args:
        body: Decoded JSON body of a probe submission.

    Returns:
        True if the payload can be treated as RawSignals.
    """
    if not isinstance(body, dict):
        return False
    return _check_fields(body, SIGNAL_FIELD_CHECKS)


def parse_signals(body: object) -> RawSignals:
    """Validate a payload and convert it to RawSignals.

    Raises:
        InvalidSignalsError: If the payload is malformed.
    """
    if not is_valid_signals(body):
        raise InvalidSignalsError()
    try:
        return RawSignals.model_validate(body)
    except PydanticValidationError as e:
        raise InvalidSignalsError(f"Invalid probe payload: {e.error_count()} field error(s)") from e
