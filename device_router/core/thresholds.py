"""Tier threshold configuration.

Each classification dimension has a frozen dataclass of boundaries with
module-level defaults. Callers supply partial overrides per dimension
through ``TierThresholds``; ``validate_thresholds`` merges them onto the
defaults once at setup time and reports every violated rule together.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from device_router.core.errors import ThresholdValidationError
from device_router.core.utils import is_number


@dataclass(frozen=True)
class CpuThresholds:
    """Upper bounds (inclusive) on logical core count for low and mid tiers."""

    low_upper_bound: float = 2
    mid_upper_bound: float = 4


@dataclass(frozen=True)
class MemoryThresholds:
    """Upper bounds (inclusive) on device memory in GB for low and mid tiers."""

    low_upper_bound: float = 2
    mid_upper_bound: float = 4


@dataclass(frozen=True)
class ConnectionThresholds:
    """Exclusive downlink upper bounds in Mbps for 2g, 3g and 4g tiers."""

    downlink_2g_upper_bound: float = 0.5
    downlink_3g_upper_bound: float = 2
    downlink_4g_upper_bound: float = 5


@dataclass(frozen=True)
class GpuThresholds:
    """Renderer string patterns for software and high-end GPUs."""

    software_pattern: re.Pattern[str] = re.compile(
        r"SwiftShader|llvmpipe|Software Rasterizer", re.I
    )
    high_end_pattern: re.Pattern[str] = re.compile(
        r"\bRTX\b|Radeon RX [5-9]\d{3}|Radeon Pro|Apple M\d", re.I
    )


DEFAULT_CPU_THRESHOLDS = CpuThresholds()
DEFAULT_MEMORY_THRESHOLDS = MemoryThresholds()
DEFAULT_CONNECTION_THRESHOLDS = ConnectionThresholds()
DEFAULT_GPU_THRESHOLDS = GpuThresholds()

Overrides = Mapping[str, Any]

T = TypeVar("T")


@dataclass(frozen=True)
class TierThresholds:
    """Partial per-dimension overrides merged over the defaults.

    Example:
        TierThresholds(cpu={"low_upper_bound": 4, "mid_upper_bound": 8})
    """

    cpu: Overrides = field(default_factory=dict)
    memory: Overrides = field(default_factory=dict)
    connection: Overrides = field(default_factory=dict)
    gpu: Overrides = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Overrides | None]) -> TierThresholds:
        """Build from a nested mapping such as ``{"cpu": {...}}``.

        Raises:
            ThresholdValidationError: If a dimension name is unknown.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ThresholdValidationError(
                [f"unknown threshold dimension '{name}'" for name in unknown]
            )
        return cls(**{name: dict(value or {}) for name, value in data.items()})


@dataclass(frozen=True)
class ResolvedThresholds:
    """Complete thresholds for every dimension after merging overrides."""

    cpu: CpuThresholds = DEFAULT_CPU_THRESHOLDS
    memory: MemoryThresholds = DEFAULT_MEMORY_THRESHOLDS
    connection: ConnectionThresholds = DEFAULT_CONNECTION_THRESHOLDS
    gpu: GpuThresholds = DEFAULT_GPU_THRESHOLDS


def merge(defaults: T, overrides: Overrides | T | None) -> T:
    """Merge a partial override mapping (or a full dataclass) onto defaults.

    Keys whose value is None are ignored, so an unset override never
    clobbers a default.
    """
    if overrides is None:
        return defaults
    if isinstance(overrides, type(defaults)):
        return overrides
    changes = {k: v for k, v in overrides.items() if v is not None}  # type: ignore[union-attr]
    return dataclasses.replace(defaults, **changes)  # type: ignore[type-var]


def _unknown_fields(dimension: str, defaults: Any, overrides: Overrides) -> list[str]:
    known = {f.name for f in dataclasses.fields(defaults)}
    return [
        f"{dimension}.{name} is not a recognized threshold"
        for name in sorted(set(overrides) - known)
    ]


def _check_positive(dimension: str, values: Mapping[str, Any]) -> list[str]:
    errors = []
    for name, value in values.items():
        if not is_number(value):
            errors.append(f"{dimension}.{name} must be a number, got {value!r}")
        elif not value > 0:
            errors.append(f"{dimension}.{name} must be positive, got {value}")
    return errors


def _numeric(*values: Any) -> bool:
    return all(is_number(v) and v > 0 for v in values)


def validate_thresholds(
    overrides: TierThresholds | Mapping[str, Overrides | None] | None,
) -> ResolvedThresholds:
    """Merge overrides onto defaults and validate every rule.

    Rules checked:
        - every numeric bound is a finite number greater than zero
        - cpu and memory low_upper_bound < mid_upper_bound
        - connection 2g bound < 3g bound < 4g bound
        - gpu patterns, when supplied, are compiled regular expressions
        - no unknown dimensions or fields

    Args:
        overrides: Partial overrides, as a TierThresholds or nested mapping.

    Returns:
        The fully merged thresholds.

    Raises:
        ThresholdValidationError: Listing every violated rule.
    """
    if overrides is None:
        return ResolvedThresholds()
    if not isinstance(overrides, TierThresholds):
        overrides = TierThresholds.from_mapping(overrides)

    violations: list[str] = []

    for dimension, defaults in (
        ("cpu", DEFAULT_CPU_THRESHOLDS),
        ("memory", DEFAULT_MEMORY_THRESHOLDS),
        ("connection", DEFAULT_CONNECTION_THRESHOLDS),
        ("gpu", DEFAULT_GPU_THRESHOLDS),
    ):
        violations.extend(_unknown_fields(dimension, defaults, getattr(overrides, dimension)))

    if violations:
        raise ThresholdValidationError(violations)

    cpu = merge(DEFAULT_CPU_THRESHOLDS, overrides.cpu)
    memory = merge(DEFAULT_MEMORY_THRESHOLDS, overrides.memory)
    connection = merge(DEFAULT_CONNECTION_THRESHOLDS, overrides.connection)

    for dimension, bounds in (("cpu", cpu), ("memory", memory)):
        violations.extend(_check_positive(dimension, dataclasses.asdict(bounds)))
        low, mid = bounds.low_upper_bound, bounds.mid_upper_bound
        if _numeric(low, mid) and low >= mid:
            violations.append(
                f"{dimension}.low_upper_bound ({low}) must be less than "
                f"{dimension}.mid_upper_bound ({mid})"
            )

    violations.extend(_check_positive("connection", dataclasses.asdict(connection)))
    b2g = connection.downlink_2g_upper_bound
    b3g = connection.downlink_3g_upper_bound
    b4g = connection.downlink_4g_upper_bound
    if _numeric(b2g, b3g) and b2g >= b3g:
        violations.append(
            f"connection.downlink_2g_upper_bound ({b2g}) must be less than "
            f"connection.downlink_3g_upper_bound ({b3g})"
        )
    if _numeric(b3g, b4g) and b3g >= b4g:
        violations.append(
            f"connection.downlink_3g_upper_bound ({b3g}) must be less than "
            f"connection.downlink_4g_upper_bound ({b4g})"
        )

    for name, value in overrides.gpu.items():
        if value is not None and not isinstance(value, re.Pattern):
            violations.append(f"gpu.{name} must be a compiled regular expression")

    if violations:
        raise ThresholdValidationError(violations)

    return ResolvedThresholds(
        cpu=cpu,
        memory=memory,
        connection=connection,
        gpu=merge(DEFAULT_GPU_THRESHOLDS, overrides.gpu),
    )
