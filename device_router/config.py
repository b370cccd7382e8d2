"""Configuration system for Device Router.

Most settings configure the router and its storage directly. A few, such
as ``cookie_name``, are read only by HTTP adapters that mount the router
in a web framework; nothing in this package consumes them, and they live
here so every deployment knob shares one ``DEVICE_ROUTER_`` namespace.
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from device_router.core.errors import ThresholdValidationError
from device_router.core.thresholds import TierThresholds


class Settings(BaseSettings):
    """Device Router Configuration."""

    # Profile storage
    ttl_seconds: int = Field(
        default=86_400,
        gt=0,
        description="Lifetime of a stored device profile in seconds",
    )
    redis_url: str | None = Field(
        default=None,
        description="Redis URL for profile storage (in-memory storage when unset)",
    )
    redis_key_prefix: str = Field(
        default="dr:profile:",
        description="Key prefix for profiles stored in Redis",
    )

    # Session & probe
    cookie_name: str = Field(
        default="dr_session",
        description="Cookie carrying the session token (read by HTTP adapters only)",
    )
    probe_path: str = Field(
        default="/device-router/probe",
        description="Path the client probe POSTs signals to",
    )

    # Classification
    fallback_profile: Literal["conservative", "optimistic"] | None = Field(
        default=None,
        description="Preset used when no profile or header classification exists",
    )
    classify_from_headers: bool = Field(
        default=False,
        description="Estimate tiers from User-Agent and Client Hints on first request",
    )
    reject_bots: bool = Field(
        default=True,
        description="Reject probe submissions that look like automated traffic",
    )

    # Threshold overrides (unset values keep the defaults)
    cpu_low_upper_bound: float | None = Field(default=None, description="Max cores for low CPU")
    cpu_mid_upper_bound: float | None = Field(default=None, description="Max cores for mid CPU")
    memory_low_upper_bound: float | None = Field(default=None, description="Max GB for low memory")
    memory_mid_upper_bound: float | None = Field(default=None, description="Max GB for mid memory")
    connection_downlink_2g_upper_bound: float | None = Field(
        default=None, description="Downlink Mbps below which a connection is 2g"
    )
    connection_downlink_3g_upper_bound: float | None = Field(
        default=None, description="Downlink Mbps below which a connection is 3g"
    )
    connection_downlink_4g_upper_bound: float | None = Field(
        default=None, description="Downlink Mbps below which a connection is 4g"
    )
    gpu_software_pattern: str | None = Field(
        default=None, description="Case-insensitive regex for software GPU renderers"
    )
    gpu_high_end_pattern: str | None = Field(
        default=None, description="Case-insensitive regex for high-end GPU renderers"
    )

    # Diagnostics
    no_probe_data_threshold: int = Field(
        default=50,
        ge=1,
        description="Probe-less requests before the missing-probe warning",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON structured logs",
    )

    model_config = {
        "env_prefix": "DEVICE_ROUTER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    def tier_thresholds(self) -> TierThresholds | None:
        """Collect the configured threshold overrides.

        Returns:
            TierThresholds with only the configured fields, or None if no
            override is set.

        Raises:
            ThresholdValidationError: If a GPU pattern does not compile.
        """

        def pick(prefix: str, names: tuple[str, ...]) -> dict[str, Any]:
            values = {name: getattr(self, f"{prefix}_{name}") for name in names}
            return {k: v for k, v in values.items() if v is not None}

        gpu: dict[str, Any] = {}
        violations: list[str] = []
        for name in ("software_pattern", "high_end_pattern"):
            source = getattr(self, f"gpu_{name}")
            if source is None:
                continue
            try:
                gpu[name] = re.compile(source, re.I)
            except re.error as e:
                violations.append(f"gpu.{name} is not a valid regular expression: {e}")
        if violations:
            raise ThresholdValidationError(violations)

        thresholds = TierThresholds(
            cpu=pick("cpu", ("low_upper_bound", "mid_upper_bound")),
            memory=pick("memory", ("low_upper_bound", "mid_upper_bound")),
            connection=pick(
                "connection",
                (
                    "downlink_2g_upper_bound",
                    "downlink_3g_upper_bound",
                    "downlink_4g_upper_bound",
                ),
            ),
            gpu=gpu,
        )
        if not any((thresholds.cpu, thresholds.memory, thresholds.connection, thresholds.gpu)):
            return None
        return thresholds


# Settings singleton with dependency injection support
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the settings instance (lazy-loaded singleton).

    Returns:
        The Settings instance.

    Example:
        from device_router.config import get_settings
        settings = get_settings()
        print(settings.ttl_seconds)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def override_settings(new_settings: Settings) -> None:
    """Override the settings instance (for testing).

    Args:
        new_settings: The new Settings instance to use.
    """
    global _settings
    _settings = new_settings


def reset_settings() -> None:
    """Reset settings to None (forces reload on next get_settings call)."""
    global _settings
    _settings = None
