"""Data models for Device Router.

Models use snake_case attributes with camelCase wire aliases so the JSON
payload posted by the browser probe validates directly and stored profiles
serialize back into the same shape.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from device_router.core.utils import add_seconds, to_iso_z, utc_now

SCHEMA_VERSION = 1

EffectiveType = Literal["slow-2g", "2g", "3g", "4g"]
ColorScheme = Literal["light", "dark", "no-preference"]


class _WireModel(BaseModel):
    """Base for models exchanged with the probe and with storage."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Dump with camelCase keys, omitting unknown (None) fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CpuTier(str, Enum):
    """CPU capability tier."""

    LOW = "low"
    MID = "mid"
    HIGH = "high"


class MemoryTier(str, Enum):
    """Device memory tier."""

    LOW = "low"
    MID = "mid"
    HIGH = "high"


class ConnectionTier(str, Enum):
    """Network connection tier."""

    TWO_G = "2g"
    THREE_G = "3g"
    FOUR_G = "4g"
    HIGH = "high"


class GpuTier(str, Enum):
    """GPU capability tier."""

    NONE = "none"
    LOW = "low"
    MID = "mid"
    HIGH = "high"


class ProfileSource(str, Enum):
    """How a classification was obtained."""

    PROBE = "probe"  # Stored signals from the client probe
    HEADERS = "headers"  # User-Agent and Client Hints estimate
    FALLBACK = "fallback"  # Static preset


class ConnectionInfo(_WireModel):
    """Network Information API snapshot."""

    effective_type: EffectiveType | None = None
    downlink: float | None = None
    rtt: float | None = None
    save_data: bool | None = None


class Viewport(_WireModel):
    """Layout viewport size in CSS pixels."""

    width: float
    height: float


class BatteryInfo(_WireModel):
    """Battery Status API snapshot."""

    level: float = Field(..., description="Charge level between 0 and 1")
    charging: bool


class StoredSignals(_WireModel):
    """Signals that are persisted with a profile.

    User agent and viewport are deliberately absent: they are only needed
    for bot screening at submission time.
    """

    hardware_concurrency: float | None = None
    device_memory: float | None = None
    connection: ConnectionInfo | None = None
    pixel_ratio: float | None = None
    prefers_reduced_motion: bool | None = None
    prefers_color_scheme: ColorScheme | None = None
    gpu_renderer: str | None = None
    battery: BatteryInfo | None = None


class RawSignals(StoredSignals):
    """Full signal record as submitted by the probe."""

    user_agent: str | None = None
    viewport: Viewport | None = None

    def to_stored(self) -> StoredSignals:
        """Drop the fields that are never persisted."""
        return StoredSignals.model_validate(
            self.model_dump(exclude={"user_agent", "viewport"}, exclude_none=True)
        )


class DeviceProfile(_WireModel):
    """A persisted device profile keyed by session token.

    Immutable; a new probe submission under the same token replaces it.
    """

    schema_version: Literal[1] = SCHEMA_VERSION
    session_token: str
    created_at: datetime
    expires_at: datetime
    signals: StoredSignals = Field(default_factory=StoredSignals)

    @field_serializer("created_at", "expires_at")
    def _serialize_timestamp(self, value: datetime) -> str:
        return to_iso_z(value)

    @classmethod
    def create(
        cls,
        session_token: str,
        signals: StoredSignals,
        ttl_seconds: float,
        now: datetime | None = None,
    ) -> DeviceProfile:
        """Build a profile expiring ``ttl_seconds`` after ``now``.

        Args:
            session_token: Opaque session identifier ('' for synthetic profiles).
            signals: Signals to persist.
            ttl_seconds: Lifetime of the profile.
            now: Creation time (defaults to the current UTC time).

        Returns:
            A new DeviceProfile.
        """
        created = now or utc_now()
        return cls(
            session_token=session_token,
            created_at=created,
            expires_at=add_seconds(created, ttl_seconds),
            signals=signals,
        )

    @classmethod
    def synthetic(cls) -> DeviceProfile:
        """Profile used for header and fallback classifications."""
        now = utc_now()
        return cls(session_token="", created_at=now, expires_at=now)

    def to_json(self) -> str:
        """Serialize to the storage wire format."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, data: str | bytes) -> DeviceProfile:
        """Parse the storage wire format."""
        return cls.model_validate_json(data)


class DeviceTiers(_WireModel):
    """Independent capability tiers for each dimension."""

    cpu: CpuTier
    memory: MemoryTier
    connection: ConnectionTier
    gpu: GpuTier


class RenderingHints(_WireModel):
    """Boolean rendering directives derived from tiers and live signals."""

    defer_heavy_components: bool
    serve_minimal_css: bool = Field(alias="serveMinimalCSS")
    reduce_animations: bool
    use_image_placeholders: bool
    disable_autoplay: bool
    prefer_server_rendering: bool
    disable_3d_effects: bool = Field(alias="disable3dEffects")


class ClassifiedProfile(_WireModel):
    """A profile together with its classification and hints."""

    profile: DeviceProfile
    tiers: DeviceTiers
    hints: RenderingHints
    source: ProfileSource


FallbackProfile = Union[Literal["conservative", "optimistic"], DeviceTiers]
