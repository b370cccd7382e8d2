"""Pytest fixtures for Device Router tests."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest

from device_router.adapters.memory_storage import MemoryStorageAdapter
from device_router.config import Settings, override_settings, reset_settings
from device_router.core.events import DeviceRouterEvent
from device_router.core.models import DeviceProfile, StoredSignals

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class EventRecorder:
    """Observer that records every event it receives."""

    def __init__(self) -> None:
        self.events: list[DeviceRouterEvent] = []

    def __call__(self, event: DeviceRouterEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[Any]:
        return [e for e in self.events if e.type == event_type]


def make_profile(token: str, **signals: Any) -> DeviceProfile:
    """Build a profile with a one-day TTL."""
    stored = StoredSignals(**(signals or {"hardware_concurrency": 4}))
    return DeviceProfile.create(token, stored, 86_400)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    """Provide a controllable clock."""
    return FakeClock()


@pytest.fixture
def memory_storage(clock: FakeClock) -> MemoryStorageAdapter:
    """Provide in-memory storage driven by the fake clock."""
    return MemoryStorageAdapter(clock=clock)


@pytest.fixture
def recorder() -> EventRecorder:
    """Provide an event recorder."""
    return EventRecorder()


@pytest.fixture
def desktop_payload() -> dict[str, Any]:
    """Probe payload of a capable desktop browser."""
    return {
        "hardwareConcurrency": 8,
        "deviceMemory": 8,
        "connection": {"effectiveType": "4g", "downlink": 50},
        "userAgent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        "viewport": {"width": 1920, "height": 1080},
        "pixelRatio": 1,
        "prefersReducedMotion": False,
        "prefersColorScheme": "dark",
        "gpuRenderer": "ANGLE (NVIDIA, NVIDIA GeForce RTX 3080 Direct3D11)",
    }


@pytest.fixture
def test_settings() -> Generator[Settings, None, None]:
    """Provide test settings installed as the global instance."""
    settings = Settings(log_level="DEBUG")
    override_settings(settings)
    yield settings
    reset_settings()


@pytest.fixture
def profile_factory() -> Any:
    """Provide the make_profile helper."""
    return make_profile
