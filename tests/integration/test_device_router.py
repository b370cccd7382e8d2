"""Integration tests for the DeviceRouter service.

Exercises probe submission and per-request resolution end to end against
real storage adapters, with an event recorder as the observer.
"""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest

from device_router.adapters.memory_storage import MemoryStorageAdapter
from device_router.config import Settings
from device_router.core.errors import (
    BotRejectedError,
    InvalidSignalsError,
    ProfileStorageError,
    ThresholdValidationError,
)
from device_router.core.headers import ACCEPT_CH_VALUE, MOBILE_BASELINE
from device_router.core.models import DeviceTiers, ProfileSource
from device_router.services.device_router import DeviceRouter

IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


@pytest.fixture
def router(memory_storage: MemoryStorageAdapter, recorder) -> DeviceRouter:
    """Router over fake-clock memory storage with deterministic tokens."""
    counter = iter(range(1, 1000))
    return DeviceRouter(
        memory_storage,
        on_event=recorder,
        token_factory=lambda: f"token-{next(counter)}",
    )


class TestSubmitProbe:
    """Tests for probe submission."""

    @pytest.mark.asyncio
    async def test_stores_profile_under_new_token(
        self, router, memory_storage, recorder, desktop_payload
    ) -> None:
        """A real browser payload is stored and a fresh token issued."""
        result = await router.submit_probe(desktop_payload)

        assert result.session_token == "token-1"
        assert result.ttl_seconds == 86_400
        stored = await memory_storage.get("token-1")
        assert stored == result.profile
        assert stored.signals.hardware_concurrency == 8

        events = recorder.of_type("profile:store")
        assert len(events) == 1
        assert events[0].session_token == "token-1"
        assert events[0].duration_ms >= 0

    @pytest.mark.asyncio
    async def test_reuses_existing_token(self, router, memory_storage, desktop_payload) -> None:
        """An existing session token is kept and its profile replaced."""
        await router.submit_probe({"hardwareConcurrency": 2}, session_token="abc")
        result = await router.submit_probe(desktop_payload, session_token="abc")

        assert result.session_token == "abc"
        stored = await memory_storage.get("abc")
        assert stored.signals.hardware_concurrency == 8
        assert await memory_storage.count() == 1

    @pytest.mark.asyncio
    async def test_user_agent_and_viewport_not_stored(
        self, router, memory_storage, desktop_payload
    ) -> None:
        """Screening-only fields never reach storage."""
        result = await router.submit_probe(desktop_payload)

        wire = result.profile.to_wire()
        assert "userAgent" not in wire["signals"]
        assert "viewport" not in wire["signals"]

    @pytest.mark.asyncio
    async def test_invalid_payload(self, router, memory_storage, recorder) -> None:
        """A malformed payload is a 400 and writes nothing."""
        with pytest.raises(InvalidSignalsError) as exc_info:
            await router.submit_probe({"deviceMemory": "lots"})

        assert exc_info.value.http_status == 400
        assert await memory_storage.count() == 0
        assert recorder.events == []

    @pytest.mark.asyncio
    async def test_empty_payload_rejected_as_bot(self, router, memory_storage, recorder) -> None:
        """An empty object is rejected with 403 and a bot:reject event."""
        with pytest.raises(BotRejectedError) as exc_info:
            await router.submit_probe({})

        assert exc_info.value.http_status == 403
        assert str(exc_info.value) == "Bot detected"
        assert await memory_storage.count() == 0
        rejects = recorder.of_type("bot:reject")
        assert len(rejects) == 1
        assert rejects[0].session_token == ""
        assert rejects[0].signals.to_wire() == {}
        assert recorder.of_type("profile:store") == []

    @pytest.mark.asyncio
    async def test_bot_user_agent_rejected(
        self, router, memory_storage, desktop_payload
    ) -> None:
        """A crawler User-Agent is rejected even with rich signals."""
        payload = {**desktop_payload, "userAgent": "Mozilla/5.0 (compatible; Googlebot/2.1)"}
        with pytest.raises(BotRejectedError):
            await router.submit_probe(payload, session_token="existing")

        assert await memory_storage.exists("existing") is False

    @pytest.mark.asyncio
    async def test_bot_screening_can_be_disabled(self, memory_storage) -> None:
        """With reject_bots off, even an empty payload is stored."""
        router = DeviceRouter(memory_storage, reject_bots=False)
        result = await router.submit_probe({})

        assert await memory_storage.exists(result.session_token)

    @pytest.mark.asyncio
    async def test_storage_failure(self, recorder, desktop_payload) -> None:
        """A failing write surfaces as a 500 with an endpoint error event."""
        storage = AsyncMock(spec=MemoryStorageAdapter)
        storage.set.side_effect = ConnectionError("disk full")
        router = DeviceRouter(storage, on_event=recorder)

        with pytest.raises(ProfileStorageError) as exc_info:
            await router.submit_probe(desktop_payload, session_token="abcdef")

        assert exc_info.value.http_status == 500
        assert exc_info.value.phase == "endpoint"
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        errors = recorder.of_type("error")
        assert len(errors) == 1
        assert errors[0].phase == "endpoint"
        assert errors[0].error_message == "disk full"
        assert errors[0].session_token == "abcdef"
        assert recorder.of_type("profile:store") == []

    @pytest.mark.asyncio
    async def test_failing_observer_does_not_break_submission(
        self, memory_storage, desktop_payload
    ) -> None:
        """Observer exceptions never reach the caller."""

        def broken(event: Any) -> None:
            raise RuntimeError("observer down")

        router = DeviceRouter(memory_storage, on_event=broken)
        result = await router.submit_probe(desktop_payload)

        assert await memory_storage.exists(result.session_token)


class TestResolve:
    """Tests for per-request classification."""

    @pytest.mark.asyncio
    async def test_capable_desktop(self, router, recorder, desktop_payload) -> None:
        """An 8-core desktop without a renderer classifies high/high/high/none."""
        desktop_payload.pop("gpuRenderer")
        submitted = await router.submit_probe(desktop_payload)

        result = await router.resolve(submitted.session_token)

        assert result is not None
        assert result.source == ProfileSource.PROBE
        assert result.tiers == DeviceTiers(
            cpu="high", memory="high", connection="high", gpu="none"
        )
        assert result.hints.defer_heavy_components is False
        assert result.hints.disable_3d_effects is True

        classify_events = recorder.of_type("profile:classify")
        assert len(classify_events) == 1
        assert classify_events[0].session_token == submitted.session_token
        assert classify_events[0].source == ProfileSource.PROBE

    @pytest.mark.asyncio
    async def test_low_end_phone(self, router) -> None:
        """A 2-core, 1GB device on 3g gets the lightest rendering."""
        submitted = await router.submit_probe(
            {
                "hardwareConcurrency": 2,
                "deviceMemory": 1,
                "connection": {"effectiveType": "3g"},
                "userAgent": IPHONE_UA,
            }
        )

        result = await router.resolve(submitted.session_token)

        assert result.tiers == DeviceTiers(cpu="low", memory="low", connection="3g", gpu="none")
        assert all(result.hints.to_wire().values())

    @pytest.mark.asyncio
    async def test_battery_refines_hints(self, router, desktop_payload) -> None:
        """A nearly empty, unplugged battery lightens a capable device."""
        payload = {**desktop_payload, "battery": {"level": 0.05, "charging": False}}
        submitted = await router.submit_probe(payload)

        result = await router.resolve(submitted.session_token)

        assert result.tiers.cpu == "high"
        assert result.hints.defer_heavy_components is True
        assert result.hints.serve_minimal_css is False

    @pytest.mark.asyncio
    async def test_custom_thresholds_apply(self, memory_storage) -> None:
        """Threshold overrides change classification of stored signals."""
        router = DeviceRouter(
            memory_storage,
            thresholds={"cpu": {"low_upper_bound": 4, "mid_upper_bound": 8}},
        )
        submitted = await router.submit_probe({"hardwareConcurrency": 8})

        result = await router.resolve(submitted.session_token)

        assert result.tiers.cpu == "mid"

    @pytest.mark.asyncio
    async def test_no_profile_no_fallback(self, router, recorder) -> None:
        """Without a profile, header classification or fallback, nothing is attached."""
        assert await router.resolve(None) is None
        assert await router.resolve("unknown-token") is None
        assert recorder.of_type("profile:classify") == []

    @pytest.mark.asyncio
    async def test_expired_profile_falls_back(self, memory_storage, clock) -> None:
        """An expired profile is treated as absent."""
        router = DeviceRouter(
            memory_storage, ttl_seconds=60, fallback_profile="conservative"
        )
        submitted = await router.submit_probe({"hardwareConcurrency": 16})
        clock.advance(61)

        result = await router.resolve(submitted.session_token)

        assert result.source == ProfileSource.FALLBACK

    @pytest.mark.asyncio
    async def test_fallback_preset(self, memory_storage, recorder) -> None:
        """A configured preset is used for first requests."""
        router = DeviceRouter(memory_storage, fallback_profile="optimistic", on_event=recorder)

        result = await router.resolve(None)

        assert result.source == ProfileSource.FALLBACK
        assert result.tiers.gpu == "mid"
        assert result.profile.session_token == ""
        assert recorder.of_type("profile:classify")[0].session_token == ""

    @pytest.mark.asyncio
    async def test_headers_take_precedence_over_fallback(self, memory_storage) -> None:
        """Header classification is tried before the fallback preset."""
        router = DeviceRouter(
            memory_storage, classify_from_headers=True, fallback_profile="optimistic"
        )

        result = await router.resolve(None, {"User-Agent": IPHONE_UA})

        assert result.source == ProfileSource.HEADERS
        assert result.tiers == MOBILE_BASELINE
        assert router.accept_ch_header == ACCEPT_CH_VALUE

    def test_accept_ch_only_with_header_classification(self, router) -> None:
        """No Accept-CH value is advertised when header classification is off."""
        assert router.accept_ch_header is None

    @pytest.mark.asyncio
    async def test_storage_read_failure(self, recorder) -> None:
        """A failing read surfaces as a 500 with a middleware error event."""
        storage = AsyncMock(spec=MemoryStorageAdapter)
        storage.get.side_effect = TimeoutError("read timed out")
        router = DeviceRouter(storage, on_event=recorder, fallback_profile="conservative")

        with pytest.raises(ProfileStorageError) as exc_info:
            await router.resolve("tok")

        assert exc_info.value.phase == "middleware"
        errors = recorder.of_type("error")
        assert errors[0].phase == "middleware"
        assert errors[0].error_message == "read timed out"

    @pytest.mark.asyncio
    async def test_async_observer_receives_events(self, memory_storage, desktop_payload) -> None:
        """Async observers are scheduled without blocking the pipeline."""
        received: list[str] = []

        async def observer(event: Any) -> None:
            received.append(event.type)

        router = DeviceRouter(memory_storage, on_event=observer)
        submitted = await router.submit_probe(desktop_payload)
        await router.resolve(submitted.session_token)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert received == ["profile:store", "profile:classify"]


class TestProbeHealth:
    """Tests for the missing-probe diagnostic."""

    @pytest.mark.asyncio
    async def test_warns_after_threshold(self, memory_storage, recorder) -> None:
        """Repeated probe-less requests emit one diagnostic."""
        router = DeviceRouter(
            memory_storage,
            on_event=recorder,
            probe_path="/_dr/probe",
            no_probe_data_threshold=3,
        )
        for _ in range(5):
            await router.resolve(None)

        diagnostics = recorder.of_type("diagnostic:no-probe-data")
        assert len(diagnostics) == 1
        assert diagnostics[0].middleware_invocations == 3
        assert diagnostics[0].probe_path == "/_dr/probe"

    @pytest.mark.asyncio
    async def test_probe_submission_silences_diagnostic(
        self, memory_storage, recorder
    ) -> None:
        """Any probe submission, even a rejected one, disables the diagnostic."""
        router = DeviceRouter(memory_storage, on_event=recorder, no_probe_data_threshold=2)
        with pytest.raises(BotRejectedError):
            await router.submit_probe({})
        for _ in range(5):
            await router.resolve(None)

        assert recorder.of_type("diagnostic:no-probe-data") == []

    @pytest.mark.asyncio
    async def test_routers_have_independent_monitors(self, memory_storage) -> None:
        """Two routers in one process never share counts."""
        first = DeviceRouter(memory_storage)
        second = DeviceRouter(memory_storage)
        await first.resolve(None)

        assert first.health.count == 1
        assert second.health.count == 0


class TestConstruction:
    """Tests for router construction."""

    def test_invalid_thresholds_fail_at_construction(self, memory_storage) -> None:
        """Invalid overrides raise before any request is handled."""
        with pytest.raises(ThresholdValidationError, match="cpu.low_upper_bound"):
            DeviceRouter(memory_storage, thresholds={"cpu": {"low_upper_bound": 10, "mid_upper_bound": 2}})

    def test_non_positive_ttl(self, memory_storage) -> None:
        with pytest.raises(ValueError, match="ttl_seconds must be positive"):
            DeviceRouter(memory_storage, ttl_seconds=0)

    @pytest.mark.asyncio
    async def test_from_settings(self, memory_storage, test_settings: Settings) -> None:
        """from_settings carries fallback and TTL through."""
        settings = test_settings.model_copy(
            update={"fallback_profile": "conservative", "ttl_seconds": 120}
        )
        router = DeviceRouter.from_settings(memory_storage, settings)

        result = await router.resolve(None)

        assert router.ttl_seconds == 120
        assert result.source == ProfileSource.FALLBACK
