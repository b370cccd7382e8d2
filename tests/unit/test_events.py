"""Unit tests for best-effort event dispatch."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest

from device_router.core import events as events_module
from device_router.core.events import (
    BotRejectEvent,
    ErrorEvent,
    NoProbeDataDiagnostic,
    ProfileStoreEvent,
    emit_event,
    extract_error_message,
)
from device_router.core.models import RawSignals, StoredSignals


def _store_event() -> ProfileStoreEvent:
    return ProfileStoreEvent(session_token="tok", signals=StoredSignals(), duration_ms=1.0)


class TestEventTypes:
    """Tests for event type discriminators."""

    def test_type_names(self) -> None:
        """Should expose stable type strings."""
        assert ProfileStoreEvent.type == "profile:store"
        assert BotRejectEvent.type == "bot:reject"
        assert ErrorEvent.type == "error"
        assert NoProbeDataDiagnostic.type == "diagnostic:no-probe-data"

    def test_type_is_not_a_field(self) -> None:
        """Should keep type out of the constructor."""
        event = BotRejectEvent(session_token="", signals=RawSignals(), duration_ms=0.1)
        assert event.type == "bot:reject"


class TestExtractErrorMessage:
    """Tests for extract_error_message."""

    def test_exception(self) -> None:
        assert extract_error_message(ValueError("bad")) == "bad"

    def test_mapping_with_message(self) -> None:
        assert extract_error_message({"message": "from dict"}) == "from dict"

    def test_object_with_message(self) -> None:
        class Failure:
            message = "from attr"

        assert extract_error_message(Failure()) == "from attr"

    def test_anything_else(self) -> None:
        assert extract_error_message(42) == "42"


class TestEmitEvent:
    """Tests for emit_event."""

    def test_none_callback(self) -> None:
        """Should do nothing without an observer."""
        emit_event(None, _store_event())

    def test_sync_callback_receives_event(self) -> None:
        """Should deliver the event synchronously."""
        received: list[Any] = []
        event = _store_event()

        emit_event(received.append, event)

        assert received == [event]

    def test_sync_exception_swallowed(self, caplog: pytest.LogCaptureFixture) -> None:
        """Should swallow observer exceptions and log them at debug level."""

        def broken(event: Any) -> None:
            raise RuntimeError("observer down")

        with caplog.at_level(logging.DEBUG, logger="device_router.core.events"):
            emit_event(broken, _store_event())

        assert "observer down" in caplog.text

    def test_coroutine_without_loop_is_closed(self) -> None:
        """Should close a returned coroutine when no loop is running."""
        started: list[bool] = []

        async def observer(event: Any) -> None:
            started.append(True)

        emit_event(observer, _store_event())

        assert started == []

    @pytest.mark.asyncio
    async def test_async_callback_scheduled(self) -> None:
        """Should schedule an async observer on the running loop."""
        received: list[Any] = []
        event = _store_event()

        async def observer(e: Any) -> None:
            received.append(e)

        emit_event(observer, event)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert received == [event]
        assert not events_module._pending

    @pytest.mark.asyncio
    async def test_async_failure_is_consumed(self, caplog: pytest.LogCaptureFixture) -> None:
        """Should retrieve an async observer's exception instead of leaking it."""

        async def observer(e: Any) -> None:
            raise RuntimeError("async observer down")

        with caplog.at_level(logging.DEBUG, logger="device_router.core.events"):
            emit_event(observer, _store_event())
            await asyncio.sleep(0)
            await asyncio.sleep(0)

        assert "async observer down" in caplog.text
        assert not events_module._pending

    @pytest.mark.asyncio
    async def test_slow_observer_does_not_block(self) -> None:
        """Should return before a slow async observer completes."""
        done = asyncio.Event()

        async def observer(e: Any) -> None:
            await asyncio.sleep(0.05)
            done.set()

        emit_event(observer, _store_event())

        assert not done.is_set()
        await asyncio.wait_for(done.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_future_from_another_loop_ignored(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Should drop an awaitable bound to a different loop instead of raising."""
        other_loop = asyncio.new_event_loop()
        try:
            with caplog.at_level(logging.DEBUG, logger="device_router.core.events"):
                emit_event(lambda e: other_loop.create_future(), _store_event())

            assert "unschedulable awaitable" in caplog.text
            assert not events_module._pending
        finally:
            other_loop.close()
