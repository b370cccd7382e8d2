"""Observer events and best-effort dispatch.

Observers receive one of the ``DeviceRouterEvent`` dataclasses through
``emit_event``. Dispatch is best-effort: a callback can raise, return a
failing coroutine, or block briefly, and the classification and storage
pipeline is unaffected.

Usage:
    from device_router.core.events import ProfileClassifyEvent, emit_event

    async def on_event(event):
        await metrics.record(event.type)

    emit_event(on_event, event)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, ClassVar, Literal, Union

from device_router.core.models import (
    DeviceTiers,
    ProfileSource,
    RawSignals,
    RenderingHints,
    StoredSignals,
)

logger = logging.getLogger(__name__)

ErrorPhase = Literal["middleware", "endpoint"]

# Strong references to in-flight observer tasks until they finish
_pending: set[asyncio.Future[Any]] = set()


@dataclass(frozen=True)
class ProfileClassifyEvent:
    """A request was classified.

    Attributes:
        session_token: Token of the session ('' when none).
        tiers: Resulting tiers.
        hints: Resulting hints.
        source: How the classification was obtained.
        duration_ms: Time spent in classification and hint derivation.
    """

    type: ClassVar[str] = "profile:classify"

    session_token: str
    tiers: DeviceTiers
    hints: RenderingHints
    source: ProfileSource
    duration_ms: float


@dataclass(frozen=True)
class ProfileStoreEvent:
    """A probe submission was persisted.

    Attributes:
        session_token: Token the profile was stored under.
        signals: The signals that were stored.
        duration_ms: Time spent in the storage write.
    """

    type: ClassVar[str] = "profile:store"

    session_token: str
    signals: StoredSignals
    duration_ms: float


@dataclass(frozen=True)
class BotRejectEvent:
    """A probe submission was rejected as automated traffic.

    Attributes:
        session_token: Existing token of the submitter ('' when none).
        signals: The raw submitted signals.
        duration_ms: Time spent in validation and bot screening.
    """

    type: ClassVar[str] = "bot:reject"

    session_token: str
    signals: RawSignals
    duration_ms: float


@dataclass(frozen=True)
class ErrorEvent:
    """Storage or pipeline failure surfaced to the caller."""

    type: ClassVar[str] = "error"

    error: BaseException
    error_message: str
    phase: ErrorPhase
    session_token: str | None = None


@dataclass(frozen=True)
class NoProbeDataDiagnostic:
    """Many requests were handled without ever seeing a probe submission."""

    type: ClassVar[str] = "diagnostic:no-probe-data"

    middleware_invocations: int
    probe_path: str


DeviceRouterEvent = Union[
    ProfileClassifyEvent,
    ProfileStoreEvent,
    BotRejectEvent,
    ErrorEvent,
    NoProbeDataDiagnostic,
]

OnEventCallback = Callable[[DeviceRouterEvent], Union[None, Awaitable[None]]]


def extract_error_message(err: object) -> str:
    """Best-effort human readable message for any raised object.

    Args:
        err: An exception, a mapping or object with a ``message``, or anything.

    Returns:
        The message string.
    """
    if isinstance(err, BaseException):
        return str(err)
    if isinstance(err, dict) and isinstance(err.get("message"), str):
        return err["message"]
    message = getattr(err, "message", None)
    if isinstance(message, str):
        return message
    return str(err)


def _consume_result(task: asyncio.Future[Any]) -> None:
    _pending.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Event observer failed asynchronously: %s", exc)


def emit_event(callback: OnEventCallback | None, event: DeviceRouterEvent) -> None:
    """Deliver an event to an observer without ever raising.

    The callback runs synchronously. Exceptions it raises are swallowed. If
    it returns an awaitable, the awaitable is scheduled on the running loop
    with a done-callback that retrieves any exception, so an async failure
    never surfaces as an unhandled error. Without a running loop a returned
    coroutine is closed instead of left un-awaited.

    Args:
        callback: Observer, or None to disable dispatch.
        event: The event to deliver.
    """
    if callback is None:
        return
    try:
        result = callback(event)
    except Exception as e:
        logger.debug("Event observer raised for %s: %s", event.type, e)
        return

    if result is None or not inspect.isawaitable(result):
        return

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        if inspect.iscoroutine(result):
            result.close()
        return

    try:
        future = asyncio.ensure_future(result, loop=loop)
    except (TypeError, ValueError) as e:
        logger.debug("Event observer returned an unschedulable awaitable: %s", e)
        return
    _pending.add(future)
    future.add_done_callback(_consume_result)
