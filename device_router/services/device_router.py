"""Device Router service.

Framework-agnostic orchestration of the classification pipeline. HTTP
adapters own routing and cookies; they call:

- ``submit_probe`` with the decoded JSON body POSTed by the client probe,
  mapping ``InvalidSignalsError`` to 400, ``BotRejectedError`` to 403 and
  ``ProfileStorageError`` to 500 (each error carries ``http_status``);
- ``resolve`` on every other request with the session token from the
  cookie and the request headers, attaching the result to the request.

Pipeline for a probe submission:
    payload -> validation -> bot screening -> profile -> storage

Pipeline for a request:
    token -> storage lookup -> classify + hints (or header / fallback)
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from device_router.core.bot import is_bot_signals
from device_router.core.classify import classify
from device_router.core.errors import (
    BotRejectedError,
    ProfileStorageError,
    mask_token,
)
from device_router.core.events import (
    BotRejectEvent,
    ErrorEvent,
    ErrorPhase,
    OnEventCallback,
    ProfileClassifyEvent,
    ProfileStoreEvent,
    emit_event,
    extract_error_message,
)
from device_router.core.headers import (
    ACCEPT_CH_VALUE,
    HeaderValue,
    classify_headers_profile,
    resolve_fallback,
)
from device_router.core.health import NO_PROBE_DATA_THRESHOLD, ProbeHealthMonitor
from device_router.core.hints import derive_hints
from device_router.core.models import (
    ClassifiedProfile,
    DeviceProfile,
    FallbackProfile,
    ProfileSource,
)
from device_router.core.thresholds import TierThresholds, validate_thresholds
from device_router.core.timing import TimingContext
from device_router.core.validation import parse_signals
from device_router.ports.storage import StorageAdapter

if TYPE_CHECKING:
    from device_router.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 86_400
DEFAULT_PROBE_PATH = "/device-router/probe"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a successful probe submission.

    Attributes:
        session_token: Token the profile was stored under; adapters set it
            as the session cookie with ``max_age = ttl_seconds``.
        profile: The stored profile.
        ttl_seconds: Lifetime of the stored profile.
    """

    session_token: str
    profile: DeviceProfile
    ttl_seconds: int


def _new_token() -> str:
    return str(uuid.uuid4())


class DeviceRouter:
    """Classifies devices and persists their profiles.

    Thresholds are validated once here, at construction, so a
    misconfiguration fails at startup rather than on a request.

    Example:
        router = DeviceRouter(MemoryStorageAdapter(), fallback_profile="conservative")
        result = await router.submit_probe(payload, session_token=cookie)
        classified = await router.resolve(result.session_token, headers)
    """

    def __init__(
        self,
        storage: StorageAdapter,
        *,
        thresholds: TierThresholds | Mapping[str, Any] | None = None,
        fallback_profile: FallbackProfile | None = None,
        classify_from_headers: bool = False,
        reject_bots: bool = True,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        probe_path: str = DEFAULT_PROBE_PATH,
        on_event: OnEventCallback | None = None,
        no_probe_data_threshold: int = NO_PROBE_DATA_THRESHOLD,
        token_factory: Callable[[], str] = _new_token,
    ) -> None:
        """Initialize the router.

        Args:
            storage: Profile storage adapter.
            thresholds: Partial tier threshold overrides.
            fallback_profile: Preset or tiers used when nothing else is known.
            classify_from_headers: Estimate tiers from request headers when
                no stored profile exists.
            reject_bots: Reject probe submissions that look automated.
            ttl_seconds: Lifetime of stored profiles.
            probe_path: Path the client probe POSTs to (diagnostics only).
            on_event: Observer for DeviceRouterEvent notifications.
            no_probe_data_threshold: Probe-less requests before warning.
            token_factory: Generates new session tokens.

        Raises:
            ThresholdValidationError: If thresholds are invalid.
            ValueError: If ttl_seconds is not positive.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self._storage = storage
        self._thresholds = validate_thresholds(thresholds)
        self._fallback_profile = fallback_profile
        self._classify_from_headers = classify_from_headers
        self._reject_bots = reject_bots
        self._ttl_seconds = ttl_seconds
        self._on_event = on_event
        self._token_factory = token_factory
        self._health = ProbeHealthMonitor(
            probe_path, on_event=on_event, threshold=no_probe_data_threshold
        )

    @classmethod
    def from_settings(
        cls,
        storage: StorageAdapter,
        settings: Settings,
        on_event: OnEventCallback | None = None,
    ) -> DeviceRouter:
        """Build a router from Settings."""
        return cls(
            storage,
            thresholds=settings.tier_thresholds(),
            fallback_profile=settings.fallback_profile,
            classify_from_headers=settings.classify_from_headers,
            reject_bots=settings.reject_bots,
            ttl_seconds=settings.ttl_seconds,
            probe_path=settings.probe_path,
            on_event=on_event,
            no_probe_data_threshold=settings.no_probe_data_threshold,
        )

    @property
    def storage(self) -> StorageAdapter:
        return self._storage

    @property
    def health(self) -> ProbeHealthMonitor:
        return self._health

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    @property
    def accept_ch_header(self) -> str | None:
        """Value for the Accept-CH response header, when header classification is on."""
        return ACCEPT_CH_VALUE if self._classify_from_headers else None

    # =========================================================================
    # Probe submission
    # =========================================================================

    async def submit_probe(
        self, payload: object, session_token: str | None = None
    ) -> ProbeResult:
        """Validate, screen and store a probe submission.

        Args:
            payload: Decoded JSON body from the client probe (untrusted).
            session_token: Existing session token, reused when present.

        Returns:
            ProbeResult with the token and stored profile.

        Raises:
            InvalidSignalsError: If the payload is malformed.
            BotRejectedError: If the payload looks automated.
            ProfileStorageError: If the storage write fails.
        """
        self._health.on_probe_received()
        timing = TimingContext()

        with timing.measure("screen"):
            signals = parse_signals(payload)
            is_bot = self._reject_bots and is_bot_signals(signals)

        if is_bot:
            self._emit(
                BotRejectEvent(
                    session_token=session_token or "",
                    signals=signals,
                    duration_ms=timing.get("screen"),
                )
            )
            logger.info("Rejected bot probe submission (session=%s)", mask_token(session_token))
            raise BotRejectedError(session_token)

        token = session_token or self._token_factory()
        stored = signals.to_stored()
        profile = DeviceProfile.create(token, stored, self._ttl_seconds)

        try:
            with timing.measure("store"):
                await self._storage.set(token, profile, self._ttl_seconds)
        except Exception as e:
            self._emit_error(e, "endpoint", token)
            raise ProfileStorageError("endpoint", token, cause=e) from e

        self._emit(
            ProfileStoreEvent(
                session_token=token,
                signals=stored,
                duration_ms=timing.get("store"),
            )
        )
        logger.debug("Stored device profile (session=%s)", mask_token(token))
        return ProbeResult(session_token=token, profile=profile, ttl_seconds=self._ttl_seconds)

    # =========================================================================
    # Per-request classification
    # =========================================================================

    async def resolve(
        self,
        session_token: str | None,
        headers: Mapping[str, HeaderValue] | None = None,
    ) -> ClassifiedProfile | None:
        """Classify the current request.

        Args:
            session_token: Token from the session cookie, if any.
            headers: Request headers for first-request classification.

        Returns:
            A ClassifiedProfile, or None when there is no stored profile,
            header classification is off and no fallback is configured.

        Raises:
            ProfileStorageError: If the storage read fails.
        """
        profile: DeviceProfile | None = None
        if session_token:
            try:
                profile = await self._storage.get(session_token)
            except Exception as e:
                self._emit_error(e, "middleware", session_token)
                raise ProfileStorageError("middleware", session_token, cause=e) from e

        timing = TimingContext()
        if profile is None:
            self._health.on_middleware_hit()
            with timing.measure("classify"):
                result = self._resolve_first_request(headers or {})
            if result is None:
                return None
        else:
            with timing.measure("classify"):
                tiers = classify(profile.signals, self._thresholds)
                hints = derive_hints(tiers, profile.signals)
            result = ClassifiedProfile(
                profile=profile, tiers=tiers, hints=hints, source=ProfileSource.PROBE
            )

        self._emit(
            ProfileClassifyEvent(
                session_token=session_token or "",
                tiers=result.tiers,
                hints=result.hints,
                source=result.source,
                duration_ms=timing.get("classify"),
            )
        )
        return result

    def _resolve_first_request(
        self, headers: Mapping[str, HeaderValue]
    ) -> ClassifiedProfile | None:
        if self._classify_from_headers:
            return classify_headers_profile(headers)
        if self._fallback_profile is not None:
            return resolve_fallback(self._fallback_profile)
        return None

    # =========================================================================
    # Events
    # =========================================================================

    def _emit(self, event: Any) -> None:
        emit_event(self._on_event, event)

    def _emit_error(
        self, error: BaseException, phase: ErrorPhase, session_token: str | None
    ) -> None:
        logger.error(
            "Profile storage failed during %s (session=%s): %s",
            phase,
            mask_token(session_token),
            error,
        )
        self._emit(
            ErrorEvent(
                error=error,
                error_message=extract_error_message(error),
                phase=phase,
                session_token=session_token,
            )
        )
