"""Probe health monitoring.

Detects deployments where the client probe never reaches its endpoint
(script not injected, wrong path, blocked by CSP) by counting requests that
had to be classified without stored probe data.
"""

from __future__ import annotations

import logging
import threading

from device_router.core.events import NoProbeDataDiagnostic, OnEventCallback, emit_event

logger = logging.getLogger(__name__)

NO_PROBE_DATA_THRESHOLD = 50


class ProbeHealthMonitor:
    """Per-configuration counter of requests served without probe data.

    Each DeviceRouter owns its own monitor, so independent configurations in
    one process never share counts.

    Example:
        monitor = ProbeHealthMonitor("/device-router/probe", on_event=observer)
        monitor.on_middleware_hit()   # no stored profile for this request
        monitor.on_probe_received()   # disables further counting
    """

    def __init__(
        self,
        probe_path: str,
        on_event: OnEventCallback | None = None,
        threshold: int = NO_PROBE_DATA_THRESHOLD,
    ) -> None:
        """Initialize the monitor.

        Args:
            probe_path: Path the probe is expected to POST to.
            on_event: Observer for the diagnostic event.
            threshold: Number of probe-less requests before warning.

        Raises:
            ValueError: If threshold is not positive.
        """
        if threshold <= 0:
            raise ValueError("threshold must be positive")
        self.probe_path = probe_path
        self.threshold = threshold
        self._on_event = on_event
        self._lock = threading.Lock()
        self._count = 0
        self._probe_received = False
        self._warned = False

    @property
    def count(self) -> int:
        """Requests counted so far."""
        with self._lock:
            return self._count

    @property
    def probe_received(self) -> bool:
        with self._lock:
            return self._probe_received

    @property
    def warned(self) -> bool:
        with self._lock:
            return self._warned

    def on_probe_received(self) -> None:
        """Record a probe submission; permanently stops counting."""
        with self._lock:
            self._probe_received = True

    def on_middleware_hit(self) -> None:
        """Record a request classified without stored probe data."""
        with self._lock:
            if self._probe_received or self._warned:
                return
            self._count += 1
            if self._count < self.threshold:
                return
            self._warned = True
            invocations = self._count

        logger.warning(
            "%d requests handled but no probe data received. "
            "Verify the probe script is loaded and POST-ing to %s",
            invocations,
            self.probe_path,
        )
        emit_event(
            self._on_event,
            NoProbeDataDiagnostic(
                middleware_invocations=invocations,
                probe_path=self.probe_path,
            ),
        )
