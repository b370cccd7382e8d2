"""Timing utilities for event duration figures.

Usage:
    from device_router.core.timing import TimingContext

    timing = TimingContext()
    with timing.measure("classify"):
        tiers = classify(signals)
    with timing.measure("storage"):
        await storage.set(token, profile, ttl)
    print(f"Classify: {timing.timings['classify']:.2f}ms")
"""

from __future__ import annotations

import time
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field


@dataclass
class TimingContext:
    """Context for measuring operation timings.

    Tracks timing of multiple named operations within a request.
    Uses perf_counter for high-precision timing.

    Attributes:
        timings: Dictionary mapping operation names to durations in milliseconds.
        start: Start time of the context (perf_counter value).
    """

    timings: dict[str, float] = field(default_factory=dict)
    start: float = field(default_factory=time.perf_counter)

    @contextmanager
    def measure(self, name: str) -> Generator[None, None, None]:
        """Measure the duration of a named operation.

        The duration is recorded even if the block raises.

        Args:
            name: Name of the operation being measured.
        """
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.timings[name] = (time.perf_counter() - t0) * 1000

    def get(self, name: str) -> float:
        """Duration of a named operation in milliseconds (0.0 if never measured)."""
        return self.timings.get(name, 0.0)

    def total_ms(self) -> float:
        """Calculate total elapsed time since context creation in milliseconds."""
        return (time.perf_counter() - self.start) * 1000
