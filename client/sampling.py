"""
Pass-based throughput sampling.

A *pass* is one timed attempt to measure a single direction.  It keeps
moving data until it has seen at least ``min_bytes`` over at least
``min_duration_ms``, or until ``max_duration_ms`` has elapsed no matter how
little data arrived.  A direction measurement runs a fixed number of passes
one after another and reports the trimmed mean of the per-pass speeds.

The transfer itself is left to subclasses (:mod:`client.download`,
:mod:`client.upload`); this module owns the bookkeeping every transfer
shares.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import aiohttp

from .api import Endpoint
from .constants import (
    DEFAULT_PASSES,
    MAX_PASS_DURATION_MS,
    MIN_PASS_BYTES,
    MIN_PASS_DURATION_MS,
    MIN_PASSES,
)
from .stats import bytes_to_mbps, trimmed_mean

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Thresholds and stop rule
# ---------------------------------------------------------------------------

@dataclass
class PassThresholds:
    """Volume / time limits governing a single pass."""

    min_bytes: int = MIN_PASS_BYTES
    min_duration_ms: float = MIN_PASS_DURATION_MS
    max_duration_ms: float = MAX_PASS_DURATION_MS

    def __post_init__(self) -> None:
        if self.min_bytes < 0:
            raise ValueError("min_bytes must not be negative")
        if self.min_duration_ms < 0:
            raise ValueError("min_duration_ms must not be negative")
        if self.max_duration_ms <= 0:
            raise ValueError("max_duration_ms must be positive")
        if self.max_duration_ms < self.min_duration_ms:
            raise ValueError("max_duration_ms must not be shorter than min_duration_ms")

    def to_dict(self) -> dict:
        return {
            "min_bytes": self.min_bytes,
            "min_duration_ms": self.min_duration_ms,
            "max_duration_ms": self.max_duration_ms,
        }


def should_stop_pass(bytes_so_far: int, elapsed_ms: float, thresholds: PassThresholds) -> bool:
    """Enough data over enough time, or the hard ceiling was hit."""
    enough_evidence = (
        bytes_so_far >= thresholds.min_bytes
        and elapsed_ms >= thresholds.min_duration_ms
    )
    return enough_evidence or elapsed_ms >= thresholds.max_duration_ms


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class PassResult:
    """Outcome of one pass."""

    speed_mbps: float = 0.0
    bytes_transferred: int = 0
    duration_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "speed_mbps": round(self.speed_mbps, 2),
            "bytes": self.bytes_transferred,
            "duration_ms": round(self.duration_ms, 2),
        }


@dataclass
class DirectionResult:
    """All passes of one direction and their aggregate."""

    direction: str = ""
    passes: List[PassResult] = field(default_factory=list)
    speed_mbps: float = 0.0
    bytes_total: int = 0
    duration_ms: float = 0.0

    @property
    def samples(self) -> List[float]:
        return [p.speed_mbps for p in self.passes]

    def calculate(self) -> None:
        """Trimmed mean of per-pass speeds plus transfer totals."""
        self.speed_mbps = trimmed_mean(self.samples)
        self.bytes_total = sum(p.bytes_transferred for p in self.passes)

    def to_dict(self) -> dict:
        return {
            "direction": self.direction,
            "speed_mbps": round(self.speed_mbps, 2),
            "bytes_total": self.bytes_total,
            "duration_ms": round(self.duration_ms, 2),
            "passes": [p.to_dict() for p in self.passes],
            "samples": [round(s, 2) for s in self.samples],
        }


# ---------------------------------------------------------------------------
# Per-pass bookkeeping
# ---------------------------------------------------------------------------

class PassTracker:
    """Running byte counter and clock for one pass."""

    def __init__(
        self,
        thresholds: PassThresholds,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.thresholds = thresholds
        self._clock = clock
        self._start = clock()
        self.bytes_so_far = 0
        self.done = False
        self._stopped_ms: Optional[float] = None

    @property
    def elapsed_ms(self) -> float:
        return (self._clock() - self._start) * 1000

    @property
    def remaining_seconds(self) -> float:
        """Time left before the hard ceiling."""
        return max(0.0, (self.thresholds.max_duration_ms - self.elapsed_ms) / 1000)

    @property
    def current_speed_mbps(self) -> float:
        return bytes_to_mbps(self.bytes_so_far, self.elapsed_ms / 1000)

    def record(self, num_bytes: int) -> float:
        """Fold one delivered buffer in; returns the speed so far."""
        self.bytes_so_far += num_bytes
        self.check()
        return self.current_speed_mbps

    def check(self) -> bool:
        """Re-evaluate the stop rule without adding data."""
        if not self.done:
            elapsed = self.elapsed_ms
            if should_stop_pass(self.bytes_so_far, elapsed, self.thresholds):
                self._stop(elapsed)
        return self.done

    def expire(self) -> None:
        """End the pass because its time ceiling ran out."""
        if not self.done:
            self._stop(self.elapsed_ms)

    def _stop(self, elapsed_ms: float) -> None:
        # duration is frozen at the stop decision
        self.done = True
        self._stopped_ms = elapsed_ms

    def result(self) -> PassResult:
        elapsed = self._stopped_ms if self._stopped_ms is not None else self.elapsed_ms
        return PassResult(
            speed_mbps=bytes_to_mbps(self.bytes_so_far, elapsed / 1000),
            bytes_transferred=self.bytes_so_far,
            duration_ms=elapsed,
        )


# ---------------------------------------------------------------------------
# Direction sampler
# ---------------------------------------------------------------------------

class ThroughputSampler:
    """
    Base class for the download and upload samplers.

    ``on_progress`` receives the live speed of the running pass after every
    delivered buffer.  ``on_aggregate`` receives the trimmed mean of all
    passes finished so far, once per pass.
    """

    direction = ""

    def __init__(
        self,
        endpoint: Endpoint,
        thresholds: Optional[PassThresholds] = None,
        passes: int = DEFAULT_PASSES,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        if passes < MIN_PASSES:
            raise ValueError(f"At least {MIN_PASSES} pass is required")
        self.endpoint = endpoint
        self.thresholds = thresholds or PassThresholds()
        self.passes = passes
        self._clock = clock
        self.on_progress: Optional[Callable[[float], None]] = None
        self.on_aggregate: Optional[Callable[[float], None]] = None

    async def measure(self, session: aiohttp.ClientSession) -> DirectionResult:
        """Run every pass in sequence and aggregate them."""
        result = DirectionResult(direction=self.direction)
        start = self._clock()

        for index in range(self.passes):
            tracker = PassTracker(self.thresholds, clock=self._clock)
            await self._run_pass(session, tracker)

            outcome = tracker.result()
            result.passes.append(outcome)
            logger.debug(
                "%s pass %d/%d: %d bytes in %.0f ms (%.2f Mbps)",
                self.direction.capitalize(), index + 1, self.passes,
                outcome.bytes_transferred, outcome.duration_ms, outcome.speed_mbps,
            )

            if self.on_aggregate:
                self.on_aggregate(trimmed_mean(result.samples))

        result.duration_ms = (self._clock() - start) * 1000
        result.calculate()
        return result

    def _record(self, tracker: PassTracker, num_bytes: int) -> None:
        speed = tracker.record(num_bytes)
        if self.on_progress:
            self.on_progress(speed)

    async def _run_pass(self, session: aiohttp.ClientSession, tracker: PassTracker) -> None:
        raise NotImplementedError
