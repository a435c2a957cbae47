"""
HTTP round-trip latency measurement.

Protocol flow::

    1. GET {base}/ping            (no-cache)
    2. Read the ``pong`` body
    3. Record the wall-clock round trip in milliseconds
    4. Repeat 1-3 for the desired number of samples.

The reported latency is the trimmed mean of all samples.  A single failed
round trip aborts the probe; partial sample sets are never reported.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import aiohttp

from .api import Endpoint
from .constants import DEFAULT_PING_COUNT, MIN_PING_COUNT, NO_CACHE_HEADERS, PING_TIMEOUT
from .errors import TransportError, check_status
from .stats import calculate_jitter, trimmed_mean

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------

@dataclass
class LatencyResult:
    """Aggregated latency data for one probe."""

    samples: List[float] = field(default_factory=list)
    latency_ms: float = 0.0
    jitter_ms: float = 0.0
    min_ms: float = 0.0
    max_ms: float = 0.0

    def calculate(self) -> None:
        """Derive trimmed-mean latency and jitter from collected samples."""
        if not self.samples:
            return
        self.latency_ms = trimmed_mean(self.samples)
        self.jitter_ms = calculate_jitter(self.samples)
        self.min_ms = min(self.samples)
        self.max_ms = max(self.samples)

    def to_dict(self) -> dict:
        return {
            "samples": [round(s, 3) for s in self.samples],
            "latency_ms": round(self.latency_ms, 3),
            "jitter_ms": round(self.jitter_ms, 3),
            "min_ms": round(self.min_ms, 3),
            "max_ms": round(self.max_ms, 3),
            "count": len(self.samples),
        }


# ---------------------------------------------------------------------------
# Prober
# ---------------------------------------------------------------------------

class LatencyProber:
    """Sequential ``/ping`` round trips reduced to one stable latency."""

    def __init__(
        self,
        endpoint: Endpoint,
        ping_count: int = DEFAULT_PING_COUNT,
        timeout: float = PING_TIMEOUT,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        if ping_count < MIN_PING_COUNT:
            raise ValueError(f"Ping count must be at least {MIN_PING_COUNT}")
        self.endpoint = endpoint
        self.ping_count = ping_count
        self.timeout = timeout
        self._clock = clock
        self.on_sample: Optional[Callable[[float], None]] = None

    async def probe(self, session: aiohttp.ClientSession) -> LatencyResult:
        result = LatencyResult()

        for attempt in range(self.ping_count):
            latency = await self._ping_once(session)
            result.samples.append(latency)
            logger.debug("Ping %d/%d: %.2f ms", attempt + 1, self.ping_count, latency)

            if self.on_sample:
                self.on_sample(latency)

        result.calculate()
        return result

    async def _ping_once(self, session: aiohttp.ClientSession) -> float:
        """Send one GET /ping and return the round trip in milliseconds."""
        start = self._clock()
        try:
            await asyncio.wait_for(self._round_trip(session), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise TransportError("Ping timed out") from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise TransportError(f"Ping request failed: {exc}") from exc

        return (self._clock() - start) * 1000

    async def _round_trip(self, session: aiohttp.ClientSession) -> None:
        async with session.get(self.endpoint.ping_url, headers=NO_CACHE_HEADERS) as resp:
            check_status(resp.status, "Ping")
            await resp.read()
