"""
Download speed test module.

Each pass loops ``GET /download?size=N`` sub-requests and reads the body in
``READ_CHUNK_SIZE`` buffers.  Every buffer updates the pass counter and the
live speed; the moment the stop rule fires the response is closed instead of
being drained.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

import aiohttp

from .api import Endpoint
from .constants import DEFAULT_PASSES, DOWNLOAD_REQUEST_SIZE, NO_CACHE_HEADERS, READ_CHUNK_SIZE
from .errors import ProtocolError, TransportError, check_status
from .sampling import PassThresholds, PassTracker, ThroughputSampler

logger = logging.getLogger(__name__)


class DownloadSampler(ThroughputSampler):
    """Pass-based download throughput sampler."""

    direction = "download"

    def __init__(
        self,
        endpoint: Endpoint,
        thresholds: Optional[PassThresholds] = None,
        passes: int = DEFAULT_PASSES,
        request_size: int = DOWNLOAD_REQUEST_SIZE,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        super().__init__(endpoint, thresholds=thresholds, passes=passes, clock=clock)
        self.request_size = request_size

    async def _run_pass(self, session: aiohttp.ClientSession, tracker: PassTracker) -> None:
        while not tracker.done:
            try:
                await asyncio.wait_for(
                    self._fetch_once(session, tracker),
                    timeout=tracker.remaining_seconds,
                )
            except aiohttp.ServerTimeoutError as exc:
                raise TransportError(f"Download stalled: {exc}") from exc
            except asyncio.TimeoutError:
                # Only the ceiling wait_for above raises a bare timeout
                tracker.expire()
                return
            except aiohttp.ClientPayloadError as exc:
                raise ProtocolError(f"Download stream broken: {exc}") from exc
            except (aiohttp.ClientError, OSError) as exc:
                raise TransportError(f"Download request failed: {exc}") from exc

    async def _fetch_once(self, session: aiohttp.ClientSession, tracker: PassTracker) -> None:
        """Stream one sub-request until it ends or the pass is over."""
        params = {"size": str(self.request_size)}
        received = 0

        async with session.get(
            self.endpoint.download_url, params=params, headers=NO_CACHE_HEADERS
        ) as resp:
            check_status(resp.status, "Download")

            while True:
                chunk = await resp.content.read(READ_CHUNK_SIZE)
                if not chunk:
                    break

                received += len(chunk)
                self._record(tracker, len(chunk))

                if tracker.done:
                    _cancel(resp)
                    return

        if received == 0:
            raise ProtocolError("Download response had an empty body")


def _cancel(resp: aiohttp.ClientResponse) -> None:
    """Drop the connection under an unfinished response."""
    try:
        resp.close()
    except Exception as exc:
        logger.debug("Ignoring error while closing download stream: %s", exc)
