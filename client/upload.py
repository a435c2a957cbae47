"""
Upload speed test module.

Each pass loops ``POST /upload`` requests carrying a fixed-size body of
random bytes.  The body is handed to aiohttp as an async generator of
``READ_CHUNK_SIZE`` buffers; a buffer counts as delivered once the transport
asks for the next one, which is where the stop rule is evaluated.  When the
pass is over the generator simply ends, cutting the body short.
"""
from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import AsyncIterator, Callable, Optional

import aiohttp

from .api import Endpoint
from .constants import DEFAULT_PASSES, READ_CHUNK_SIZE, UPLOAD_REQUEST_SIZE
from .errors import ProtocolError, TransportError, check_status
from .sampling import PassThresholds, PassTracker, ThroughputSampler

logger = logging.getLogger(__name__)


class UploadSampler(ThroughputSampler):
    """Pass-based upload throughput sampler."""

    direction = "upload"

    HEADERS = {
        "Content-Type": "application/octet-stream",
    }

    def __init__(
        self,
        endpoint: Endpoint,
        thresholds: Optional[PassThresholds] = None,
        passes: int = DEFAULT_PASSES,
        request_size: int = UPLOAD_REQUEST_SIZE,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        super().__init__(endpoint, thresholds=thresholds, passes=passes, clock=clock)
        self.request_size = request_size
        # One random buffer per sampler, reused for every request body
        self._data_buffer = os.urandom(request_size)

    async def _run_pass(self, session: aiohttp.ClientSession, tracker: PassTracker) -> None:
        while not tracker.done:
            try:
                await asyncio.wait_for(
                    self._post_once(session, tracker),
                    timeout=tracker.remaining_seconds,
                )
            except aiohttp.ServerTimeoutError as exc:
                raise TransportError(f"Upload stalled: {exc}") from exc
            except asyncio.TimeoutError:
                # Only the ceiling wait_for above raises a bare timeout
                tracker.expire()
                return
            except (aiohttp.ContentTypeError, ValueError) as exc:
                raise ProtocolError(f"Upload reply was not valid JSON: {exc}") from exc
            except (aiohttp.ClientError, OSError) as exc:
                raise TransportError(f"Upload request failed: {exc}") from exc

    async def _post_once(self, session: aiohttp.ClientSession, tracker: PassTracker) -> None:
        """Send one request body, stopping early if the pass ends."""
        async with session.post(
            self.endpoint.upload_url,
            data=self._body(tracker),
            headers=self.HEADERS,
        ) as resp:
            check_status(resp.status, "Upload")
            reply = await resp.json()

        if not isinstance(reply, dict) or not reply.get("success"):
            raise ProtocolError(f"Upload was rejected by the server: {reply!r}")

    async def _body(self, tracker: PassTracker) -> AsyncIterator[bytes]:
        view = memoryview(self._data_buffer)
        for offset in range(0, len(view), READ_CHUNK_SIZE):
            chunk = view[offset:offset + READ_CHUNK_SIZE]
            yield bytes(chunk)
            # Resumed: the transport has taken the previous buffer.
            self._record(tracker, len(chunk))
            if tracker.done:
                return
