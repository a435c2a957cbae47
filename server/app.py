"""
aiohttp web application serving the speed test endpoints.

Routes::

    GET  /ping                 -> "pong"
    GET  /download?size=BYTES  -> random body, clamp(size, 64 KiB, 256 MiB)
    POST /upload               -> JSON receipt of the received body
    OPTIONS on all of the above -> CORS preflight

Handlers share no mutable state, so any number of clients can be served
concurrently.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from aiohttp import StreamReader, web

from client.constants import (
    CORS_HEADERS,
    DEFAULT_DOWNLOAD_SIZE,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DOWNLOAD_PATH,
    MAX_DOWNLOAD_SIZE,
    MIN_DOWNLOAD_SIZE,
    NO_CACHE_HEADERS,
    PING_PATH,
    READ_CHUNK_SIZE,
    UPLOAD_PATH,
)
from client.errors import EmptyUploadError
from client.stats import bytes_to_mbps

from .payload import iter_random_chunks

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Download sizing
# ---------------------------------------------------------------------------

def clamp_download_size(raw: Optional[str]) -> int:
    """
    Parse the ``size`` query value and clamp it into the served range.

    Missing or unparsable values get the default size; zero, negative and
    oversized requests are clamped rather than rejected.
    """
    if raw is None or raw.strip() == "":
        size = DEFAULT_DOWNLOAD_SIZE
    else:
        try:
            size = int(raw)
        except ValueError:
            size = DEFAULT_DOWNLOAD_SIZE
    return max(MIN_DOWNLOAD_SIZE, min(size, MAX_DOWNLOAD_SIZE))


# ---------------------------------------------------------------------------
# Upload accounting
# ---------------------------------------------------------------------------

@dataclass
class UploadReceipt:
    """What the receiver measured for one upload body."""

    bytes_received: int = 0
    elapsed_seconds: float = 0.0

    @property
    def speed_mbps(self) -> float:
        return bytes_to_mbps(self.bytes_received, self.elapsed_seconds)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "uploadSize": self.bytes_received,
            "duration": self.elapsed_seconds,
            "speedMbps": round(self.speed_mbps, 2),
        }


async def receive_upload(
    stream: StreamReader,
    clock: Callable[[], float] = time.perf_counter,
) -> UploadReceipt:
    """Read *stream* to exhaustion, timing from first byte to end of body."""
    receipt = UploadReceipt()
    first_byte_at: Optional[float] = None

    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        if first_byte_at is None:
            first_byte_at = clock()
        receipt.bytes_received += len(chunk)

    if first_byte_at is None:
        raise EmptyUploadError("No upload body received")

    receipt.elapsed_seconds = clock() - first_byte_at
    return receipt


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def handle_ping(request: web.Request) -> web.Response:
    return web.Response(text="pong", content_type="text/plain", headers=NO_CACHE_HEADERS)


async def handle_download(request: web.Request) -> web.StreamResponse:
    size = clamp_download_size(request.query.get("size"))

    resp = web.StreamResponse(headers=NO_CACHE_HEADERS)
    resp.content_type = "application/octet-stream"
    resp.content_length = size
    await resp.prepare(request)

    sent = 0
    try:
        for chunk in iter_random_chunks(size):
            # write() waits for the transport to drain before we make more
            await resp.write(chunk)
            sent += len(chunk)
        await resp.write_eof()
    except ConnectionResetError:
        logger.debug("Download client went away after %d of %d bytes", sent, size)

    return resp


async def handle_upload(request: web.Request) -> web.Response:
    try:
        if not request.body_exists:
            raise EmptyUploadError("No upload body received")
        receipt = await receive_upload(request.content)
    except EmptyUploadError as exc:
        return web.json_response({"success": False, "error": str(exc)}, status=400)
    except Exception as exc:
        logger.warning("Upload from %s failed: %s", request.remote, exc)
        return web.json_response({"success": False, "error": "Upload failed"}, status=500)

    logger.debug(
        "Upload: %d bytes in %.3fs (%.2f Mbps)",
        receipt.bytes_received, receipt.elapsed_seconds, receipt.speed_mbps,
    )
    return web.json_response(receipt.to_dict(), headers=NO_CACHE_HEADERS)


async def handle_preflight(request: web.Request) -> web.Response:
    return web.Response(status=204)


async def _add_cors_headers(request: web.Request, response: web.StreamResponse) -> None:
    for name, value in CORS_HEADERS.items():
        response.headers.setdefault(name, value)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app() -> web.Application:
    app = web.Application()
    app.router.add_get(PING_PATH, handle_ping)
    app.router.add_get(DOWNLOAD_PATH, handle_download)
    app.router.add_post(UPLOAD_PATH, handle_upload)
    for path in (PING_PATH, DOWNLOAD_PATH, UPLOAD_PATH):
        app.router.add_route("OPTIONS", path, handle_preflight)

    # Signal fires before headers go out, so streamed responses get CORS too
    app.on_response_prepare.append(_add_cors_headers)
    return app


def run_server(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """Serve until interrupted."""
    logger.info("Speed test server listening on %s:%d", host, port)
    web.run_app(create_app(), host=host, port=port, print=None)
