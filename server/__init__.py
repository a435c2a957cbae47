"""Speedtest server -- streaming ping, download and upload endpoints."""

from .app import (
    UploadReceipt,
    clamp_download_size,
    create_app,
    receive_upload,
    run_server,
)
from .payload import iter_random_chunks

__all__ = [
    "UploadReceipt",
    "clamp_download_size",
    "create_app",
    "iter_random_chunks",
    "receive_upload",
    "run_server",
]
