"""
Speed test server addressing.

A single :class:`Endpoint` describes where the ``/ping``, ``/download`` and
``/upload`` resources of one server live.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict
from urllib.parse import urlsplit

from .constants import DOWNLOAD_PATH, PING_PATH, UPLOAD_PATH


@dataclass
class Endpoint:
    """Base URL of a speed test server."""

    base_url: str

    # -- Constructors -------------------------------------------------------

    @classmethod
    def from_url(cls, url: str) -> Endpoint:
        """Validate *url* and strip any trailing slash."""
        url = (url or "").strip()
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"Server URL must be an http(s) URL, got {url!r}")
        return cls(base_url=url.rstrip("/"))

    # -- Derived URLs -------------------------------------------------------

    @property
    def ping_url(self) -> str:
        return f"{self.base_url}{PING_PATH}"

    @property
    def download_url(self) -> str:
        return f"{self.base_url}{DOWNLOAD_PATH}"

    @property
    def upload_url(self) -> str:
        return f"{self.base_url}{UPLOAD_PATH}"

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.base_url,
            "ping_url": self.ping_url,
            "download_url": self.download_url,
            "upload_url": self.upload_url,
        }
