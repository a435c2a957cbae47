"""
Output formatting -- JSON document and plain text.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional


def create_result_json(
    server_info: Dict[str, Any],
    session: Dict[str, Any],
    latency_results: Optional[Dict[str, Any]] = None,
    download_results: Optional[Dict[str, Any]] = None,
    upload_results: Optional[Dict[str, Any]] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the JSON result dict for one run."""
    latency_results = latency_results or {}
    download_results = download_results or {}
    upload_results = upload_results or {}

    result: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "server": server_info,
        "stage": session.get("stage", "idle"),
        "ping": session.get("ping", 0),
        "download": session.get("download", 0),
        "upload": session.get("upload", 0),
        "latency": {
            "jitter": latency_results.get("jitter_ms", 0),
            "min": latency_results.get("min_ms", 0),
            "max": latency_results.get("max_ms", 0),
            "count": latency_results.get("count", 0),
            "samples": latency_results.get("samples", []),
        },
        "downloadDetails": {
            "bytes": download_results.get("bytes_total", 0),
            "duration_ms": download_results.get("duration_ms", 0),
            "passes": download_results.get("passes", []),
        },
        "uploadDetails": {
            "bytes": upload_results.get("bytes_total", 0),
            "duration_ms": upload_results.get("duration_ms", 0),
            "passes": upload_results.get("passes", []),
        },
    }

    if "error" in session:
        result["error"] = session["error"]
    if settings:
        result["settings"] = settings

    return result


def format_text_result(
    ping_ms: float,
    download_mbps: float,
    upload_mbps: float,
    server_url: str,
    error: Optional[str] = None,
) -> str:
    sep = "=" * 50
    mid = "-" * 50
    if error:
        return f"{sep}\nSpeedtest failed\n{mid}\n{error}\n{sep}"
    return (
        f"{sep}\n"
        f"Speedtest Results\n"
        f"{sep}\n"
        f"Server: {server_url}\n"
        f"{mid}\n"
        f"Ping: {ping_ms:.1f} ms\n"
        f"Download: {download_mbps:.2f} Mbps\n"
        f"Upload: {upload_mbps:.2f} Mbps\n"
        f"{sep}"
    )
