"""
Network measurement statistics.

Pure functions -- no I/O, no side effects.  Everything here is deterministic
and easy to unit-test.  Speeds use binary megabits (1 Mbps == 1024 * 1024
bits per second) throughout.
"""
from __future__ import annotations

import statistics
from typing import Iterable, List


_BITS_PER_MEGABIT = 1024 * 1024


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def trimmed_mean(samples: Iterable[float]) -> float:
    """
    Mean after dropping the single smallest and single largest sample.

    With two samples or fewer nothing would be left after trimming, so the
    plain arithmetic mean is returned instead.  An empty input yields 0.0.
    """
    values = list(samples)
    if not values:
        return 0.0
    if len(values) <= 2:
        return statistics.mean(values)

    ordered = sorted(values)
    return statistics.mean(ordered[1:-1])


def calculate_jitter(samples: List[float]) -> float:
    """Mean absolute difference between consecutive samples."""
    if len(samples) < 2:
        return 0.0
    diffs = [abs(samples[i] - samples[i - 1]) for i in range(1, len(samples))]
    return statistics.mean(diffs)


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------

def bytes_to_mbps(num_bytes: float, seconds: float) -> float:
    """Throughput of *num_bytes* moved in *seconds*; 0 for non-positive time."""
    if seconds <= 0:
        return 0.0
    return (num_bytes * 8) / (seconds * _BITS_PER_MEGABIT)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_speed(speed_mbps: float) -> str:
    """Human-readable speed string."""
    if speed_mbps >= 1000:
        return f"{speed_mbps / 1000:.2f} Gbps"
    return f"{speed_mbps:.2f} Mbps"


def format_latency(latency_ms: float) -> str:
    """Human-readable latency string."""
    if latency_ms >= 1000:
        return f"{latency_ms / 1000:.2f} s"
    return f"{latency_ms:.1f} ms"


def format_bytes(num_bytes: float) -> str:
    """Human-readable binary size string."""
    if num_bytes >= 1024 * 1024:
        return f"{num_bytes / (1024 * 1024):.1f} MiB"
    if num_bytes >= 1024:
        return f"{num_bytes / 1024:.1f} KiB"
    return f"{int(num_bytes)} B"
