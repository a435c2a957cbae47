"""
Randomized payload source.

Chunks are produced lazily, one per ``next()`` call, so a payload of any
length never sits in memory as a whole.
"""
from __future__ import annotations

import os
from typing import Iterator

from client.constants import STREAM_CHUNK_SIZE


def iter_random_chunks(total: int, chunk_size: int = STREAM_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield fresh random chunks whose lengths add up to exactly *total*."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    remaining = max(0, total)
    while remaining > 0:
        size = min(chunk_size, remaining)
        remaining -= size
        yield os.urandom(size)
