"""
User configuration file support.

Reads/writes ``~/.speedtest-http/config.json``.  Keys missing from the file
fall back to :data:`DEFAULTS`; command-line flags override both.

Supported keys::

    url = "http://127.0.0.1:8080"   # server base URL
    ping_count = 7
    passes = 3
    min_pass_bytes = 5242880         # bytes
    min_pass_duration_ms = 3000.0
    max_pass_duration_ms = 15000.0
    host = "0.0.0.0"                 # --serve bind address
    port = 8080                      # --serve port
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from .constants import (
    DEFAULT_HOST,
    DEFAULT_PASSES,
    DEFAULT_PING_COUNT,
    DEFAULT_PORT,
    DEFAULT_SERVER_URL,
    MAX_PASS_DURATION_MS,
    MIN_PASS_BYTES,
    MIN_PASS_DURATION_MS,
)

logger = logging.getLogger(__name__)

_CONFIG_DIR = os.path.join(Path.home(), ".speedtest-http")
_CONFIG_FILE = "config.json"


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = {
    "url": DEFAULT_SERVER_URL,
    "ping_count": DEFAULT_PING_COUNT,
    "passes": DEFAULT_PASSES,
    "min_pass_bytes": MIN_PASS_BYTES,
    "min_pass_duration_ms": MIN_PASS_DURATION_MS,
    "max_pass_duration_ms": MAX_PASS_DURATION_MS,
    "host": DEFAULT_HOST,
    "port": DEFAULT_PORT,
}


# ---------------------------------------------------------------------------
# Read / Write
# ---------------------------------------------------------------------------

def load_config() -> Dict[str, Any]:
    """Load config from disk, returning defaults for missing keys."""
    path = _config_path()
    config = dict(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
        if isinstance(user, dict):
            config.update({k: v for k, v in user.items() if k in DEFAULTS})
    except (json.JSONDecodeError, IOError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", path, exc)

    return config


def save_config(config: Dict[str, Any]) -> str:
    """Write *config* to disk.  Returns the file path."""
    path = _config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as fh:
        json.dump(config, fh, indent=2, ensure_ascii=False)

    return path


def get_config_value(key: str) -> Any:
    """Get a single config value."""
    return load_config().get(key, DEFAULTS.get(key))


def set_config_value(key: str, value: Any) -> str:
    """Set a single config value and persist.  Returns file path."""
    if key not in DEFAULTS:
        raise KeyError(f"Unknown config key: {key}")
    config = load_config()
    config[key] = value
    return save_config(config)


def config_path() -> str:
    """Return the config file path (for display purposes)."""
    return _config_path()
