"""
Runtime configuration for the jxscout relay.

Policy constants (chunk threshold, session staleness window, timeouts) are
read from environment variables with sensible defaults. Addon options can
override them per run.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


class _Config:
    """Resolved configuration values."""

    def __init__(self) -> None:
        # 500KB per chunk, safe for the relay channel
        self.CHUNK_SIZE: int = _env_int("JXSCOUT_CHUNK_SIZE", 500 * 1024)

        # Seconds a partial transfer may stay idle before eviction
        self.SESSION_TIMEOUT: float = _env_float("JXSCOUT_SESSION_TIMEOUT", 60.0)

        self.SETTINGS_PATH: Path = Path(
            os.environ.get("JXSCOUT_SETTINGS_PATH", "~/.jxscout-relay/settings.json")
        ).expanduser()

        self.FORWARD_TIMEOUT: float = _env_float("JXSCOUT_FORWARD_TIMEOUT", 30.0)
        self.FETCH_TIMEOUT: float = _env_float("JXSCOUT_FETCH_TIMEOUT", 30.0)

        # Seconds shutdown waits for in-flight relays before tearing down sessions
        self.SHUTDOWN_TIMEOUT: float = _env_float("JXSCOUT_SHUTDOWN_TIMEOUT", 10.0)

        # Fixed ingestion path on the jxscout server
        self.INGEST_PATH: str = "/caido-ingest"


config = _Config()
