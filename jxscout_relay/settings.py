"""
Persistent relay settings.

Settings are a small JSON document ({port, host, filterInScope, enabled})
stored at a fixed per-installation path. Reads never fail: a missing,
unparsable or invalid file degrades to the defaults. Writes are atomic and
update the process-wide cached value.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from jxscout_relay.config import config
from jxscout_relay.models import DEFAULT_SETTINGS
from jxscout_relay.models import Response
from jxscout_relay.models import Settings
from jxscout_relay.schema_validator import validate_settings

logger = logging.getLogger(__name__)


def _atomic_write(target: Path, content: str) -> None:
    """Replace target with content without exposing a half-written file."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, target)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


class SettingsStore:
    """
    Loads, saves and caches relay settings.

    The cached value is replaced atomically (last write wins); readers
    never observe a partially-updated Settings.
    """

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path).expanduser() if path else config.SETTINGS_PATH
        self._cached: Settings | None = None
        self._load_lock = threading.Lock()

    def load(self) -> Response[Settings]:
        """Read settings from disk, falling back to defaults on any problem."""
        logger.debug(f"Loading settings from {self.path}")

        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            logger.info(f"No settings file at {self.path}, using defaults")
            return Response.ok(DEFAULT_SETTINGS)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.error(f"Failed to read settings: {e}")
            return Response.ok(DEFAULT_SETTINGS)

        if not isinstance(raw, dict):
            logger.error(f"Settings file {self.path} is not a JSON object, using defaults")
            return Response.ok(DEFAULT_SETTINGS)

        merged = {**DEFAULT_SETTINGS.to_dict(), **raw}
        result = validate_settings(merged, self.path.name)
        if not result.valid:
            for error in result.errors:
                logger.error(f"Invalid settings: {error}")
            return Response.ok(DEFAULT_SETTINGS)

        return Response.ok(Settings.from_dict(merged))

    def save(self, settings: Settings) -> Response[Settings]:
        """Validate and persist settings, then refresh the cache."""
        document = settings.to_dict()
        result = validate_settings(document)
        if not result.valid:
            message = "; ".join(result.errors)
            logger.error(f"Refusing to save invalid settings: {message}")
            return Response.failure(f"Invalid settings: {message}", kind="config")

        try:
            _atomic_write(self.path, json.dumps(document, indent=2))
        except OSError as e:
            logger.error(f"Failed to save settings: {e}")
            return Response.failure(f"Failed to save settings: {e}", kind="config")

        logger.info(f"Settings saved to {self.path}")
        self._cached = settings
        return Response.ok(settings)

    def current(self) -> Settings:
        """Return the cached settings, loading them on first use."""
        cached = self._cached
        if cached is not None:
            return cached

        with self._load_lock:
            if self._cached is None:
                loaded = self.load()
                self._cached = loaded.data if loaded.success and loaded.data else DEFAULT_SETTINGS
            return self._cached

    def invalidate(self) -> None:
        """Drop the cached value so the next read goes to disk."""
        self._cached = None
