"""
Application configuration manager.
Reads default run settings from a JSON file under Application Support.
The file is edited by hand; command-line flags are layered on top per run.
"""

import json
import logging
from pathlib import Path

from vcompress.core.constants import (
    CONFIG_PATH, PRESETS, DEFAULT_PRESET, DEFAULT_QUALITY, DEFAULT_WORKERS,
    DEFAULT_SEGMENT_SEC, DEFAULT_HWACCEL,
)

# Validation bounds
_WORKERS_MIN = 1
_WORKERS_MAX = 16
_QUALITY_MIN = 0
_QUALITY_MAX = 100
_SEGMENT_MIN = 10              # 10 seconds
_SEGMENT_MAX = 6 * 3600        # 6 hours

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'preset': DEFAULT_PRESET,
    'quality': DEFAULT_QUALITY,
    'workers': DEFAULT_WORKERS,
    'segment_seconds': DEFAULT_SEGMENT_SEC,
    'segment_resume': True,
    'hwaccel': DEFAULT_HWACCEL,
}


class AppConfig:
    """Default run settings loaded from JSON, validated on the way in."""

    def __init__(self, config_path: Path | None = None):
        self.path = config_path or CONFIG_PATH
        self._data: dict = {}
        self.load()

    def load(self):
        """Load config from disk, merging with defaults."""
        self._data = dict(_DEFAULTS)
        if self.path.exists():
            try:
                with open(self.path, 'r') as f:
                    saved = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning("Failed to load config: %s", e)
                return
            if not isinstance(saved, dict):
                logger.warning("Ignoring config %s: not a JSON object", self.path)
                return
            for key, value in saved.items():
                if key in _DEFAULTS:
                    self._data[key] = self._validate(key, value)

    def override(self, **values) -> dict:
        """
        Run settings: stored config with non-None `values` applied on top.
        Nothing is written back to disk.
        """
        merged = dict(self._data)
        for key, value in values.items():
            if value is not None:
                merged[key] = self._validate(key, value)
        return merged

    def _validate(self, key: str, value):
        """Validate and coerce config values to safe ranges."""
        if key == 'workers':
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid workers %r, using default", value)
                return DEFAULT_WORKERS
            return max(_WORKERS_MIN, min(_WORKERS_MAX, value))

        if key == 'quality':
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid quality %r, using preset value", value)
                return DEFAULT_QUALITY
            return max(_QUALITY_MIN, min(_QUALITY_MAX, value))

        if key == 'segment_seconds':
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid segment_seconds %r, using default", value)
                return DEFAULT_SEGMENT_SEC
            if value <= 0:
                return DEFAULT_SEGMENT_SEC
            return max(_SEGMENT_MIN, min(_SEGMENT_MAX, value))

        if key == 'preset':
            value = str(value).lower()
            if value not in PRESETS:
                logger.warning("Invalid preset %r, using %s", value, DEFAULT_PRESET)
                return DEFAULT_PRESET

        if key == 'segment_resume':
            return bool(value)

        if key == 'hwaccel':
            return str(value or "")

        return value

    @property
    def workers(self) -> int:
        return self._data.get('workers', DEFAULT_WORKERS)

    @property
    def preset(self) -> str:
        return self._data.get('preset', DEFAULT_PRESET)

    @property
    def segment_seconds(self) -> int:
        return self._data.get('segment_seconds', DEFAULT_SEGMENT_SEC)
