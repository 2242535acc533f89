"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import os
from pathlib import Path
from typing import Any

from loguru import logger

from core.remote_path import DEFAULT_BASE_URL
from infrastructure.remote_client import DEFAULT_PLACEHOLDER_MD5, DEFAULT_TIMEOUT_SECONDS


class JsonSettings:
    """Lightweight JSON settings reader with dotted-key access."""

    def __init__(self, settings_path: str | Path) -> None:
        self._path = Path(settings_path)
        if not self._path.exists():
            raise FileNotFoundError(f"settings.json not found: {self._path}")
        with self._path.open("r", encoding="utf-8") as f:
            self._data = json.load(f)

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or `default` if not present."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node


def _coerce(settings: JsonSettings, key: str, cast: type, default: Any) -> Any:
    raw = settings.get(key, default)
    if raw is None:
        return default
    try:
        return cast(raw)
    except (ValueError, TypeError):
        logger.warning("Invalid value for {}: {!r}, using {}", key, raw, default)
        return default


def _bounded(
    settings: JsonSettings,
    key: str,
    cast: type,
    default: Any,
    low: float,
    high: float | None = None,
) -> Any:
    """Like `_coerce`, but values outside [low, high] also fall back to `default`."""
    value = _coerce(settings, key, cast, default)
    if value is None or value == default:
        return value
    if value < low or (high is not None and value > high):
        logger.warning("Out of range value for {}: {!r}, using {}", key, value, default)
        return default
    return value


def parse_sort_keys(raw: Any) -> list[tuple[str, bool]]:
    """Parse a list like ``[{"field": "status", "asc": false}, ...]``."""
    result: list[tuple[str, bool]] = []
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, dict) and "field" in item:
                result.append((str(item.get("field")), bool(item.get("asc", True))))
    return result


@dataclass
class CheckerSettings:
    """Typed view over the settings the checker uses."""

    base_url: str = DEFAULT_BASE_URL
    placeholder_md5: str = DEFAULT_PLACEHOLDER_MD5
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retries: int = 0
    max_concurrent: int = 10
    similarity_threshold: float = 0.90
    thumb_size: int = 8
    download_max_concurrent: int | None = None
    log_dir: str | None = None
    log_level: str = "INFO"
    default_sort: list[tuple[str, bool]] = field(default_factory=list)

    @classmethod
    def from_settings(cls, settings: JsonSettings | None) -> CheckerSettings:
        """Build from `settings`, falling back to defaults for missing keys."""
        if settings is None:
            return cls()
        defaults = cls()
        max_concurrent = _coerce(settings, "checking.max_concurrent", int, defaults.max_concurrent)
        if max_concurrent < 1:
            logger.warning("checking.max_concurrent must be positive, using 1")
            max_concurrent = 1
        raw_log_dir = settings.get("logging.dir")
        return cls(
            base_url=str(settings.get("remote.base_url", defaults.base_url)),
            placeholder_md5=str(
                settings.get("remote.placeholder_md5", defaults.placeholder_md5)
            ).lower(),
            timeout_seconds=_bounded(
                settings, "remote.timeout_seconds", float, defaults.timeout_seconds, 0.001
            ),
            retries=max(0, _coerce(settings, "remote.retries", int, defaults.retries)),
            max_concurrent=max_concurrent,
            similarity_threshold=_bounded(
                settings,
                "matching.similarity_threshold",
                float,
                defaults.similarity_threshold,
                0.0,
                1.0,
            ),
            thumb_size=_bounded(settings, "matching.thumb_size", int, defaults.thumb_size, 1),
            download_max_concurrent=_bounded(
                settings, "matching.max_concurrent", int, defaults.download_max_concurrent, 1
            ),
            log_dir=os.path.expandvars(raw_log_dir) if isinstance(raw_log_dir, str) else None,
            log_level=str(settings.get("logging.level", defaults.log_level)),
            default_sort=parse_sort_keys(settings.get("sorting.defaults", [])),
        )
