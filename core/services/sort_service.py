"""Sorting helpers for imported files and `ImageRecord` lists.

Filenames are ordered the way a file browser shows them: case-insensitive,
with digit runs compared numerically (``A2`` before ``A10``).
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from pathlib import Path
import re
from typing import Any

from core.models import ImageRecord

_DIGITS_RE = re.compile(r"(\d+)")


def natural_key(text: str) -> tuple[Any, ...]:
    """Key that compares digit runs as numbers and text case-insensitively."""
    parts = _DIGITS_RE.split(text)
    return tuple((0, int(p), "") if p.isdigit() else (1, 0, p.casefold()) for p in parts if p)


class SortService:
    """Provides sorting utilities for paths and records."""

    def sort_paths(self, paths: Iterable[str]) -> list[str]:
        """Return unique `paths` ordered naturally by filename."""
        unique = set(paths)
        return sorted(unique, key=lambda p: (natural_key(Path(p).name), p))

    def sort(self, records: list[ImageRecord], sort_keys: list[tuple[str, bool]]) -> None:
        """Sort `records` in place by the given keys.

        Args:
            records: Records to sort.
            sort_keys: List of tuples (field_name, ascending).
        """
        if not sort_keys:
            return

        # Stable sorts applied from the least significant key to the most
        for field_name, ascending in reversed(sort_keys):
            records.sort(
                key=lambda r, name=field_name: _field_key(getattr(r, name, None)),
                reverse=not ascending,
            )


def _field_key(value: Any) -> tuple[Any, ...]:
    if isinstance(value, Enum):
        value = value.value
    if value is None:
        return (0, ())
    if isinstance(value, bool):
        return (1, (int(value),))
    if isinstance(value, (int, float)):
        return (1, (value,))
    return (2, natural_key(str(value)))
