"""Batch-level validation of proposed filenames."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from core.models import ImageRecord
from core.naming import has_image_extension

EMPTY_NAME = "Filename cannot be empty."
INVALID_EXTENSION = "Not a valid image file extension."
DUPLICATE_NAME = "Duplicate filename in this batch."


def validate_rename(proposed_name: str, existing_names: Iterable[str]) -> str | None:
    """Return an error message for `proposed_name`, or None when it is valid.

    Args:
        proposed_name: Name the user wants the file to have.
        existing_names: Lower-cased proposed names of the other records.
    """
    trimmed = proposed_name.strip()
    if not trimmed:
        return EMPTY_NAME
    if not has_image_extension(trimmed):
        return INVALID_EXTENSION
    if trimmed.lower() in set(existing_names):
        return DUPLICATE_NAME
    return None


def other_names_lowercased(records: Sequence[ImageRecord], index: int) -> list[str]:
    """Lower-cased proposed names of every record except the one at `index`."""
    return [r.proposed_name.lower() for i, r in enumerate(records) if i != index]


def can_export(records: Sequence[ImageRecord]) -> bool:
    """True when no record has a rename error and at least one rename is pending."""
    return all(r.rename_error is None for r in records) and any(
        r.filename != r.proposed_name for r in records
    )
