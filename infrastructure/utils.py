"""Filesystem helpers for collecting image files and naming downloads.

Folders are walked recursively; hidden files and hidden folders are skipped.
These helpers never raise on unreadable entries, callers get whatever could
be collected.
"""

from __future__ import annotations

from collections.abc import Iterable
import os
from pathlib import Path
import re
from urllib.parse import urlsplit
import uuid

from loguru import logger

from core.naming import has_image_extension

_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9_.-]")
_KEPT_SUFFIXES = (".jpg", ".jpeg", ".png")


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def collect_file_paths(paths: Iterable[str]) -> list[str]:
    """Expand files and folders in `paths` into a flat list of file paths."""
    files: list[str] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            for root, dirs, names in os.walk(path, onerror=_log_walk_error):
                dirs[:] = [d for d in dirs if not _is_hidden(d)]
                files.extend(os.path.join(root, n) for n in names if not _is_hidden(n))
        elif path.is_file():
            files.append(str(path))
        else:
            logger.debug("Skipping missing path: {}", raw)
    return files


def _log_walk_error(error: OSError) -> None:
    logger.warning("Cannot read folder {}: {}", error.filename, error)


def filter_image_paths(paths: Iterable[str]) -> list[str]:
    """Keep only paths whose extension is an allowed image extension."""
    return [p for p in paths if has_image_extension(os.path.basename(p))]


def download_filename(url: str) -> str:
    """Build a safe local filename for an image downloaded from `url`."""
    name = os.path.basename(urlsplit(url).path).split("?", 1)[0]
    if not name:
        name = f"image_{uuid.uuid4().hex}.jpg"
    name = _UNSAFE_CHARS_RE.sub("_", name)
    if not name.endswith(_KEPT_SUFFIXES):
        name += ".jpg"
    return name
