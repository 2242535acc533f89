"""Core service interfaces and shared data structures.

This module defines the small dataclasses exchanged between the engine, the
infrastructure services and the view-model, plus the protocol the
reconciliation engine uses to reach the remote store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from core.models import BatchOutcome


@dataclass
class DeleteResult:
    """Outcome of a delete operation.

    Attributes:
        success_paths: Paths successfully moved to the trash.
        failed: Tuples of (path, reason) for failures.
    """

    success_paths: list[str]
    failed: list[tuple[str, str]]


@dataclass
class RenameResult:
    """Outcome of renaming one file on disk.

    Attributes:
        new_path: Path after the rename, or None when it failed.
        error: Human readable failure reason.
    """

    new_path: str | None
    error: str | None = None


@dataclass
class DownloadSummary:
    """Totals reported by the download-and-match variant.

    Attributes:
        outcome: Completed or cancelled.
        total: Number of URLs read from the CSV.
        checked: URLs fetched and scored.
        matched: Images saved because they matched the reference.
        message: Final status line for the presentation layer.
        saved_paths: Files written to the destination folder.
        failed: True when the run stopped before fetching anything.
    """

    outcome: BatchOutcome
    total: int
    checked: int
    matched: int
    message: str
    saved_paths: list[str]
    failed: bool = False


class IAssetProber(Protocol):
    """What reconciliation needs from the remote store."""

    def url_for(self, name: str) -> str | None:
        """Return the remote URL for a local filename, or None."""
        raise NotImplementedError

    async def exists(self, url: str | None) -> bool:
        """Return True when a genuine (non-placeholder) asset lives at `url`."""
        raise NotImplementedError
