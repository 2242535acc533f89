"""File operations on local images: move to trash and rename."""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger
from send2trash import send2trash

from core.services.interfaces import DeleteResult, RenameResult


class FileService:
    """Moves files to the trash and renames them in place."""

    def delete_to_recycle(self, paths: list[str]) -> DeleteResult:
        """Send files to the trash and report per-path results."""
        success: list[str] = []
        failed: list[tuple[str, str]] = []
        for p in paths:
            normalized_path = os.path.normpath(p)
            if not os.path.exists(normalized_path):
                logger.error("File does not exist: {}", normalized_path)
                failed.append((p, "File does not exist"))
                continue
            try:
                send2trash(normalized_path)
                success.append(p)
            except (UnicodeEncodeError, OSError) as ex:
                logger.error("Move to trash failed for {}: {}", normalized_path, ex)
                failed.append((p, str(ex)))
        if success:
            logger.info("Moved {} file(s) to trash", len(success))
        return DeleteResult(success_paths=success, failed=failed)

    def rename(self, path: str, new_name: str) -> RenameResult:
        """Rename `path` to `new_name` within the same folder.

        An existing file at the destination is never overwritten.
        """
        source = Path(path)
        destination = source.with_name(new_name)
        if destination == source:
            return RenameResult(new_path=str(source))
        if destination.exists() and destination.resolve() != source.resolve():
            return RenameResult(new_path=None, error=f"{destination.name} already exists")
        try:
            source.rename(destination)
        except OSError as ex:
            logger.error("Rename {} -> {} failed: {}", source, destination, ex)
            return RenameResult(new_path=None, error=str(ex))
        logger.info("Renamed {} -> {}", source.name, destination.name)
        return RenameResult(new_path=str(destination))
