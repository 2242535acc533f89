"""CSV input and output.

Reads the URL column of a download list and writes per-record check reports.
"""

from __future__ import annotations

from collections.abc import Iterable
import csv
from pathlib import Path

from loguru import logger

from core.models import ImageRecord

URL_COLUMN_INDEX = 1

REPORT_HEADERS = [
    "FilePath",
    "ProposedName",
    "RemoteURL",
    "Status",
    "ContentHash",
    "ExistsRemotely",
    "UsedDetailSlots",
    "AvailableDetailSlots",
    "RenameError",
    "NamingWarning",
    "SwatchIssue",
    "ExpandedCheckIssue",
]


def _clean_cell(value: str) -> str:
    return value.replace('"', "").strip()


class CsvUrlRepository:
    """Load image URLs from a CSV with a header row."""

    def __init__(self, url_index: int = URL_COLUMN_INDEX) -> None:
        self.url_index = url_index

    def read_urls(self, csv_path: str) -> list[str]:
        """Return the URL column of every data row.

        The first row is always treated as a header. Blank rows and rows
        without a URL column are skipped.

        Raises:
            OSError: When the file cannot be read.
        """
        path = Path(csv_path)
        urls: list[str] = []
        with path.open("r", encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f)
            next(reader, None)
            for line_no, row in enumerate(reader, start=2):
                if not any(cell.strip() for cell in row):
                    continue
                if len(row) <= self.url_index:
                    logger.warning("CSV row {} has no URL column: {}", line_no, row)
                    continue
                url = _clean_cell(row[self.url_index])
                if url:
                    urls.append(url)
        return urls


class CsvReportRepository:
    """Write the checked state of records to CSV."""

    def save(self, csv_path: str, records: Iterable[ImageRecord]) -> None:
        """Write one row per record to `csv_path` using canonical headers."""
        path = Path(csv_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=REPORT_HEADERS)
            writer.writeheader()
            for record in records:
                writer.writerow(
                    {
                        "FilePath": record.local_path,
                        "ProposedName": record.proposed_name,
                        "RemoteURL": record.remote_url or "",
                        "Status": record.status.value,
                        "ContentHash": record.content_hash or "",
                        "ExistsRemotely": 1 if record.is_duplicate else 0,
                        "UsedDetailSlots": " ".join(record.used_detail_slots or []),
                        "AvailableDetailSlots": " ".join(record.available_detail_slots or []),
                        "RenameError": record.rename_error or "",
                        "NamingWarning": record.naming_warning or "",
                        "SwatchIssue": record.swatch_validation_issue or "",
                        "ExpandedCheckIssue": record.expanded_check_issue or "",
                    }
                )
        logger.info("Report written: {}", path)
