"""ViewModel that owns the record batch and orchestrates remote checks."""

from __future__ import annotations

from loguru import logger

from core.models import (
    BatchOutcome,
    ImageRecord,
    ImageStatus,
    ProbeOutcome,
    SwatchValidationError,
)
from core.naming import check_naming_convention
from core.services.reconcile_service import ReconcileReport, ReconciliationEngine
from core.services.scheduler import CancellationToken, ProgressCounter, run_in_chunks
from core.services.sort_service import SortService
from core.services.validation_service import (
    can_export,
    other_names_lowercased,
    validate_rename,
)
from infrastructure.csv_repository import CsvReportRepository
from infrastructure.file_service import FileService
from infrastructure.remote_client import ExistenceProber
from infrastructure.utils import collect_file_paths, filter_image_paths

CANCELLED_MESSAGE = "Checking cancelled by user"
NO_IMAGES_MESSAGE = "No image files found in selection."


class CheckerVM:
    """Main application view-model.

    Holds the `ImageRecord` list the presentation layer renders and is the
    only place probe results are written into records.
    """

    def __init__(
        self,
        prober: ExistenceProber,
        max_concurrent: int = 10,
        sorter: SortService | None = None,
        file_service: FileService | None = None,
        report_repo: CsvReportRepository | None = None,
        default_sort: list[tuple[str, bool]] | None = None,
    ) -> None:
        """Create a CheckerVM.

        Args:
            prober: Remote store prober used for every check.
            max_concurrent: Records probed at once during `check_all`.
            sorter: Sorting service (defaults to `SortService`).
            file_service: Rename/trash operations (defaults to `FileService`).
            report_repo: CSV report writer (defaults to `CsvReportRepository`).
            default_sort: List of (field_name, ascending) applied after import.
        """
        self._prober = prober
        self._max_concurrent = max(1, max_concurrent)
        self._sorter = sorter or SortService()
        self._files = file_service or FileService()
        self._reports = report_repo or CsvReportRepository()
        self._default_sort = default_sort or []
        self._engine = ReconciliationEngine(prober)
        self._token = CancellationToken()

        self.records: list[ImageRecord] = []
        self.swatch_validation_errors: list[SwatchValidationError] = []
        self.is_loading = False
        self.status_message: str | None = None
        self.progress_text = ""
        self.checked_count = 0
        self.total_count = 0

    # Presentation state
    @property
    def is_cancelled(self) -> bool:
        return self._token.cancelled

    @property
    def can_export(self) -> bool:
        return can_export(self.records)

    def find_record(self, record_id: str) -> tuple[int, ImageRecord] | None:
        for index, record in enumerate(self.records):
            if record.id == record_id:
                return index, record
        return None

    # Batch membership
    def import_files(self, paths: list[str]) -> int:
        """Replace the batch with the image files found under `paths`."""
        files = self._sorter.sort_paths(filter_image_paths(collect_file_paths(paths)))
        records: list[ImageRecord] = []
        for path in files:
            record = ImageRecord(local_path=path)
            record.remote_url = self._prober.url_for(record.proposed_name)
            record.naming_warning = check_naming_convention(record.filename)
            records.append(record)
        if self._default_sort:
            self._sorter.sort(records, self._default_sort)
        self.records = records
        self.swatch_validation_errors = []
        self.status_message = None if records else NO_IMAGES_MESSAGE
        logger.info("Imported {} image files from {} path(s)", len(records), len(paths))
        return len(records)

    def remove_record(self, record_id: str) -> None:
        """Remove a record from the batch without touching the file."""
        self.records = [r for r in self.records if r.id != record_id]

    def delete_file_and_remove_record(self, record_id: str) -> bool:
        """Move the record's file to the trash, then drop it from the batch."""
        found = self.find_record(record_id)
        if found is None:
            return False
        _, record = found
        result = self._files.delete_to_recycle([record.local_path])
        if result.failed:
            _, reason = result.failed[0]
            self.status_message = f"Failed to delete file: {reason}"
            return False
        self.remove_record(record_id)
        return True

    def clear_all(self) -> None:
        self.records = []
        self.swatch_validation_errors = []
        self.status_message = None
        self.progress_text = ""
        self.checked_count = 0
        self.total_count = 0
        self._token.reset()

    # Checking
    def cancel(self) -> None:
        """Ask running checks to stop; their partial results are discarded."""
        self._token.cancel()
        self.is_loading = False
        self.status_message = CANCELLED_MESSAGE
        logger.info("Checking cancelled by user")

    async def check_all(self) -> BatchOutcome:
        """Probe every record, at most `max_concurrent` at a time."""
        self.is_loading = True
        self._token.reset()
        self.status_message = None
        snapshot = list(self.records)
        self.total_count = len(snapshot)
        self.checked_count = 0
        counter = ProgressCounter()

        async def on_result(_index: int, _outcome: ProbeOutcome | None) -> None:
            self.checked_count = await counter.increment()
            self.progress_text = f"Checked {self.checked_count} of {self.total_count} images"

        try:
            result = await run_in_chunks(
                snapshot,
                lambda record: self._prober.probe_record(record, self._token),
                self._max_concurrent,
                self._token,
                on_result,
            )
            if result.cancelled:
                self.status_message = CANCELLED_MESSAGE
                return BatchOutcome.CANCELLED

            by_id = {record.id: record for record in self.records}
            for outcome in result.results:
                if outcome is None:
                    continue
                record = by_id.get(outcome.record_id)
                if record is not None:
                    outcome.apply_to(record)

            total = len(snapshot)
            exists = sum(1 for r in snapshot if r.status is ImageStatus.EXISTS)
            self.progress_text = (
                f"Checked {total} images: {exists} exist, {total - exists} not found"
            )
            logger.info(self.progress_text)
            return BatchOutcome.COMPLETED
        finally:
            self.is_loading = False

    async def validate_swatch_pairs(self) -> ReconcileReport:
        """Run the reconciliation pass over the current batch."""
        self.swatch_validation_errors = []
        report = await self._engine.run(self.records, self._token)
        if report.cancelled:
            self.status_message = CANCELLED_MESSAGE
        else:
            self.swatch_validation_errors = list(report.findings)
        return report

    async def check_all_with_swatch_validation(self) -> BatchOutcome:
        """Probe every record, then reconcile swatch families."""
        outcome = await self.check_all()
        if outcome is BatchOutcome.CANCELLED:
            return outcome
        self.is_loading = True
        try:
            report = await self.validate_swatch_pairs()
        finally:
            self.is_loading = False
        return report.outcome

    # Renaming
    def update_proposed_name(self, record_id: str, new_name: str) -> None:
        """Set a new working name and reset everything derived from the old one."""
        found = self.find_record(record_id)
        if found is None:
            return
        index, record = found
        name = new_name.strip()
        record.proposed_name = name
        record.remote_url = self._prober.url_for(name)
        record.reset_probe_state()
        record.rename_error = validate_rename(name, other_names_lowercased(self.records, index))
        record.naming_warning = check_naming_convention(name)

    def mark_unique(self, record_id: str) -> None:
        """Caller-confirmed: the record is new and needs no remote counterpart."""
        found = self.find_record(record_id)
        if found is None:
            return
        _, record = found
        record.status = ImageStatus.UNIQUE
        record.user_marked_ok = True

    async def rename_file_on_disk(self, record_id: str) -> None:
        """Apply the proposed name on disk, then re-check the record."""
        found = self.find_record(record_id)
        if found is None:
            return
        index, record = found
        record.rename_error = validate_rename(
            record.proposed_name, other_names_lowercased(self.records, index)
        )
        record.naming_warning = check_naming_convention(record.proposed_name)
        if record.rename_error is None and record.filename != record.proposed_name:
            result = self._files.rename(record.local_path, record.proposed_name.strip())
            if result.new_path is None:
                record.rename_error = f"Rename failed: {result.error}"
            else:
                record.local_path = result.new_path
                record.proposed_name = record.filename
                record.remote_url = self._prober.url_for(record.proposed_name)

        if record.rename_error is None:
            # A pending batch cancellation must stay set
            outcome = await self._prober.probe_record(record, CancellationToken())
            outcome.apply_to(record)

    def export_report(self, csv_path: str) -> None:
        self._reports.save(csv_path, self.records)
