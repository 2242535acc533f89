"""Lightweight view model wrapper around `ImageRecord`."""

from __future__ import annotations

from dataclasses import dataclass

from core.models import ImageRecord, ImageStatus

STATUS_LABELS = {
    ImageStatus.NOT_CHECKED: "Not checked",
    ImageStatus.EXISTS: "Exists",
    ImageStatus.ERROR: "Error",
    ImageStatus.UNIQUE: "Unique",
}


@dataclass
class RecordVM:
    """Expose convenient properties for bindings/templates."""

    record: ImageRecord

    @property
    def file_name(self) -> str:
        return self.record.filename

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.record.status]

    @property
    def is_renamed(self) -> bool:
        """True when a rename is pending."""
        return self.record.proposed_name != self.record.filename

    @property
    def used_slots_text(self) -> str:
        """Comma separated used detail slots, or empty when not scanned."""
        if not self.record.detail_slot_checked:
            return ""
        return ", ".join(self.record.used_detail_slots or []) or "none"

    @property
    def available_slots_text(self) -> str:
        if not self.record.detail_slot_checked:
            return ""
        return ", ".join(self.record.available_detail_slots or []) or "none"

    @property
    def issues(self) -> list[str]:
        """Every diagnostic attached to the record, most severe first."""
        found = [
            self.record.rename_error,
            self.record.expanded_check_issue,
            self.record.naming_warning,
        ]
        return [text for text in found if text]
