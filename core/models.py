"""Core domain models for image records and remote probe results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
import uuid


class ImageStatus(str, Enum):
    """Remote verification state of a single record."""

    NOT_CHECKED = "notChecked"
    EXISTS = "exists"
    ERROR = "error"
    UNIQUE = "unique"


class ProbeVerdict(str, Enum):
    """Outcome of one remote fetch."""

    GENUINE = "genuine"
    PLACEHOLDER = "placeholder"
    TRANSPORT_ERROR = "transport_error"
    UNMAPPABLE = "unmappable"


class BatchOutcome(str, Enum):
    """Terminal state of a scheduled batch."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MissingAssetType(str, Enum):
    """Companion asset that reconciliation found missing on the remote store."""

    COLOR_BLOCK = "101"
    PRODUCT_SWATCH = "102"
    MAIN_IMAGE = "001"

    @property
    def description(self) -> str:
        return _MISSING_DESCRIPTIONS[self]


_MISSING_DESCRIPTIONS = {
    MissingAssetType.COLOR_BLOCK: "Swatch block",
    MissingAssetType.PRODUCT_SWATCH: "Swatch image",
    MissingAssetType.MAIN_IMAGE: "001",
}

_VERDICT_STATUS = {
    ProbeVerdict.GENUINE: ImageStatus.EXISTS,
    ProbeVerdict.PLACEHOLDER: ImageStatus.ERROR,
    ProbeVerdict.TRANSPORT_ERROR: ImageStatus.ERROR,
    ProbeVerdict.UNMAPPABLE: ImageStatus.ERROR,
}


def status_for_verdict(verdict: ProbeVerdict) -> ImageStatus:
    """Map a probe verdict to the record status it produces."""
    return _VERDICT_STATUS[verdict]


def _new_record_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ImageRecord:
    """A single local image file under consideration."""

    local_path: str
    proposed_name: str = ""
    remote_url: str | None = None
    status: ImageStatus = ImageStatus.NOT_CHECKED
    content_hash: str | None = None
    # True when the remote content at `remote_url` is genuine (not the placeholder)
    is_duplicate: bool = False
    rename_error: str | None = None
    naming_warning: str | None = None
    used_detail_slots: list[str] | None = None
    available_detail_slots: list[str] | None = None
    detail_slot_checked: bool = False
    user_marked_ok: bool = False
    swatch_validation_issue: str | None = None
    expanded_check_issue: str | None = None
    id: str = field(default_factory=_new_record_id)

    def __post_init__(self) -> None:
        if not self.proposed_name:
            self.proposed_name = self.filename

    @property
    def filename(self) -> str:
        """Base name of the local path."""
        return Path(self.local_path).name

    def reset_probe_state(self) -> None:
        """Forget everything learned from previous remote probes."""
        self.status = ImageStatus.NOT_CHECKED
        self.is_duplicate = False
        self.content_hash = None
        self.used_detail_slots = None
        self.available_detail_slots = None
        self.detail_slot_checked = False

    def clear_issues(self) -> None:
        self.swatch_validation_issue = None
        self.expanded_check_issue = None

    def append_expanded_issue(self, message: str) -> None:
        """Append `message` to the current reconciliation text."""
        if self.expanded_check_issue:
            self.expanded_check_issue = f"{self.expanded_check_issue} & {message}"
        else:
            self.expanded_check_issue = message


@dataclass(frozen=True)
class FetchOutcome:
    """Classified result of fetching one remote URL."""

    verdict: ProbeVerdict
    content_hash: str | None = None

    @property
    def exists(self) -> bool:
        return self.verdict is ProbeVerdict.GENUINE


@dataclass(frozen=True)
class DetailSlotScan:
    """Detail slots 001-008 split into occupied and open on the remote side."""

    used: tuple[str, ...] = ()
    available: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProbeOutcome:
    """New partial state for one record, produced by a probe.

    Probes never touch records directly; the owner of the record list applies
    outcomes one at a time with `apply_to`.
    """

    record_id: str
    status: ImageStatus
    content_hash: str | None = None
    is_duplicate: bool = False
    used_detail_slots: tuple[str, ...] | None = None
    available_detail_slots: tuple[str, ...] | None = None
    detail_slot_checked: bool = False
    cancelled: bool = False

    def apply_to(self, record: ImageRecord) -> None:
        """Write this outcome into `record`. Cancelled outcomes are ignored."""
        if self.cancelled or record.id != self.record_id:
            return
        record.status = self.status
        record.content_hash = self.content_hash
        record.is_duplicate = self.is_duplicate
        record.used_detail_slots = (
            list(self.used_detail_slots) if self.used_detail_slots is not None else None
        )
        record.available_detail_slots = (
            list(self.available_detail_slots) if self.available_detail_slots is not None else None
        )
        record.detail_slot_checked = self.detail_slot_checked


@dataclass(frozen=True)
class SwatchValidationError:
    """A companion asset missing both locally and on the remote store."""

    item_number: str
    missing_type: MissingAssetType
    message: str
    color_code: str | None = None
