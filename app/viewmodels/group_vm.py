"""Records grouped by item number for display."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from app.viewmodels.record_vm import RecordVM
from core.models import ImageRecord
from core.naming import classify

UNGROUPED = ""


@dataclass
class GroupVM:
    item_number: str
    items: list[RecordVM] = field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return any(vm.record.expanded_check_issue for vm in self.items)


def group_by_item(records: list[ImageRecord]) -> list[GroupVM]:
    """Group records by classified item number; unrecognised names go last."""
    grouped: dict[str, list[RecordVM]] = defaultdict(list)
    for record in records:
        info = classify(record.proposed_name)
        grouped[info.item_number if info else UNGROUPED].append(RecordVM(record))
    ordered = sorted(grouped.items(), key=lambda kv: (kv[0] == UNGROUPED, kv[0]))
    return [GroupVM(item_number=k, items=v) for k, v in ordered]
