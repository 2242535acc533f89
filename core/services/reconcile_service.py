"""Cross-checks swatch families against the remote store.

Two checks are derived from the local inventory on every pass:

- Swatch pairs: an (item, color) group with only one of 101/102 locally needs
  the other one to exist remotely.
- Main image: every item with any swatch file needs a 001 image, locally or
  remotely.

Remote probes run concurrently; their findings are applied afterwards in a
fixed order so the resulting issue text does not depend on completion order.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import partial

from loguru import logger

from core.models import BatchOutcome, ImageRecord, MissingAssetType, SwatchValidationError
from core.naming import ImageKind, classify
from core.services.interfaces import IAssetProber
from core.services.scheduler import CancellationToken, run_fanout

_TYPE_ORDER = {
    MissingAssetType.PRODUCT_SWATCH: 0,
    MissingAssetType.COLOR_BLOCK: 1,
    MissingAssetType.MAIN_IMAGE: 2,
}


def missing_message(missing: MissingAssetType) -> str:
    return f"Expanded check. {missing.description} is missing and needs to be loaded."


@dataclass(frozen=True)
class SwatchPairCheck:
    """Probe for the companion swatch slot of one (item, color) group."""

    item_number: str
    color_code: str
    missing: MissingAssetType

    @property
    def probe_name(self) -> str:
        return f"{self.item_number}_{self.color_code}.{self.missing.value}.jpg"


@dataclass(frozen=True)
class MainImageCheck:
    """Probe for the 001 main image of an item."""

    item_number: str
    missing: MissingAssetType = MissingAssetType.MAIN_IMAGE

    @property
    def probe_name(self) -> str:
        return f"{self.item_number}.001.jpg"


ReconcileCheck = SwatchPairCheck | MainImageCheck


@dataclass
class ReconcileReport:
    """Result of one reconciliation pass."""

    outcome: BatchOutcome
    checks_run: int = 0
    findings: list[SwatchValidationError] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.outcome is BatchOutcome.CANCELLED


class ReconciliationEngine:
    """Finds swatch companions and main images missing from the remote store."""

    def __init__(self, prober: IAssetProber, limit: int | None = None) -> None:
        self._prober = prober
        self._limit = limit

    def plan(self, records: Sequence[ImageRecord]) -> list[ReconcileCheck]:
        """Build the remote checks implied by the local inventory."""
        swatch_groups: dict[tuple[str, str], set[str]] = defaultdict(set)
        swatch_items: set[str] = set()
        items_with_main: set[str] = set()

        for record in records:
            info = classify(record.proposed_name)
            if info is None:
                continue
            if info.is_swatch and info.color_code and info.slot:
                swatch_groups[(info.item_number, info.color_code)].add(info.slot)
                swatch_items.add(info.item_number)
            elif info.kind is ImageKind.DETAIL and info.slot == "001":
                items_with_main.add(info.item_number)

        checks: list[ReconcileCheck] = []
        for (item_number, color_code), slots in sorted(swatch_groups.items()):
            has_block = MissingAssetType.COLOR_BLOCK.value in slots
            has_image = MissingAssetType.PRODUCT_SWATCH.value in slots
            if has_block and not has_image:
                checks.append(
                    SwatchPairCheck(item_number, color_code, MissingAssetType.PRODUCT_SWATCH)
                )
            elif has_image and not has_block:
                checks.append(
                    SwatchPairCheck(item_number, color_code, MissingAssetType.COLOR_BLOCK)
                )

        for item_number in sorted(swatch_items - items_with_main):
            checks.append(MainImageCheck(item_number))
        return checks

    async def run(
        self, records: Sequence[ImageRecord], token: CancellationToken
    ) -> ReconcileReport:
        """Clear previous issues, probe every planned check and mark records.

        Records are left cleared (and unmarked) when the pass is cancelled.
        """
        for record in records:
            record.clear_issues()

        checks = self.plan(records)
        if token.cancelled:
            return ReconcileReport(BatchOutcome.CANCELLED, len(checks))

        logger.info("Reconciliation: {} remote checks for {} records", len(checks), len(records))
        result = await run_fanout(
            [partial(self._run_check, check, token) for check in checks], token, self._limit
        )
        if result.cancelled:
            return ReconcileReport(BatchOutcome.CANCELLED, len(checks))

        findings = [finding for finding in result.results if finding is not None]
        self.apply(records, findings)
        logger.info("Reconciliation found {} missing assets", len(findings))
        return ReconcileReport(BatchOutcome.COMPLETED, len(checks), findings)

    async def _run_check(
        self, check: ReconcileCheck, token: CancellationToken
    ) -> SwatchValidationError | None:
        if token.cancelled:
            return None
        url = self._prober.url_for(check.probe_name)
        if url is None:
            return None
        exists = await self._prober.exists(url)
        if token.cancelled or exists:
            return None
        return SwatchValidationError(
            item_number=check.item_number,
            missing_type=check.missing,
            message=missing_message(check.missing),
            color_code=getattr(check, "color_code", None),
        )

    def apply(
        self, records: Sequence[ImageRecord], findings: Sequence[SwatchValidationError]
    ) -> None:
        """Append finding messages to the affected records in a stable order."""
        ordered = sorted(
            findings,
            key=lambda f: (f.item_number, _TYPE_ORDER[f.missing_type], f.color_code or ""),
        )
        missing_by_record: dict[str, list[str]] = defaultdict(list)
        for record in records:
            info = classify(record.proposed_name)
            if info is None:
                continue
            for finding in ordered:
                if info.item_number != finding.item_number:
                    continue
                if finding.missing_type is not MissingAssetType.MAIN_IMAGE and (
                    not info.is_swatch or info.color_code != finding.color_code
                ):
                    continue
                record.append_expanded_issue(finding.message)
                missing_by_record[record.id].append(finding.missing_type.description)

        for record in records:
            missing = missing_by_record.get(record.id)
            if missing:
                record.swatch_validation_issue = f"Missing: {', '.join(missing)}"
