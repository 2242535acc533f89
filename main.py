from __future__ import annotations

import argparse
import asyncio
from collections.abc import Callable
from pathlib import Path
import signal
import sys

from loguru import logger

from app.viewmodels.checker_vm import CheckerVM
from app.viewmodels.group_vm import group_by_item
from core.models import BatchOutcome
from core.services.scheduler import CancellationToken
from infrastructure.download_service import DownloadService
from infrastructure.image_service import ImageService
from infrastructure.logging import find_latest_log_file, get_log_directory, init_logging
from infrastructure.remote_client import ExistenceProber, RemoteStoreClient
from infrastructure.settings import CheckerSettings, JsonSettings

BASE_DIR = Path(__file__).parent
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def _install_interrupt(cancel: Callable[[], None]) -> None:
    """Route Ctrl+C to `cancel` so running batches stop cooperatively."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel)
    except (NotImplementedError, RuntimeError):
        signal.signal(signal.SIGINT, lambda *_: cancel())


def _print_records(vm: CheckerVM) -> None:
    for group in group_by_item(vm.records):
        marker = "  (issues)" if group.has_issues else ""
        print(f"[{group.item_number or 'unrecognised'}]{marker}")
        for item in group.items:
            rec = item.record
            print(f"  {item.status_label:<11} {rec.proposed_name}  {rec.remote_url or '-'}")
            if rec.detail_slot_checked:
                print(f"              slots used: {item.used_slots_text}")
                print(f"              slots open: {item.available_slots_text}")
            for issue in item.issues:
                print(f"              ! {issue}")


async def _run_check(args: argparse.Namespace, cfg: CheckerSettings) -> int:
    async with RemoteStoreClient(timeout=cfg.timeout_seconds, retries=cfg.retries) as client:
        prober = ExistenceProber(client, cfg.placeholder_md5, cfg.base_url)
        vm = CheckerVM(prober, max_concurrent=cfg.max_concurrent, default_sort=cfg.default_sort)
        if vm.import_files(args.paths) == 0:
            print(vm.status_message)
            return EXIT_FAILED
        _install_interrupt(vm.cancel)
        if args.swatch:
            outcome = await vm.check_all_with_swatch_validation()
        else:
            outcome = await vm.check_all()

    if outcome is BatchOutcome.CANCELLED:
        print(vm.status_message)
        return EXIT_CANCELLED
    _print_records(vm)
    print(vm.progress_text)
    if args.report:
        vm.export_report(args.report)
        print(f"Report written to {args.report}")
    return 0


async def _run_download(args: argparse.Namespace, cfg: CheckerSettings) -> int:
    token = CancellationToken()
    _install_interrupt(token.cancel)
    async with RemoteStoreClient(timeout=cfg.timeout_seconds, retries=cfg.retries) as client:
        service = DownloadService(
            client,
            ImageService(thumb_size=cfg.thumb_size),
            threshold=cfg.similarity_threshold,
            limit=cfg.download_max_concurrent,
        )
        summary = await service.download_matching(
            args.csv,
            args.destination,
            args.reference,
            token,
            on_progress=lambda message, _checked, _total: print(message, flush=True),
        )
    if summary.failed:
        return EXIT_FAILED
    return EXIT_CANCELLED if summary.outcome is BatchOutcome.CANCELLED else 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="batch-upload-checker",
        description="Check local product images against the remote image store.",
    )
    parser.add_argument(
        "--settings", default=str(BASE_DIR / "settings.json"), help="settings JSON file"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="probe files and folders against the store")
    check.add_argument("paths", nargs="+", help="image files or folders")
    check.add_argument("--swatch", action="store_true", help="also reconcile swatch families")
    check.add_argument("--report", help="write a CSV report to this path")
    check.set_defaults(handler=_run_check)

    download = sub.add_parser("download", help="download CSV-listed images matching a reference")
    download.add_argument("csv", help="CSV with image URLs in the second column")
    download.add_argument("destination", help="folder for matching images")
    download.add_argument("--reference", required=True, help="reference image to match")
    download.set_defaults(handler=_run_download)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    cfg = CheckerSettings.from_settings(JsonSettings(args.settings))
    init_logging(cfg.log_dir, cfg.log_level)
    logger.info("Starting {} (logs in {})", args.command, cfg.log_dir or get_log_directory())
    code = asyncio.run(args.handler(args, cfg))
    latest = find_latest_log_file(cfg.log_dir)
    if latest is not None:
        print(f"Log file: {latest}")
    return code


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
