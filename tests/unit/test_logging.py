"""Unit tests for loguru setup helpers."""

import os
import time

from loguru import logger

from infrastructure.logging import find_latest_log_file, init_logging


def test_init_logging_writes_file(tmp_path) -> None:
    log_dir = tmp_path / "logs"
    init_logging(str(log_dir), "DEBUG")
    try:
        logger.info("hello from the checker")
        logger.complete()
    finally:
        logger.remove()

    latest = find_latest_log_file(str(log_dir))
    assert latest is not None
    assert "hello from the checker" in latest.read_text(encoding="utf-8")


def test_find_latest_log_file(tmp_path) -> None:
    assert find_latest_log_file(str(tmp_path / "absent")) is None
    old = tmp_path / "checker_20240101.log"
    new = tmp_path / "checker_20240102.log"
    old.write_text("old")
    new.write_text("new")
    past = time.time() - 3600
    os.utime(old, (past, past))

    assert find_latest_log_file(str(tmp_path)) == new
