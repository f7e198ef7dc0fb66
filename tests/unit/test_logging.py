"""Tests for logging setup and formatters."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from themesync.runtime.logging import (
    ConsoleFormatter,
    JSONLFormatter,
    get_log_dir,
    get_logger,
    log_with_context,
    setup_logging,
)


def _record(message: str = "hello", level: int = logging.INFO, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("themesync.sync", level, __file__, 10, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONLFormatter:
    def test_basic_fields(self) -> None:
        entry = json.loads(JSONLFormatter().format(_record(component="SHEET")))
        assert entry["level"] == "INFO"
        assert entry["component"] == "SHEET"
        assert entry["message"] == "hello"
        assert "source" not in entry

    def test_context_and_source(self) -> None:
        record = _record("failed", logging.WARNING, context={"store": "DEV"})
        entry = json.loads(JSONLFormatter().format(record))
        assert entry["context"] == {"store": "DEV"}
        assert entry["source"]["line"] == 10


class TestConsoleFormatter:
    def test_component_prefix(self) -> None:
        line = ConsoleFormatter().format(_record("synced", component="WEBHOOK"))
        assert "[WEBHOOK]" in line
        assert line.endswith("synced")

    def test_level_shown_for_non_info(self) -> None:
        line = ConsoleFormatter().format(_record("bad", logging.ERROR))
        assert "ERROR" in line


class TestSetupLogging:
    def test_writes_jsonl(self, tmp_path: Path) -> None:
        log_dir = setup_logging(tmp_path / "logs")
        assert log_dir == tmp_path / "logs"
        assert get_log_dir() == log_dir

        logger = get_logger("SYNC")
        log_with_context(logger, logging.INFO, "Processed 3 settings", store="DEV", files=2)
        for handler in logging.getLogger("themesync").handlers:
            handler.flush()

        lines = (tmp_path / "logs" / "themesync.log").read_text().splitlines()
        entry = json.loads(lines[-1])
        assert entry["message"] == "Processed 3 settings"
        assert entry["component"] == "SYNC"
        assert entry["context"] == {"store": "DEV", "files": 2}

    def test_console_only(self) -> None:
        assert setup_logging(None) is None
        assert get_log_dir() is None
        assert len(logging.getLogger("themesync").handlers) == 1

    def test_get_logger_is_cached(self) -> None:
        assert get_logger("SHOPIFY") is get_logger("SHOPIFY")
        assert get_logger("SHOPIFY").name == "themesync.shopify"
