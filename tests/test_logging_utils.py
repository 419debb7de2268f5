"""Unit tests for logging utilities (console filter and setup)."""
from __future__ import annotations

import logging
import logging.handlers

import pytest

from statcollector.logging_utils import ColoredFormatter, ConsoleFilter, setup_crawl_logging


def _record(name: str, level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


# ==============================================================================
# ConsoleFilter Tests
# ==============================================================================

@pytest.mark.unit
@pytest.mark.parametrize("level", [logging.WARNING, logging.ERROR, logging.CRITICAL])
def test_console_filter_allows_warnings_and_above(level):
    assert ConsoleFilter().filter(_record("anything", level, "msg")) is True


@pytest.mark.unit
@pytest.mark.parametrize(
    "msg",
    [
        "Starting crawl: limit=10, frontier=1, checked=0",
        "RECORDED 7656 as #3: 9 playtime stats, 0 discovered",
        "DUPLICATE 7656 skipped (dup number: 2)",
        "CRAWL COMPLETE (limit): 10 iterations",
    ],
)
def test_console_filter_allows_engine_progress(msg):
    record = _record("statcollector.crawl.engine", logging.INFO, msg)
    assert ConsoleFilter().filter(record) is True


@pytest.mark.unit
def test_console_filter_blocks_other_engine_info():
    record = _record("statcollector.crawl.engine", logging.INFO, "something chatty")
    assert ConsoleFilter().filter(record) is False


@pytest.mark.unit
def test_console_filter_blocks_debug():
    record = _record("statcollector.crawl.engine", logging.DEBUG, "RECORDED x")
    assert ConsoleFilter().filter(record) is False


@pytest.mark.unit
def test_console_filter_allows_seed_message_only_from_store():
    store = "statcollector.data.ledger_store"
    assert ConsoleFilter().filter(_record(store, logging.INFO, "Seeded empty ledger with A")) is True
    assert ConsoleFilter().filter(_record(store, logging.INFO, "Committed A")) is False


@pytest.mark.unit
@pytest.mark.parametrize("name", ["scripts.collect_stats", "__main__"])
def test_console_filter_allows_cli_messages(name):
    assert ConsoleFilter().filter(_record(name, logging.INFO, "Seed resolves")) is True


@pytest.mark.unit
def test_colored_formatter_wraps_message():
    formatter = ColoredFormatter("%(message)s")
    output = formatter.format(_record("x", logging.ERROR, "bad"))
    assert output.startswith("\033[31m")
    assert output.endswith("\033[0m")
    assert "bad" in output


# ==============================================================================
# setup_crawl_logging Tests
# ==============================================================================

@pytest.mark.integration
def test_setup_crawl_logging_installs_console_and_file(tmp_path, restore_root_logger):
    setup_crawl_logging(log_dir=tmp_path / "logs")

    root = restore_root_logger
    file_handlers = [h for h in root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
    console_handlers = [h for h in root.handlers if type(h) is logging.StreamHandler]
    assert len(file_handlers) == 1
    assert len(console_handlers) == 1
    assert (tmp_path / "logs" / "crawl.log").exists()
    assert any(isinstance(f, ConsoleFilter) for f in console_handlers[0].filters)


@pytest.mark.integration
def test_setup_crawl_logging_quiet_skips_console(tmp_path, restore_root_logger):
    setup_crawl_logging(quiet=True, log_dir=tmp_path / "logs")

    root = restore_root_logger
    assert not [h for h in root.handlers if type(h) is logging.StreamHandler]
    assert logging.getLogger("urllib3").level == logging.WARNING
