"""Shared pytest configuration and fixtures for the test suite.

This module centralizes:
- Path setup so ``statcollector``, ``scripts`` and ``tests.helpers`` import
- Pytest markers for test categorization (unit, integration, property)
- Ledger fixtures backed by temporary SQLite files
- A rate limiter that never sleeps
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import pytest


# ==============================================================================
# Path Setup
# ==============================================================================

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from statcollector.crawl.rate_limiter import FixedIntervalRateLimit  # noqa: E402
from statcollector.data.ledger_store import LedgerStore  # noqa: E402
from tests.helpers.fake_steam import FakeStatsFetcher, make_ledger_store  # noqa: E402


# ==============================================================================
# Pytest Configuration
# ==============================================================================

def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "unit: Fast tests with no I/O (mocked dependencies)",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests hitting SQLite or the file system",
    )
    config.addinivalue_line(
        "markers",
        "property: Hypothesis property-based tests",
    )


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def ledger_db(tmp_path) -> Path:
    return tmp_path / "steam_info.db"


@pytest.fixture
def ledger_store(ledger_db: Path) -> LedgerStore:
    """A LedgerStore on a fresh temporary SQLite file."""
    return make_ledger_store(f"sqlite:///{ledger_db}")


@pytest.fixture
def no_sleep_rate_limit() -> FixedIntervalRateLimit:
    """Rate limiter that records requested pauses instead of sleeping."""
    sleeps: List[float] = []
    limiter = FixedIntervalRateLimit(sleep=sleeps.append)
    limiter.sleeps = sleeps  # type: ignore[attr-defined]
    return limiter


@pytest.fixture
def fake_fetcher() -> FakeStatsFetcher:
    return FakeStatsFetcher()
