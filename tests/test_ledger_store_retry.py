"""Regression tests for LedgerStore retry and error-wrapping helpers."""
from __future__ import annotations

import sqlite3
from typing import Any

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from statcollector.data.ledger_store import LedgerStore, StorageError
from tests.helpers.fake_steam import make_ledger_store


@pytest.fixture()
def ledger() -> LedgerStore:
    return make_ledger_store()


def test_execute_with_retry_recovers_from_locked_database(ledger: LedgerStore) -> None:
    attempts: dict[str, int] = {"count": 0}

    def flaky(_: Any) -> str:
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise OperationalError(
                "insert into checked",
                {},
                sqlite3.OperationalError("database is locked"),
            )
        return "ok"

    result = ledger._execute_with_retry(  # type: ignore[attr-defined]
        "test_op",
        flaky,
        max_attempts=3,
        base_delay_seconds=0.0,
    )

    assert result == "ok"
    assert attempts["count"] == 2


def test_execute_with_retry_gives_up_with_storage_error(ledger: LedgerStore) -> None:
    attempts: dict[str, int] = {"count": 0}

    def always_locked(_: Any) -> str:
        attempts["count"] += 1
        raise OperationalError(
            "insert into checked",
            {},
            sqlite3.OperationalError("disk I/O error"),
        )

    with pytest.raises(StorageError) as excinfo:
        ledger._execute_with_retry(  # type: ignore[attr-defined]
            "test_op",
            always_locked,
            max_attempts=2,
            base_delay_seconds=0.0,
        )

    assert attempts["count"] == 2
    assert isinstance(excinfo.value.__cause__, OperationalError)


def test_execute_with_retry_does_not_retry_other_operational_errors(ledger: LedgerStore) -> None:
    attempts: dict[str, int] = {"count": 0}

    def boom(_: Any) -> str:
        attempts["count"] += 1
        raise OperationalError(
            "insert into checked",
            {},
            sqlite3.OperationalError("no such table: checked"),
        )

    with pytest.raises(StorageError):
        ledger._execute_with_retry(  # type: ignore[attr-defined]
            "test_op",
            boom,
            max_attempts=3,
            base_delay_seconds=0.0,
        )
    assert attempts["count"] == 1


def test_execute_with_retry_wraps_constraint_violations(ledger: LedgerStore) -> None:
    def violate(_: Any) -> str:
        raise IntegrityError(
            "insert into checked",
            {},
            sqlite3.IntegrityError("UNIQUE constraint failed: checked.identity"),
        )

    with pytest.raises(StorageError, match="UNIQUE constraint failed"):
        ledger._execute_with_retry("test_op", violate)  # type: ignore[attr-defined]
