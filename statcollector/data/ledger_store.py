"""Persistence for the crawl frontier, the checked ledger and collected stats."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.dialects.sqlite import insert


LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

StatPair = Tuple[str, int]


class StorageError(RuntimeError):
    """Raised when the ledger cannot be read or written."""


@dataclass(frozen=True)
class FrontierEntry:
    """A discovered identity waiting for its crawl pass."""

    id: int
    identity: str


class CompletedEntry(NamedTuple):
    """Outcome of committing one frontier entry."""

    checked_id: int
    queued: int


def _enable_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class LedgerStore:
    """Typed wrapper around the SQLite ledger used by the crawl engine.

    The store owns all persisted crawl state. Every public operation runs in
    its own transaction; :meth:`complete_entry` bundles the writes of one
    crawl iteration into a single transaction.
    """

    UNCHECKED_TABLE = "unchecked"
    CHECKED_TABLE = "checked"
    STATS_TABLE = "stats"
    _RETRYABLE_SQLITE_ERRORS = ("disk i/o error", "database is locked")

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        if not event.contains(engine, "connect", _enable_foreign_keys):
            event.listen(engine, "connect", _enable_foreign_keys)
        self._metadata = MetaData()
        self._unchecked_table = Table(
            self.UNCHECKED_TABLE,
            self._metadata,
            Column("id", Integer, primary_key=True),
            Column("identity", String, nullable=False, unique=True),
            sqlite_autoincrement=True,
        )
        self._checked_table = Table(
            self.CHECKED_TABLE,
            self._metadata,
            Column("id", Integer, primary_key=True),
            Column("identity", String, nullable=False, unique=True),
        )
        self._stats_table = Table(
            self.STATS_TABLE,
            self._metadata,
            Column("id", Integer, primary_key=True),
            Column("name", String, nullable=False),
            Column("value", Integer, nullable=True),
            Column("checked_id", Integer, ForeignKey("checked.id"), nullable=False),
        )
        self._execute_with_retry(
            "create_schema", lambda engine: self._metadata.create_all(engine, checkfirst=True)
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _execute_with_retry(
        self,
        op_name: str,
        fn: Callable[[Engine], T],
        *,
        max_attempts: int = 3,
        base_delay_seconds: float = 1.0,
    ) -> T:
        last_exc: Optional[OperationalError] = None
        for attempt in range(1, max_attempts + 1):
            try:
                return fn(self._engine)
            except OperationalError as exc:
                if getattr(exc, "orig", None) is not None:
                    message = str(exc.orig).lower()
                else:
                    message = str(exc).lower()

                if not any(token in message for token in self._RETRYABLE_SQLITE_ERRORS):
                    raise StorageError(f"{op_name} failed: {message}") from exc

                last_exc = exc
                LOGGER.error(
                    "Retryable SQLite error during %s (attempt %s/%s): %s",
                    op_name,
                    attempt,
                    max_attempts,
                    message or exc,
                )
                self._engine.dispose()

                if attempt == max_attempts:
                    break

                sleep_for = base_delay_seconds * (2 ** (attempt - 1))
                time.sleep(sleep_for)
            except SQLAlchemyError as exc:
                raise StorageError(f"{op_name} failed: {exc}") from exc
            except OverflowError as exc:
                # sqlite3 rejects ints wider than 64 bits before SQLAlchemy sees the statement.
                raise StorageError(f"{op_name} failed: {exc}") from exc

        assert last_exc is not None
        LOGGER.error(
            "Exhausted retries for %s after %s attempts; giving up.",
            op_name,
            max_attempts,
        )
        raise StorageError(f"{op_name} failed after {max_attempts} attempts") from last_exc

    def _count(self, table: Table) -> int:
        def _op(engine: Engine) -> int:
            with engine.connect() as conn:
                return conn.execute(select(func.count()).select_from(table)).scalar_one()

        return self._execute_with_retry(f"count_{table.name}", _op)

    def _insert_checked(self, conn: Connection, identity: str) -> int:
        result = conn.execute(insert(self._checked_table).values(identity=identity))
        return int(result.inserted_primary_key[0])

    def _insert_stats(self, conn: Connection, checked_id: int, stats: Sequence[StatPair]) -> int:
        rows = [
            {"name": name, "value": value, "checked_id": checked_id}
            for name, value in stats
        ]
        if not rows:
            return 0
        conn.execute(insert(self._stats_table), rows)
        return len(rows)

    def _enqueue(self, conn: Connection, identities: Iterable[str]) -> int:
        candidates = list(dict.fromkeys(i for i in identities if i))
        if not candidates:
            return 0
        already_checked = set(
            conn.execute(
                select(self._checked_table.c.identity).where(
                    self._checked_table.c.identity.in_(candidates)
                )
            ).scalars()
        )
        rows = [{"identity": i} for i in candidates if i not in already_checked]
        if not rows:
            return 0
        result = conn.execute(insert(self._unchecked_table).values(rows).on_conflict_do_nothing())
        return max(result.rowcount, 0)

    def _delete_unchecked(self, conn: Connection, entry_id: int) -> int:
        result = conn.execute(
            self._unchecked_table.delete().where(self._unchecked_table.c.id == entry_id)
        )
        return result.rowcount

    # ------------------------------------------------------------------
    # Frontier operations
    # ------------------------------------------------------------------
    def count_checked(self) -> int:
        return self._count(self._checked_table)

    def count_unchecked(self) -> int:
        return self._count(self._unchecked_table)

    def count_stats(self) -> int:
        return self._count(self._stats_table)

    def peek_unchecked(self) -> Optional[FrontierEntry]:
        """Return the oldest frontier entry without removing it."""

        def _op(engine: Engine) -> Optional[FrontierEntry]:
            with engine.connect() as conn:
                row = conn.execute(
                    select(self._unchecked_table.c.id, self._unchecked_table.c.identity)
                    .order_by(self._unchecked_table.c.id.asc())
                    .limit(1)
                ).first()
            if row is None:
                return None
            return FrontierEntry(id=row.id, identity=row.identity)

        return self._execute_with_retry("peek_unchecked", _op)

    def remove_unchecked(self, entry_id: int) -> int:
        """Delete one frontier row by id; returns the number of rows removed."""

        def _op(engine: Engine) -> int:
            with engine.begin() as conn:
                return self._delete_unchecked(conn, entry_id)

        return self._execute_with_retry("remove_unchecked", _op)

    def enqueue(self, identities: Iterable[str]) -> int:
        """Append identities to the frontier, skipping queued and checked ones."""
        identities = list(identities)

        def _op(engine: Engine) -> int:
            with engine.begin() as conn:
                return self._enqueue(conn, identities)

        return self._execute_with_retry("enqueue", _op)

    def seed_if_empty(self, identity: str) -> bool:
        """Queue ``identity`` only while the checked ledger is still empty.

        Restarting with the same seed after progress has been made is a no-op.
        """

        def _op(engine: Engine) -> bool:
            with engine.begin() as conn:
                checked = conn.execute(
                    select(func.count()).select_from(self._checked_table)
                ).scalar_one()
                if checked:
                    return False
                result = conn.execute(
                    insert(self._unchecked_table)
                    .values(identity=identity)
                    .on_conflict_do_nothing()
                )
                return result.rowcount > 0

        inserted = self._execute_with_retry("seed_if_empty", _op)
        if inserted:
            LOGGER.info("Seeded empty ledger with %s", identity)
        else:
            LOGGER.debug("Ledger already bootstrapped; seed %s ignored", identity)
        return inserted

    # ------------------------------------------------------------------
    # Checked ledger operations
    # ------------------------------------------------------------------
    def is_checked(self, identity: str) -> bool:
        def _op(engine: Engine) -> bool:
            with engine.connect() as conn:
                row = conn.execute(
                    select(self._checked_table.c.id)
                    .where(self._checked_table.c.identity == identity)
                    .limit(1)
                ).first()
            return row is not None

        return self._execute_with_retry("is_checked", _op)

    def mark_checked(self, identity: str) -> int:
        """Append ``identity`` to the checked ledger and return its new id."""

        def _op(engine: Engine) -> int:
            with engine.begin() as conn:
                return self._insert_checked(conn, identity)

        return self._execute_with_retry("mark_checked", _op)

    def record_stats(self, checked_id: int, stats: Sequence[StatPair]) -> int:
        stats = list(stats)

        def _op(engine: Engine) -> int:
            with engine.begin() as conn:
                return self._insert_stats(conn, checked_id, stats)

        return self._execute_with_retry("record_stats", _op)

    # ------------------------------------------------------------------
    # Iteration commits
    # ------------------------------------------------------------------
    def complete_entry(
        self,
        entry: FrontierEntry,
        stats: Sequence[StatPair] = (),
        discovered: Iterable[str] = (),
    ) -> CompletedEntry:
        """Commit one processed frontier entry atomically.

        Marks the identity checked, attaches its stats, queues any discovered
        identities and drops the frontier row, all in one transaction. An empty
        ``stats`` sequence leaves a tombstone. Returns the checked id and the
        number of discovered identities that were newly queued.
        """
        stats = list(stats)
        discovered = list(discovered)

        def _op(engine: Engine) -> CompletedEntry:
            with engine.begin() as conn:
                checked_id = self._insert_checked(conn, entry.identity)
                self._insert_stats(conn, checked_id, stats)
                queued = self._enqueue(conn, discovered)
                self._delete_unchecked(conn, entry.id)
            return CompletedEntry(checked_id, queued)

        completed = self._execute_with_retry("complete_entry", _op)
        LOGGER.debug(
            "Committed %s as checked id %s (%s stats, %s queued)",
            entry.identity,
            completed.checked_id,
            len(stats),
            completed.queued,
        )
        return completed

    def drop_duplicate(self, entry: FrontierEntry) -> None:
        """Remove a frontier row whose identity is already checked."""
        self.remove_unchecked(entry.id)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------
    def fetch_stats(self, identity: Optional[str] = None) -> List[dict]:
        def _op(engine: Engine) -> List[dict]:
            with engine.connect() as conn:
                stmt = (
                    select(
                        self._checked_table.c.identity,
                        self._stats_table.c.name,
                        self._stats_table.c.value,
                        self._stats_table.c.checked_id,
                    )
                    .join(
                        self._checked_table,
                        self._checked_table.c.id == self._stats_table.c.checked_id,
                    )
                    .order_by(self._stats_table.c.id.asc())
                )
                if identity is not None:
                    stmt = stmt.where(self._checked_table.c.identity == identity)
                return [dict(row._mapping) for row in conn.execute(stmt)]

        return self._execute_with_retry("fetch_stats", _op)

    def fetch_checked(self) -> List[dict]:
        def _op(engine: Engine) -> List[dict]:
            with engine.connect() as conn:
                stmt = select(self._checked_table).order_by(self._checked_table.c.id.asc())
                return [dict(row._mapping) for row in conn.execute(stmt)]

        return self._execute_with_retry("fetch_checked", _op)

    def summary(self) -> Dict[str, int]:
        return {
            "checked": self.count_checked(),
            "unchecked": self.count_unchecked(),
            "stats": self.count_stats(),
        }


def create_ledger_engine(path: Path | str) -> Engine:
    """Open (creating parent directories as needed) the ledger database."""

    db_path = Path(path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(f"sqlite:///{db_path}", future=True)


def get_ledger_store(engine: Engine) -> LedgerStore:
    """Helper for one-line store construction."""

    return LedgerStore(engine)
