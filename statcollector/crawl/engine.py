"""Crawl loop: dequeue, dedup, fetch, filter and commit one identity at a time."""
from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, Iterable, List, Optional

from ..data.ledger_store import FrontierEntry, LedgerStore
from .expansion import FrontierExpansion
from .rate_limiter import FixedIntervalRateLimit
from .steam_api_client import FetchError, Stat, StatsPayload


LOGGER = logging.getLogger(__name__)

# Per-class playtime counters; everything else in a stats payload is dropped.
CLASS_PLAYTIME_STATS = frozenset(
    {
        "Scout.accum.iPlayTime",
        "Soldier.accum.iPlayTime",
        "Pyro.accum.iPlayTime",
        "Demoman.accum.iPlayTime",
        "Heavy.accum.iPlayTime",
        "Engineer.accum.iPlayTime",
        "Medic.accum.iPlayTime",
        "Sniper.accum.iPlayTime",
        "Spy.accum.iPlayTime",
    }
)

STOP_EXHAUSTED = "exhausted"
STOP_LIMIT = "limit"

StatsFetcher = Callable[[str], StatsPayload]


def filter_allowed_stats(stats: Iterable[Stat]) -> List[Stat]:
    return [stat for stat in stats if stat.name in CLASS_PLAYTIME_STATS]


@dataclass
class CrawlSummary:
    """Counters for a single crawl run."""

    iterations: int = 0
    recorded: int = 0
    duplicates: int = 0
    fetch_failures: int = 0
    stats_written: int = 0
    discovered: int = 0
    stop_reason: Optional[str] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


class CrawlEngine:
    """Single-worker crawl over the ledger frontier.

    All state lives in the :class:`LedgerStore`; the engine only keeps loop
    counters, so a run can be restarted against the same database at any
    point. Storage failures propagate and end the run. Fetch failures leave a
    tombstone in the checked ledger and the run continues.
    """

    def __init__(
        self,
        store: LedgerStore,
        fetch_stats: StatsFetcher,
        *,
        rate_limit: Optional[FixedIntervalRateLimit] = None,
        expansion: Optional[FrontierExpansion] = None,
        progress: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._store = store
        self._fetch_stats = fetch_stats
        self._rate_limit = rate_limit or FixedIntervalRateLimit()
        self._expansion = expansion
        self._progress = progress

    def _report(self, message: str, *args: object) -> None:
        LOGGER.info(message, *args)
        if self._progress is not None:
            self._progress(message % args if args else message)

    def crawl(self, run_limit: int) -> CrawlSummary:
        """Process up to ``run_limit`` frontier entries."""
        if isinstance(run_limit, bool) or not isinstance(run_limit, int) or run_limit <= 0:
            raise ValueError(f"run_limit must be a positive integer, got {run_limit!r}")

        summary = CrawlSummary()
        started = time.perf_counter()
        self._report(
            "Starting crawl: limit=%s, frontier=%s, checked=%s",
            run_limit,
            self._store.count_unchecked(),
            self._store.count_checked(),
        )

        while summary.iterations < run_limit:
            entry = self._store.peek_unchecked()
            if entry is None:
                summary.stop_reason = STOP_EXHAUSTED
                break
            summary.iterations += 1
            self._process(entry, summary)
        else:
            summary.stop_reason = STOP_LIMIT

        summary.duration_seconds = round(time.perf_counter() - started, 3)
        self._report(
            "CRAWL COMPLETE (%s): %s iterations, %s recorded, %s duplicates, %s failed, %s stats",
            summary.stop_reason,
            summary.iterations,
            summary.recorded,
            summary.duplicates,
            summary.fetch_failures,
            summary.stats_written,
        )
        return summary

    def _process(self, entry: FrontierEntry, summary: CrawlSummary) -> None:
        if self._store.is_checked(entry.identity):
            summary.duplicates += 1
            self._store.drop_duplicate(entry)
            self._report("DUPLICATE %s skipped (dup number: %s)", entry.identity, summary.duplicates)
            return

        self._rate_limit.wait()
        try:
            payload = self._fetch_stats(entry.identity)
        except FetchError as exc:
            summary.fetch_failures += 1
            self._store.complete_entry(entry)
            LOGGER.warning("FETCH FAILED for %s; leaving tombstone: %s", entry.identity, exc)
            return

        stats = filter_allowed_stats(payload.stats)
        discovered: List[str] = []
        if self._expansion is not None:
            discovered = list(self._expansion(entry.identity))

        completed = self._store.complete_entry(entry, stats, discovered)
        summary.recorded += 1
        summary.stats_written += len(stats)
        summary.discovered += completed.queued
        self._report(
            "RECORDED %s as #%s: %s playtime stats, %s discovered",
            entry.identity,
            completed.checked_id,
            len(stats),
            completed.queued,
        )
