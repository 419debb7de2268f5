"""Service for launching crawl runs in the background and tracking their state."""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from statcollector.crawl.engine import CrawlSummary
from statcollector.crawl.runner import run_collection
from statcollector.data.ledger_store import LedgerStore

logger = logging.getLogger(__name__)

Runner = Callable[..., CrawlSummary]


class RunHandle:
    """Completion handle for one background crawl run."""

    def __init__(self) -> None:
        self._done = threading.Event()
        self.summary: Optional[CrawlSummary] = None
        self.error: Optional[BaseException] = None

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def succeeded(self) -> bool:
        return self.done and self.error is None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the run finishes; returns False on timeout."""
        return self._done.wait(timeout)

    def _finish(self, summary: Optional[CrawlSummary], error: Optional[BaseException]) -> None:
        self.summary = summary
        self.error = error
        self._done.set()


class RunManager:
    """Owns the single crawl worker thread and its status.

    Only one run may be active at a time; a second :meth:`start_run` while a
    run is outstanding is refused.
    """

    def __init__(self, store: LedgerStore, runner: Runner = run_collection):
        self._store = store
        self._runner = runner
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._handle: Optional[RunHandle] = None
        self._status = self._idle_status()

    @staticmethod
    def _idle_status() -> Dict[str, Any]:
        return {
            "status": "idle",
            "seed": None,
            "run_limit": None,
            "started_at": None,
            "finished_at": None,
            "summary": None,
            "error": None,
            "log": [],
        }

    def get_status(self) -> Dict[str, Any]:
        """Get the current run status safely."""
        with self._lock:
            status = self._status.copy()
            status["log"] = list(self._status["log"])
            return status

    def is_running(self) -> bool:
        with self._lock:
            return self._status["status"] == "running"

    @property
    def current_handle(self) -> Optional[RunHandle]:
        with self._lock:
            return self._handle

    def start_run(
        self,
        api_key: str,
        seed_identity: str,
        run_limit: int,
        *,
        expand_friends: bool = False,
    ) -> Optional[RunHandle]:
        """Start a crawl in a background thread.

        Returns the run's handle, or None if a run is already active. Raises
        ValueError for a blank key or seed, or a non-positive limit.
        """
        if not isinstance(api_key, str) or not api_key.strip():
            raise ValueError("api_key must be a non-empty string")
        if not isinstance(seed_identity, str) or not seed_identity.strip():
            raise ValueError("seed_identity must be a non-empty string")
        if isinstance(run_limit, bool) or not isinstance(run_limit, int) or run_limit <= 0:
            raise ValueError("run_limit must be a positive integer")
        api_key = api_key.strip()
        seed_identity = seed_identity.strip()

        with self._lock:
            if self._status["status"] == "running":
                return None

            handle = RunHandle()
            self._handle = handle
            self._status = self._idle_status()
            self._status.update(
                {
                    "status": "running",
                    "seed": seed_identity,
                    "run_limit": run_limit,
                    "started_at": time.time(),
                }
            )

            def _wrapper():
                summary: Optional[CrawlSummary] = None
                error: Optional[BaseException] = None
                try:
                    summary = self._runner(
                        self._store,
                        api_key,
                        seed_identity,
                        run_limit,
                        expand_friends=expand_friends,
                        progress=self.log,
                    )
                    with self._lock:
                        self._status["status"] = "completed"
                        self._status["summary"] = summary.to_dict()
                        self._status["finished_at"] = time.time()
                except Exception as e:
                    logger.exception("Crawl run failed")
                    error = e
                    with self._lock:
                        self._status["status"] = "failed"
                        self._status["error"] = str(e)
                        self._status["finished_at"] = time.time()
                finally:
                    handle._finish(summary, error)

            self._thread = threading.Thread(target=_wrapper, name="crawl-run", daemon=True)
            self._thread.start()
            return handle

    def log(self, message: str) -> None:
        """Append a progress line to the status."""
        with self._lock:
            entry = f"[{time.strftime('%H:%M:%S')}] {message}"
            self._status["log"].append(entry)
            # Keep log size reasonable
            if len(self._status["log"]) > 1000:
                self._status["log"] = self._status["log"][-1000:]
