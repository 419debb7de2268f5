"""Wire a Steam client, the ledger and the crawl engine into one run."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from ..data.ledger_store import LedgerStore
from .engine import CrawlEngine, CrawlSummary
from .expansion import SteamFriendExpansion
from .rate_limiter import FixedIntervalRateLimit
from .steam_api_client import SteamAPIClient, SteamAPIClientConfig


LOGGER = logging.getLogger(__name__)


def run_collection(
    store: LedgerStore,
    api_key: str,
    seed_identity: str,
    run_limit: int,
    *,
    expand_friends: bool = False,
    client: Optional[SteamAPIClient] = None,
    rate_limit: Optional[FixedIntervalRateLimit] = None,
    progress: Optional[Callable[[str], None]] = None,
) -> CrawlSummary:
    """Bootstrap the ledger with ``seed_identity`` and crawl up to ``run_limit`` entries."""

    owns_client = client is None
    if client is None:
        client = SteamAPIClient(SteamAPIClientConfig(api_key=api_key))
    rate_limit = rate_limit or FixedIntervalRateLimit()
    expansion = SteamFriendExpansion(client, rate_limit) if expand_friends else None

    try:
        store.seed_if_empty(seed_identity)
        engine = CrawlEngine(
            store,
            client.get_user_stats_for_game,
            rate_limit=rate_limit,
            expansion=expansion,
            progress=progress,
        )
        return engine.crawl(run_limit)
    finally:
        if owns_client:
            client.close()
