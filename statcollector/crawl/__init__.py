"""Crawl subsystem (Steam API fetches + ledger-backed frontier)."""

from __future__ import annotations

from .engine import CLASS_PLAYTIME_STATS, CrawlEngine, CrawlSummary, filter_allowed_stats
from .expansion import SteamFriendExpansion
from .rate_limiter import POLITE_DELAY_SECONDS, FixedIntervalRateLimit
from .runner import run_collection
from .steam_api_client import (
    FetchError,
    PlayerSummary,
    Stat,
    StatsPayload,
    SteamAPIClient,
    SteamAPIClientConfig,
)

__all__ = [
    "CLASS_PLAYTIME_STATS",
    "CrawlEngine",
    "CrawlSummary",
    "FetchError",
    "FixedIntervalRateLimit",
    "POLITE_DELAY_SECONDS",
    "PlayerSummary",
    "Stat",
    "StatsPayload",
    "SteamAPIClient",
    "SteamAPIClientConfig",
    "SteamFriendExpansion",
    "filter_allowed_stats",
    "run_collection",
]
