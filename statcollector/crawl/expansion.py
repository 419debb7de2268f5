"""Frontier expansion hooks: discover new identities from a crawled one."""
from __future__ import annotations

import logging
from typing import Iterable, List, Protocol

from .rate_limiter import FixedIntervalRateLimit
from .steam_api_client import FetchError, SteamAPIClient


LOGGER = logging.getLogger(__name__)


class FrontierExpansion(Protocol):
    def __call__(self, identity: str) -> Iterable[str]:
        ...


class SteamFriendExpansion:
    """Queue the public friends of every successfully crawled profile.

    Each lookup is paced by the same rate limiter as the stat fetches. A
    failed lookup only costs the discoveries; it never abandons the identity.
    """

    def __init__(self, client: SteamAPIClient, rate_limit: FixedIntervalRateLimit) -> None:
        self._client = client
        self._rate_limit = rate_limit

    def __call__(self, identity: str) -> List[str]:
        self._rate_limit.wait()
        try:
            friends = self._client.get_friend_list(identity)
        except FetchError as exc:
            LOGGER.warning("Friend lookup failed for %s: %s", identity, exc)
            return []
        LOGGER.debug("Discovered %s friends for %s", len(friends), identity)
        return friends
