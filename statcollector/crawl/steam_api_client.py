"""Thin Steam Web API client for the TF2 stat crawl."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

import requests


LOGGER = logging.getLogger(__name__)

STEAM_API_BASE = "https://api.steampowered.com"
TF2_APP_ID = 440
REQUEST_TIMEOUT_SECONDS = 30

# Stat values are stored in a signed 64-bit SQLite INTEGER column.
STAT_VALUE_MIN = -(2 ** 63)
STAT_VALUE_MAX = 2 ** 63 - 1


class FetchError(RuntimeError):
    """Any failure to obtain a usable response for one identity."""


class Stat(NamedTuple):
    name: str
    value: int


@dataclass(frozen=True)
class StatsPayload:
    """Statistics reported by Steam for one profile."""

    identity: str
    stats: List[Stat]


@dataclass(frozen=True)
class PlayerSummary:
    steamid: str
    personaname: Optional[str]


@dataclass
class SteamAPIClientConfig:
    api_key: str
    base_url: str = STEAM_API_BASE
    app_id: int = TF2_APP_ID
    timeout_seconds: float = REQUEST_TIMEOUT_SECONDS


class SteamAPIClient:
    """Minimal wrapper around the Steam endpoints used by the crawler.

    The client performs exactly one HTTP request per call and never retries
    or sleeps; pacing is the crawl engine's responsibility. Every failure is
    reported as :class:`FetchError`.
    """

    def __init__(self, config: SteamAPIClientConfig) -> None:
        self._config = config
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": "TF2StatCollector/1.0"})

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------
    def _get_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._config.base_url}{path}"
        query = {"key": self._config.api_key, **params}
        try:
            response = self._session.get(url, params=query, timeout=self._config.timeout_seconds)
        except requests.RequestException as exc:
            raise FetchError(f"Steam API request to {path} failed: {exc}") from exc

        if response.status_code != 200:
            raise FetchError(f"Steam API {path} returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(f"Steam API {path} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise FetchError(f"Steam API {path} returned unexpected payload type")
        return payload

    @staticmethod
    def _section(payload: Dict[str, Any], key: str) -> Dict[str, Any]:
        section = payload.get(key)
        if not isinstance(section, dict):
            raise FetchError(f"Steam API response missing '{key}'")
        return section

    # ------------------------------------------------------------------
    # Public lookups
    # ------------------------------------------------------------------
    def get_user_stats_for_game(self, identity: str) -> StatsPayload:
        payload = self._get_json(
            "/ISteamUserStats/GetUserStatsForGame/v0002/",
            {"appid": self._config.app_id, "steamid": identity},
        )
        playerstats = self._section(payload, "playerstats")
        raw_stats = playerstats.get("stats")
        if not isinstance(raw_stats, list):
            raise FetchError(f"No stats list in response for {identity}")

        stats: List[Stat] = []
        for item in raw_stats:
            name = item.get("name") if isinstance(item, dict) else None
            value = item.get("value") if isinstance(item, dict) else None
            if not isinstance(name, str) or isinstance(value, bool) or not isinstance(value, int):
                raise FetchError(f"Malformed stat entry for {identity}: {item!r}")
            if not STAT_VALUE_MIN <= value <= STAT_VALUE_MAX:
                raise FetchError(f"Stat value out of range for {identity}: {item!r}")
            stats.append(Stat(name, value))
        return StatsPayload(identity=identity, stats=stats)

    def get_friend_list(self, identity: str) -> List[str]:
        payload = self._get_json(
            "/ISteamUser/GetFriendList/v0001/",
            {"steamid": identity, "relationship": "friend"},
        )
        friendslist = self._section(payload, "friendslist")
        friends = friendslist.get("friends", [])
        if not isinstance(friends, list):
            raise FetchError(f"Malformed friend list for {identity}")
        return [
            str(friend["steamid"])
            for friend in friends
            if isinstance(friend, dict) and friend.get("steamid")
        ]

    def get_player_summaries(self, identities: Iterable[str]) -> List[PlayerSummary]:
        payload = self._get_json(
            "/ISteamUser/GetPlayerSummaries/v0002/",
            {"steamids": ",".join(identities)},
        )
        players = self._section(payload, "response").get("players", [])
        return [
            PlayerSummary(steamid=str(player["steamid"]), personaname=player.get("personaname"))
            for player in players
            if isinstance(player, dict) and player.get("steamid")
        ]
