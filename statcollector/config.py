"""Configuration helpers for the TF2 stat collector."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = PROJECT_ROOT / ".env"

# Load environment variables early so downstream modules can rely on them.
load_dotenv(ENV_PATH, override=False)

STEAM_API_KEY_ENV = "STEAM_API_KEY"
STATS_DB_ENV = "STATS_DB_PATH"
RUN_LIMIT_ENV = "CRAWL_RUN_LIMIT"

DEFAULT_STATS_DB = PROJECT_ROOT / "data" / "steam_info.db"
DEFAULT_RUN_LIMIT = 100


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime configuration for the SQLite crawl ledger."""

    path: Path

    @property
    def url(self) -> str:
        return f"sqlite:///{self.path}"


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def get_steam_api_key() -> str:
    """Return the Steam Web API key or raise a descriptive error."""

    key = _get_env(STEAM_API_KEY_ENV)
    if not key:
        raise RuntimeError(
            "STEAM_API_KEY is not configured. Set it in .env or export the variable before running."
        )
    return key


def get_ledger_settings() -> LedgerSettings:
    """Resolve the ledger database location from environment with defaults."""

    raw_path = _get_env(STATS_DB_ENV, str(DEFAULT_STATS_DB))
    return LedgerSettings(path=Path(raw_path).expanduser().resolve())


def get_default_run_limit() -> int:
    """Iteration cap used when the operator does not pass one explicitly."""

    raw_limit = _get_env(RUN_LIMIT_ENV)
    if raw_limit is None:
        return DEFAULT_RUN_LIMIT
    try:
        limit = int(raw_limit)
    except ValueError as exc:
        raise RuntimeError(
            f"CRAWL_RUN_LIMIT must be an integer; received '{raw_limit}'."
        ) from exc
    if limit <= 0:
        raise RuntimeError(f"CRAWL_RUN_LIMIT must be positive; received {limit}.")
    return limit
