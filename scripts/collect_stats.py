"""CLI entrypoint for crawling TF2 class playtime stats from Steam."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from statcollector.config import get_default_run_limit, get_ledger_settings, get_steam_api_key
from statcollector.crawl import FetchError, SteamAPIClient, SteamAPIClientConfig, run_collection
from statcollector.data.ledger_store import StorageError, create_ledger_engine, get_ledger_store
from statcollector.logging_utils import setup_crawl_logging

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Crawl Steam profiles for TF2 class playtime stats")
    parser.add_argument(
        "--api-key",
        type=str,
        default=None,
        help="Steam Web API key (falls back to STEAM_API_KEY env).",
    )
    parser.add_argument(
        "--seed",
        required=True,
        help="SteamID64 used to bootstrap an empty ledger. Ignored once any profile is checked.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum crawl iterations for this run (default: CRAWL_RUN_LIMIT env or 100).",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Ledger database path (default: STATS_DB_PATH env or data/steam_info.db).",
    )
    parser.add_argument(
        "--expand-friends",
        action="store_true",
        help="Queue the public friends of every crawled profile (one extra API call per profile).",
    )
    parser.add_argument(
        "--verify-seed",
        action="store_true",
        help="Look up the seed profile before crawling and abort if Steam does not know it.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the JSON run summary to this path instead of stdout.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARN", "ERROR", "CRITICAL"],
        help="Console logging verbosity (default INFO). File always logs DEBUG.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-essential console output.",
    )
    return parser.parse_args(argv)


def _verify_seed(client: SteamAPIClient, seed: str) -> bool:
    try:
        players = client.get_player_summaries([seed])
    except FetchError as exc:
        LOGGER.error("Could not verify seed %s: %s", seed, exc)
        return False
    if not players:
        LOGGER.error("Steam has no public profile for seed %s", seed)
        return False
    LOGGER.info("Seed %s resolves to '%s'", seed, players[0].personaname or "-")
    return True


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    console_log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    if args.quiet:
        console_log_level = logging.WARN
    setup_crawl_logging(console_level=console_log_level, quiet=args.quiet)

    try:
        api_key = args.api_key or get_steam_api_key()
        run_limit = args.limit if args.limit is not None else get_default_run_limit()
    except RuntimeError as err:
        LOGGER.error(str(err))
        return 2
    if run_limit <= 0:
        LOGGER.error("--limit must be a positive integer")
        return 2

    db_path = args.db or get_ledger_settings().path
    client = SteamAPIClient(SteamAPIClientConfig(api_key=api_key))
    exit_code = 0
    try:
        if args.verify_seed and not _verify_seed(client, args.seed):
            return 2
        store = get_ledger_store(create_ledger_engine(db_path))
        summary = run_collection(
            store,
            api_key,
            args.seed,
            run_limit,
            expand_friends=args.expand_friends,
            client=client,
        )
        payload = {"status": "completed", **summary.to_dict(), "ledger": store.summary()}
    except KeyboardInterrupt:
        LOGGER.warning("Interrupted by user; the current iteration was not committed")
        payload = {"status": "interrupted"}
        exit_code = 130
    except StorageError as err:
        LOGGER.error("Ledger failure, aborting run: %s", err)
        payload = {"status": "aborted", "reason": str(err)}
        exit_code = 1
    finally:
        client.close()

    text = json.dumps(payload, indent=2)
    if args.output:
        args.output.write_text(text)
    else:
        print(text)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
