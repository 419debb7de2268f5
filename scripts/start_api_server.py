import argparse
import os
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(PROJECT_ROOT))

from statcollector.api.server import create_app

def parse_args():
    parser = argparse.ArgumentParser(description="Start the TF2 stat collector API server")
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=5001,
        help="Port to bind to (default: 5001)"
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Ledger database path (default: STATS_DB_PATH env or data/steam_info.db)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable Flask debug mode"
    )
    return parser.parse_args()

def main():
    args = parse_args()

    if not os.getenv("API_LOG_LEVEL"):
        os.environ["API_LOG_LEVEL"] = "DEBUG" if args.debug else "INFO"

    print(f"Starting crawl control API on http://{args.host}:{args.port}")
    print("POST /api/runs to start a crawl, GET /api/runs/status to follow it")

    app = create_app({"LEDGER_DB_PATH": args.db} if args.db else None)
    # The reloader would fork a second process sharing the ledger.
    app.run(host=args.host, port=args.port, debug=args.debug, use_reloader=False)

if __name__ == "__main__":
    main()
