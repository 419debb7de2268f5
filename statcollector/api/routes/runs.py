"""Routes for starting crawl runs and inspecting the ledger."""
from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from statcollector.api.services.run_manager import RunManager
from statcollector.config import get_steam_api_key
from statcollector.data.ledger_store import LedgerStore

logger = logging.getLogger(__name__)

runs_bp = Blueprint("runs", __name__, url_prefix="/api")


@runs_bp.route("/runs", methods=["POST"])
def start_run():
    """Start a crawl run in the background.

    Payload:
    {
        "seed": "76561197960287930",
        "limit": 100,
        "api_key": "...",          # optional, falls back to STEAM_API_KEY
        "expand_friends": false    # optional
    }
    """
    manager: RunManager = current_app.config["RUN_MANAGER"]
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"status": "error", "message": "Invalid JSON"}), 400

    api_key = data.get("api_key")
    if not api_key:
        try:
            api_key = get_steam_api_key()
        except RuntimeError as exc:
            return jsonify({"status": "error", "message": str(exc)}), 400

    run_limit = data.get("limit")
    if isinstance(run_limit, bool) or not isinstance(run_limit, int):
        return jsonify({"status": "error", "message": "limit must be an integer"}), 400

    expand_friends = data.get("expand_friends", False)
    if not isinstance(expand_friends, bool):
        return jsonify({"status": "error", "message": "expand_friends must be a boolean"}), 400

    try:
        handle = manager.start_run(
            api_key,
            data.get("seed") or "",
            run_limit,
            expand_friends=expand_friends,
        )
    except ValueError as exc:
        return jsonify({"status": "error", "message": str(exc)}), 400

    if handle is None:
        return jsonify({"status": "error", "message": "Crawl already running"}), 409

    logger.info("Crawl run started from API (seed=%s, limit=%s)", data.get("seed"), run_limit)
    return jsonify({"status": "started", "run": manager.get_status()}), 202


@runs_bp.route("/runs/status", methods=["GET"])
def get_run_status():
    """Get status of the current or most recent crawl run."""
    manager: RunManager = current_app.config["RUN_MANAGER"]
    return jsonify(manager.get_status())


@runs_bp.route("/ledger", methods=["GET"])
def get_ledger_summary():
    store: LedgerStore = current_app.config["LEDGER_STORE"]
    return jsonify(store.summary())
