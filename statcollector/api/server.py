"""Flask application factory."""
from __future__ import annotations

import logging
import logging.handlers
import os
import time
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from statcollector.api.routes.runs import runs_bp
from statcollector.api.services.run_manager import RunManager
from statcollector.config import get_ledger_settings
from statcollector.data.ledger_store import create_ledger_engine, get_ledger_store

logger = logging.getLogger(__name__)


def create_app(config_overrides: Optional[dict] = None) -> Flask:
    """Initialize and configure the Flask application."""
    app = Flask(__name__)
    CORS(app)

    app.config["STARTUP_TIME"] = time.time()
    if config_overrides:
        app.config.update(config_overrides)

    _configure_logging(Path(app.config.get("LOG_DIR", "logs")))

    # Services are injected through app.config; tests pass their own store.
    store = app.config.get("LEDGER_STORE")
    if store is None:
        db_path = app.config.get("LEDGER_DB_PATH") or get_ledger_settings().path
        store = get_ledger_store(create_ledger_engine(db_path))
        app.config["LEDGER_STORE"] = store
    if app.config.get("RUN_MANAGER") is None:
        app.config["RUN_MANAGER"] = RunManager(store)

    @app.route("/health", methods=["GET"])
    @app.route("/api/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok", "service": "tf2-stat-collector"})

    app.register_blueprint(runs_bp)

    logger.info("TF2 stat collector API initialized")
    return app


def _configure_logging(log_dir: Path = Path("logs")) -> None:
    """Attach a rotating file handler for API diagnostics."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "api.log"

    log_level_name = os.getenv("API_LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_name, logging.INFO)

    root = logging.getLogger()

    # Avoid adding duplicate handlers if re-initializing
    already_configured = any(
        isinstance(h, logging.handlers.RotatingFileHandler)
        and getattr(h, "baseFilename", "") == str(log_path.resolve())
        for h in root.handlers
    )
    if already_configured:
        return

    root.setLevel(log_level)

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=5 * 1024 * 1024, backupCount=5
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
        )
    )
    root.addHandler(file_handler)


if __name__ == "__main__":
    app = create_app()
    port = int(os.getenv("PORT", 8000))
    app.run(host="127.0.0.1", port=port, debug=True)
