from __future__ import annotations

import atexit
import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .cli import EXTENSION_KEY, SCHEMA_PATH, register_cli_commands
from .common.datetime_utils import isoformat_utc, now_utc
from .container import Container, build_container
from .core.constants import (
    DEFAULT_GEOFENCE_RADIUS_METERS,
    DEFAULT_REAP_INTERVAL_SECONDS,
    DEFAULT_SESSION_TTL_SECONDS,
)
from .database.bootstrap import apply_schema, list_tables
from .logging_config import setup_logging
from .sessions.controller import register as register_sessions
from .teams.controller import register as register_teams

logger = logging.getLogger(__name__)


def register_health(app: Flask, container: Container) -> None:
    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({
            "status": "ok",
            "timestamp": isoformat_utc(now_utc()),
            "workers": {
                "teamAggregation": "running" if container.aggregation_dispatcher.running else "stopped",
                "pendingAggregations": container.aggregation_dispatcher.pending(),
                "sessionReaper": "running" if container.session_reaper.running else "stopped",
            },
        })


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["DB_CONFIG"] = db_config
    app.config["LOG_LEVEL"] = getattr(settings, "LOG_LEVEL", None)
    app.config["LOG_DIR"] = getattr(settings, "LOG_DIR", None)
    app.config["QR_SESSION_TTL_SECONDS"] = int(
        getattr(settings, "QR_SESSION_TTL_SECONDS", DEFAULT_SESSION_TTL_SECONDS)
    )
    app.config["GEOFENCE_DEFAULT_RADIUS_METERS"] = float(
        getattr(settings, "GEOFENCE_DEFAULT_RADIUS_METERS", DEFAULT_GEOFENCE_RADIUS_METERS)
    )
    app.config["SESSION_REAP_INTERVAL_SECONDS"] = float(
        getattr(settings, "SESSION_REAP_INTERVAL_SECONDS", DEFAULT_REAP_INTERVAL_SECONDS)
    )
    app.config["ENABLE_SESSION_REAPER"] = bool(getattr(settings, "ENABLE_SESSION_REAPER", False))

    setup_logging(app)
    logger.info(
        f"settings={settings_module} "
        f"db={db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            logger.info(f"Schema ready (tables={len(list_tables(db_config))})")
        container = build_container(
            db_config=db_config,
            session_ttl_seconds=app.config["QR_SESSION_TTL_SECONDS"],
            geofence_radius_meters=app.config["GEOFENCE_DEFAULT_RADIUS_METERS"],
            reap_interval_seconds=app.config["SESSION_REAP_INTERVAL_SECONDS"],
        )

    app.extensions[EXTENSION_KEY] = container

    register_sessions(app, container)
    register_attendance(app, container)
    register_teams(app, container)
    register_health(app, container)
    register_cli_commands(app)

    container.aggregation_dispatcher.start()
    atexit.register(container.aggregation_dispatcher.stop)
    if app.config["ENABLE_SESSION_REAPER"]:
        container.session_reaper.start()
        atexit.register(container.session_reaper.stop)

    return app
