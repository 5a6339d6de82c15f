#!/usr/bin/env python3
"""
EAS Station - Emergency Alert System
Copyright (c) 2025 Timothy Kramer (KR8MER)

This file is part of EAS Station.

EAS Station is dual-licensed software:
- GNU Affero General Public License v3 (AGPL-3.0) for open-source use
- Commercial License for proprietary use

You should have received a copy of both licenses with this software.
For more information, see LICENSE and LICENSE-COMMERCIAL files.

IMPORTANT: This software cannot be rebranded or have attribution removed.
See NOTICE file for complete terms.

Repository: https://github.com/KR8MER/eas-station
"""

from __future__ import annotations

"""
Flood data server

Flask application serving flooded-area states and report aggregates as
GeoJSON, TopoJSON or an ATOM feed of CAP alerts, with a response cache and a
database connectivity monitor.
"""

import logging
import os
import signal
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from flask import Flask
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from app_core.connection_monitor import ConnectionMonitor, exit_with_status
from app_core.extensions import init_services
from app_core.records import RecordSource
from app_core.settings import ServerSettings, load_environment
from app_utils import set_reference_timezone
from webapp import register_routes

LOG_FORMAT = '%(asctime)s [%(levelname)s] [%(name)s] %(message)s'

logger = logging.getLogger(__name__)


def configure_logging(settings: ServerSettings) -> None:
    """Log to stdout and, when ``LOG_DIR`` is set, to a rotating file."""

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.log_dir:
        os.makedirs(settings.log_dir, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                os.path.join(settings.log_dir, f"{settings.instance}.log"),
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
            )
        )

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def create_app(
    settings: Optional[ServerSettings] = None,
    record_source: Optional[RecordSource] = None,
    engine: Optional[Engine] = None,
    connection_monitor: Optional[ConnectionMonitor] = None,
    config: Optional[dict] = None,
) -> Flask:
    """Application factory.

    ``engine`` defaults to one built from ``DATABASE_URL``; when there is an
    engine the database is checked once before the app is returned and a
    failure there ends the process.
    """

    if settings is None:
        load_environment()
        settings = ServerSettings.from_env()

    set_reference_timezone(settings.reference_timezone)

    app = Flask(__name__)
    if config:
        app.config.update(config)

    if engine is None and settings.database_url:
        engine = create_engine(settings.database_url, pool_pre_ping=True)

    services = init_services(
        app,
        settings,
        record_source=record_source,
        engine=engine,
        connection_monitor=connection_monitor,
    )
    register_routes(app, logger)

    if engine is not None and services.connection_monitor is not None:
        services.connection_monitor.verify_startup()

    logger.info(
        "Flood data server %s configured under /%s",
        settings.instance,
        settings.url_prefix,
    )
    return app


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""

    logger.info("Received signal %s, shutting down", signum)
    exit_with_status(0)


def main() -> None:
    load_environment()
    settings = ServerSettings.from_env()
    configure_logging(settings)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    app = create_app(settings)

    # Use FLASK_DEBUG environment variable to control debug mode (defaults to False for security)
    debug_mode = os.getenv('FLASK_DEBUG', 'False').lower() in ('true', '1', 'yes')
    logger.info("Listening on port %s", settings.port)
    app.run(debug=debug_mode, host='0.0.0.0', port=settings.port)


if __name__ == '__main__':
    main()
