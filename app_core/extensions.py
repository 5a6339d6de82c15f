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

"""Service objects owned by the Flask application."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from flask import Flask, current_app
from sqlalchemy.engine import Engine

from .cache import ResponseCache, init_cache
from .cap_alerts import CapAlertBuilder, CapSettings, severity_table_from_mapping
from .cap_feed import CapFeedSerializer, FeedMetadata
from .connection_monitor import ConnectionMonitor, engine_probe
from .records import NullRecordSource, RecordSource
from .responses import ResponseBuilder
from .settings import ServerSettings

EXTENSION_KEY = "flood_data"


@dataclass
class DataServices:
    """Everything the data routes need, created once per application."""

    settings: ServerSettings
    record_source: RecordSource
    response_builder: ResponseBuilder
    response_cache: ResponseCache
    connection_monitor: Optional[ConnectionMonitor] = None


def build_response_builder(settings: ServerSettings, logger: logging.Logger) -> ResponseBuilder:
    """Assemble the CAP alert builder, feed serializer and response builder."""

    cap_settings = CapSettings(
        sender=settings.cap_sender,
        sender_name=settings.cap_sender_name,
        expiry_horizon=timedelta(hours=settings.cap_expiry_hours),
        language=settings.cap_language,
        web=settings.cap_web,
    )
    alert_builder = CapAlertBuilder(
        severity_table_from_mapping(settings.state_severity),
        cap_settings,
        logger=logger.getChild("cap"),
    )
    serializer = CapFeedSerializer(
        alert_builder,
        FeedMetadata(
            feed_id=settings.cap_feed_id,
            title=settings.cap_feed_title,
            author=settings.cap_feed_author,
        ),
        logger=logger.getChild("cap_feed"),
    )
    return ResponseBuilder(serializer, logger=logger.getChild("responses"))


def init_services(
    app: Flask,
    settings: ServerSettings,
    record_source: Optional[RecordSource] = None,
    engine: Optional[Engine] = None,
    connection_monitor: Optional[ConnectionMonitor] = None,
) -> DataServices:
    """Create the application's services and store them on ``app.extensions``."""

    logger = app.logger
    if record_source is None:
        logger.warning("No record source configured; data routes will answer 204")
        record_source = NullRecordSource()

    if connection_monitor is None and engine is not None:
        connection_monitor = ConnectionMonitor(
            engine_probe(engine),
            max_attempts=settings.db_reconnection_attempts,
            delay=settings.db_reconnection_delay,
            logger=logger.getChild("connection"),
        )
    if connection_monitor is not None and engine is not None:
        connection_monitor.attach(engine)

    services = DataServices(
        settings=settings,
        record_source=record_source,
        response_builder=build_response_builder(settings, logger),
        response_cache=ResponseCache(init_cache(app), settings.response_cache_timeout),
        connection_monitor=connection_monitor,
    )
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> DataServices:
    """Services of the application handling the current request."""

    return current_app.extensions[EXTENSION_KEY]


__all__ = [
    "DataServices",
    "EXTENSION_KEY",
    "build_response_builder",
    "get_services",
    "init_services",
]
