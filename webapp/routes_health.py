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

"""Health endpoint reporting database connectivity and cache backend."""

from flask import Flask, jsonify

from app_core.connection_monitor import ConnectionStatus
from app_core.extensions import get_services
from app_utils import format_query_time, reference_now, utc_now


def register(app: Flask, logger) -> None:
    """Attach the health check route to the Flask app."""

    route_logger = logger.getChild("routes_health")

    @app.route("/health")
    def health_check():
        """Simple health check endpoint."""

        services = get_services()
        monitor = services.connection_monitor
        if monitor is None:
            database = {"status": "unmonitored", "attempts": 0}
        else:
            database = monitor.snapshot()

        healthy = database["status"] in ("unmonitored", ConnectionStatus.CONNECTED.value)
        if not healthy:
            route_logger.warning("Health check reporting database %s", database["status"])

        payload = {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": utc_now().isoformat(),
            "local_timestamp": reference_now().isoformat(),
            "QueryTime": format_query_time(),
            "database": database,
            "cache": app.config.get("CACHE_TYPE", "SimpleCache"),
        }
        return jsonify(payload), 200 if healthy else 503


__all__ = ["register"]
