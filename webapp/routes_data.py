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

"""Data API routes serving flood states and report aggregates."""

import math
from typing import Any, Dict, Optional

from flask import Flask, redirect, request
from sqlalchemy.exc import SQLAlchemyError

from app_core.cache import request_signature
from app_core.extensions import EXTENSION_KEY, get_services
from app_core.records import RecordSourceError, first_record
from app_core.responses import NO_CONTENT, ResponseEnvelope, write_response
from app_utils import utc_now

EDITOR_HEADER = "X-Editor-User"
AGGREGATE_HOURS = {"1": 1, "3": 3, "6": 6, "24": 24}


class DataRequestError(ValueError):
    """Invalid request parameters for a data route."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.status = status


def _parse_number(raw: Optional[str], name: str) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise DataRequestError(f"'{name}' parameter must be a number")
    if math.isnan(value) or math.isinf(value):
        raise DataRequestError(f"'{name}' parameter must be a number")
    return value


def _whole(value: float) -> Any:
    return int(value) if value.is_integer() else value


def aggregate_options(args, settings) -> Dict[str, Any]:
    """Validate ``level``/``hours`` and build the aggregate query options."""

    levels = settings.aggregate_levels
    level = args.get("level")
    if level:
        table = levels.get(level)
        if not table:
            raise DataRequestError(
                "'level' parameter is not valid, it should refer to an aggregate level"
            )
    else:
        table = next(iter(levels.values()))

    hours = args.get("hours")
    if hours and hours not in AGGREGATE_HOURS:
        raise DataRequestError("'hours' parameter must be 1, 3, 6 or 24")
    window_hours = AGGREGATE_HOURS.get(hours or "1", 1)

    end = math.floor(utc_now().timestamp())
    return {
        "polygon_layer": table,
        "point_layer_uc": settings.unconfirmed_reports_table,
        "point_layer": settings.reports_table,
        "start": end - window_hours * 3600,
        "end": end,
    }


def register(app: Flask, logger) -> None:
    """Attach the v2 data API to the Flask app."""

    route_logger = logger.getChild("routes_data")
    settings = app.extensions[EXTENSION_KEY].settings
    prefix = f"/{settings.url_prefix}" if settings.url_prefix else ""
    data_root = f"{prefix}/data/"
    api_root = f"{prefix}/data/api/v2"
    rw_layer = settings.aggregate_levels.get("rw") or next(iter(settings.aggregate_levels.values()))

    def _respond(envelope: ResponseEnvelope, cacheable: bool = True):
        if cacheable:
            signature = request_signature(request.path, request.query_string)
            get_services().response_cache.put(signature, envelope)
        return write_response(envelope)

    def _build(record_set: Any):
        return get_services().response_builder.build(request.args.get("format"), record_set)

    @app.before_request
    def redirect_http():
        if not settings.redirect_http:
            return None
        proto = request.headers.get("X-Forwarded-Proto", "")
        if proto.lower() == "http":
            return redirect("https://" + request.host + request.full_path.rstrip("?"))
        return None

    @app.before_request
    def serve_cached_response():
        if request.method != "GET" or not request.path.startswith(api_root + "/"):
            return None
        signature = request_signature(request.path, request.query_string)
        envelope = get_services().response_cache.get(signature)
        if envelope is None:
            return None
        route_logger.debug("Cache hit for %s", signature)
        return write_response(envelope)

    @app.after_request
    def allow_cross_origin(response):
        if request.path.startswith(data_root):
            response.headers["Access-Control-Allow-Origin"] = "*"
            response.headers["Access-Control-Allow-Headers"] = "X-Requested-With"
        return response

    @app.route(f"{prefix}/data/api/v1", defaults={"rest": ""})
    @app.route(f"{prefix}/data/api/v1/<path:rest>")
    def deprecated_v1(rest: str):
        target = f"{api_root}/{rest}" if rest else api_root
        if request.query_string:
            target = f"{target}?{request.query_string.decode('latin-1')}"
        response = redirect(target, code=301)
        response.headers["Cache-Control"] = "max-age=60"
        return response

    @app.route(f"{api_root}/rem/flooded", methods=["GET"])
    def flooded_states():
        minimum_state = _parse_number(request.args.get("minimum_state"), "minimum_state")
        options = {
            "polygon_layer": rw_layer,
            "minimum_state_filter": _whole(minimum_state) if minimum_state is not None else 0,
        }
        rows = get_services().record_source.get_states(options)
        return _respond(_build(first_record(rows)))

    @app.route(f"{api_root}/rem/dims", methods=["GET"])
    def dims_states():
        rows = get_services().record_source.get_dims({"polygon_layer": rw_layer})
        return _respond(_build(first_record(rows)))

    @app.route(f"{api_root}/aggregates/live", methods=["GET"])
    def live_aggregates():
        options = aggregate_options(request.args, settings)
        route_logger.debug("Parsed option 'tbl' as '%s'", options["polygon_layer"])
        rows = get_services().record_source.get_count_by_area(options)
        return _respond(_build(first_record(rows)))

    @app.route(f"{api_root}/rem/flooded/<int:unit_id>", methods=["PUT"])
    def update_flooded_state(unit_id: int):
        username = request.headers.get(EDITOR_HEADER)
        if not username:
            route_logger.warning("Rejected state update for %s without editor", unit_id)
            return _respond(ResponseEnvelope(code=401), cacheable=False)

        state = _parse_number(request.form.get("state"), "state")
        if state is None:
            raise DataRequestError("'state' field is required")

        options = {"id": unit_id, "state": _whole(state), "username": username}
        get_services().record_source.set_state(options)
        route_logger.info("User %s set state of %s to %s", username, unit_id, options["state"])
        return _respond(get_services().response_builder.build_ok(), cacheable=False)

    # Parameter and upstream failures answer 204, never 5xx.
    @app.errorhandler(DataRequestError)
    def handle_bad_request(exc: DataRequestError):
        route_logger.warning("Data request error: %s, %s", exc.status, exc)
        return write_response(NO_CONTENT)

    @app.errorhandler(RecordSourceError)
    @app.errorhandler(SQLAlchemyError)
    def handle_upstream_failure(exc: Exception):
        route_logger.error("Data query failed: %s", exc, exc_info=exc)
        return write_response(NO_CONTENT)


__all__ = ["DataRequestError", "aggregate_options", "register"]
