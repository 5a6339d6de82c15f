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

"""Route modules of the flood data Flask application."""

from dataclasses import dataclass
from typing import Callable, Iterable

from flask import Flask

from . import routes_data, routes_health


@dataclass(frozen=True)
class RouteModule:
    """A route bundle attached to the app with ``registrar(app, logger)``."""

    name: str
    registrar: Callable[[Flask, object], None]


def iter_route_modules() -> Iterable[RouteModule]:
    yield RouteModule("routes_health", routes_health.register)
    yield RouteModule("routes_data", routes_data.register)


def register_routes(app: Flask, logger) -> None:
    """Register all route groups with the provided Flask application."""

    for module in iter_route_modules():
        try:
            module.registrar(app, logger)
        except Exception as exc:
            logger.getChild(module.name).error("Failed to register route module: %s", exc)
            raise
        logger.getChild(module.name).debug("Registered %s", module.name)


__all__ = ["RouteModule", "iter_route_modules", "register_routes"]
