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

"""GeoJSON geometry to CAP ``<polygon>`` conversion."""

import json
from typing import Any, List, Mapping, Optional, Sequence

SUPPORTED_GEOMETRY_TYPES = ("Polygon", "MultiPolygon")


def to_cap_area(geometry: Optional[Mapping[str, Any]]) -> Optional[List[str]]:
    """Convert a GeoJSON geometry into a list of CAP polygon strings.

    One string is produced per polygon, in input order. Polygons with interior
    rings cannot be expressed as a CAP polygon, so any hole makes the whole
    conversion fail, as does any malformed ring or position. Returns ``None``
    on failure; callers decide how to log it.
    """

    if not isinstance(geometry, Mapping):
        return None

    geometry_type = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if geometry_type not in SUPPORTED_GEOMETRY_TYPES:
        return None
    if not isinstance(coordinates, (list, tuple)) or not coordinates:
        return None

    if geometry_type == "Polygon":
        polygons: Sequence[Any] = [coordinates]
    else:
        polygons = coordinates

    result: List[str] = []
    for polygon in polygons:
        ring = _exterior_ring(polygon)
        if ring is None:
            return None
        result.append(_ring_to_cap_polygon(ring))

    return result


def _exterior_ring(polygon: Any) -> Optional[Sequence[Any]]:
    # Exactly one ring allowed; more means the polygon has holes.
    if not isinstance(polygon, (list, tuple)) or len(polygon) != 1:
        return None
    ring = polygon[0]
    if not isinstance(ring, (list, tuple)) or not ring:
        return None
    if not all(_is_position(point) for point in ring):
        return None
    return ring


def _is_position(point: Any) -> bool:
    if not isinstance(point, (list, tuple)) or len(point) < 2:
        return False
    return all(
        isinstance(value, (int, float)) and not isinstance(value, bool) for value in point[:2]
    )


def _ring_to_cap_polygon(ring: Sequence[Sequence[Any]]) -> str:
    """``[[lon, lat], ...]`` -> ``"lat,lon lat,lon ..."``"""

    return " ".join(
        f"{_format_number(point[1])},{_format_number(point[0])}" for point in ring
    )


def _format_number(value: Any) -> str:
    # Same rendering as the JSON payload the client sees.
    return json.dumps(value)


__all__ = ["SUPPORTED_GEOMETRY_TYPES", "to_cap_area"]
