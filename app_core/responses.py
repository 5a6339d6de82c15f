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

"""Format record sets as GeoJSON, TopoJSON or CAP responses."""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional

import geojson
import topojson
from flask import Response

from app_utils import format_query_time

from .cap_feed import CapFeedSerializer

FORMAT_GEOJSON = "geojson"
FORMAT_TOPOJSON = "topojson"
FORMAT_CAP = "cap"

JSON_CONTENT_TYPE = "application/json"
XML_CONTENT_TYPE = "application/xml"

QUERY_TIME_FIELD = "QueryTime"
TOPOLOGY_OBJECT_NAME = "collection"


@dataclass(frozen=True)
class ResponseEnvelope:
    """Status, headers and body of a finished response, ready to cache or send."""

    code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None


NO_CONTENT = ResponseEnvelope(code=204, headers={}, body=None)


def normalize_format(requested_format: Optional[str]) -> str:
    if requested_format == FORMAT_TOPOJSON:
        return FORMAT_TOPOJSON
    if requested_format == FORMAT_CAP:
        return FORMAT_CAP
    return FORMAT_GEOJSON


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps_json(payload: Any) -> str:
    return json.dumps(payload, default=_json_default)


def feature_collection_features(record_set: Any) -> Optional[List[Any]]:
    """``record_set["features"]`` when the record set is a feature collection."""

    if isinstance(record_set, Mapping):
        features = record_set.get("features")
        if isinstance(features, list):
            return features
    return None


def _has_geometry(feature: Mapping[str, Any]) -> bool:
    geometry = feature.get("geometry")
    return isinstance(geometry, Mapping) and isinstance(geometry.get("type"), str)


def to_topology(collection: Mapping[str, Any]) -> Dict[str, Any]:
    """Encode a GeoJSON feature collection as a TopoJSON topology.

    Only geometry and ``properties`` of each feature are carried over.
    Features without a geometry stay in the collection as
    ``{"type": null, "properties": ...}`` and take no part in the arcs.
    """

    features = [
        feature
        for feature in feature_collection_features(collection) or []
        if isinstance(feature, Mapping)
    ]
    located = [feature for feature in features if _has_geometry(feature)]

    if located:
        source = {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "geometry": feature["geometry"],
                    "properties": feature.get("properties") or {},
                }
                for feature in located
            ],
        }
        # Round-trip through geojson so the topology sees typed GeoJSON objects.
        typed = geojson.loads(dumps_json(source))
        encoder = topojson.Topology(typed, prequantize=False, object_name=TOPOLOGY_OBJECT_NAME)
        topology = json.loads(encoder.to_json())
        encoded = iter(topology["objects"][TOPOLOGY_OBJECT_NAME].get("geometries", []))
    else:
        topology = {"type": "Topology", "objects": {}, "arcs": []}
        encoded = iter(())

    geometries = []
    for feature in features:
        geometry = next(encoded, None) if _has_geometry(feature) else None
        if geometry is None:
            geometry = {"type": None, "properties": feature.get("properties") or {}}
        geometries.append(geometry)
    topology["objects"] = {
        TOPOLOGY_OBJECT_NAME: {"type": "GeometryCollection", "geometries": geometries}
    }
    return topology


def _is_empty(record_set: Any) -> bool:
    if record_set is None:
        return True
    if isinstance(record_set, (Mapping, list, tuple)):
        return len(record_set) == 0
    return False


class ResponseBuilder:
    """Turn a record set and a requested format into a :class:`ResponseEnvelope`."""

    def __init__(
        self,
        feed_serializer: CapFeedSerializer,
        topology_encoder: Callable[[Mapping[str, Any]], Dict[str, Any]] = to_topology,
        clock: Callable[[], str] = format_query_time,
        logger: Optional[logging.Logger] = None,
    ):
        self.feed_serializer = feed_serializer
        self.topology_encoder = topology_encoder
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def build(self, requested_format: Optional[str], record_set: Any) -> ResponseEnvelope:
        response_format = normalize_format(requested_format)

        if response_format == FORMAT_CAP:
            return self.build_cap(record_set)

        if _is_empty(record_set):
            self.logger.debug("Empty record set, responding with no content")
            return NO_CONTENT

        if response_format == FORMAT_TOPOJSON and feature_collection_features(record_set) is not None:
            topology = self.topology_encoder(record_set)
            topology[QUERY_TIME_FIELD] = self.clock()
            return self._json_envelope(topology)

        return self._json_envelope(self._stamp(record_set))

    def build_cap(self, record_set: Any) -> ResponseEnvelope:
        features = feature_collection_features(record_set) or []
        body = self.feed_serializer.serialize(features)
        return ResponseEnvelope(code=200, headers={"Content-Type": XML_CONTENT_TYPE}, body=body)

    def build_ok(self) -> ResponseEnvelope:
        """Acknowledge a state change with an otherwise empty JSON payload."""

        return self._json_envelope({QUERY_TIME_FIELD: self.clock()})

    def _stamp(self, record_set: Any) -> Any:
        if isinstance(record_set, Mapping):
            payload = dict(record_set)
            payload[QUERY_TIME_FIELD] = self.clock()
            return payload
        # Bare row lists have no top level to stamp.
        return record_set

    @staticmethod
    def _json_envelope(payload: Any) -> ResponseEnvelope:
        return ResponseEnvelope(
            code=200,
            headers={"Content-Type": JSON_CONTENT_TYPE},
            body=dumps_json(payload),
        )


def write_response(envelope: ResponseEnvelope) -> Response:
    """Write an envelope to Flask verbatim."""

    return Response(
        response=envelope.body,
        status=envelope.code,
        headers=dict(envelope.headers),
    )


__all__ = [
    "FORMAT_CAP",
    "FORMAT_GEOJSON",
    "FORMAT_TOPOJSON",
    "NO_CONTENT",
    "QUERY_TIME_FIELD",
    "ResponseBuilder",
    "ResponseEnvelope",
    "dumps_json",
    "feature_collection_features",
    "normalize_format",
    "to_topology",
    "write_response",
]
