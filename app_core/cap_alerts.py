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

"""Build CAP 1.2 alert records from flooded-area GeoJSON features.

A feature looks like::

    {
        "properties": {
            "state": 2,
            "last_updated": "2016-02-16 10:36:50.568724",
            "level_name": "RW 01",
            "parent_name": "KAMPUNG MELAYU",
        },
        "geometry": {"type": "Polygon", "coordinates": [...]},
    }

Features whose state is zero or negative carry no active flooding and
produce no ``Info``. Features whose geometry cannot be expressed as CAP
polygons produce no ``Info`` either; both end up excluded from feeds.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import quote

from app_utils import epoch_millis, format_cap_datetime, parse_record_timestamp, utc_now

from .geometry import to_cap_area

# Characters ``encodeURI`` leaves untouched besides alphanumerics.
IDENTIFIER_SAFE_CHARS = ";,/?:@&=+$#-_.!~*'()"


@dataclass(frozen=True)
class SeverityLevel:
    severity: str
    description: str


@dataclass(frozen=True)
class CapSettings:
    """Deployment-level values stamped on every alert."""

    sender: str
    sender_name: str
    expiry_horizon: timedelta = timedelta(hours=6)
    language: str = "en-US"
    category: str = "Met"
    event: str = "FLOODING"
    urgency: str = "Immediate"
    certainty: str = "Observed"
    headline: str = "FLOOD WARNING"
    web: Optional[str] = None
    status: str = "Actual"
    msg_type: str = "Alert"
    scope: str = "Public"


@dataclass(frozen=True)
class Area:
    area_desc: str
    polygons: Tuple[str, ...]


@dataclass(frozen=True)
class Info:
    language: str
    category: str
    event: str
    urgency: str
    severity: str
    certainty: str
    effective: datetime
    expires: datetime
    sender_name: str
    headline: str
    description: str
    web: Optional[str]
    area: Area


@dataclass(frozen=True)
class Alert:
    identifier: str
    sender: str
    sent: datetime
    status: str
    msg_type: str
    scope: str
    info: Optional[Info]


def severity_table_from_mapping(raw: Mapping[Any, Mapping[str, str]]) -> Dict[int, SeverityLevel]:
    """Turn ``{state: {"severity": ..., "description": ...}}`` into a lookup table."""

    return {
        int(state): SeverityLevel(
            severity=str(entry["severity"]),
            description=str(entry.get("description", "")),
        )
        for state, entry in raw.items()
    }


class CapAlertBuilder:
    """Convert features into :class:`Alert` records."""

    def __init__(
        self,
        severity_table: Mapping[int, SeverityLevel],
        settings: CapSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.severity_table = dict(severity_table)
        self.settings = settings
        self.logger = logger or logging.getLogger(__name__)

    # ---------- Area ----------
    def build_area(self, feature: Mapping[str, Any]) -> Optional[Area]:
        properties = _properties(feature)
        polygons = to_cap_area(feature.get("geometry"))
        if polygons is None:
            geometry = feature.get("geometry") or {}
            self.logger.warning(
                "Cannot convert geometry of type %s to CAP area for %s, %s",
                geometry.get("type"),
                properties.get("level_name"),
                properties.get("parent_name"),
            )
            return None

        return Area(area_desc=_area_description(properties), polygons=tuple(polygons))

    # ---------- Info ----------
    def build_info(self, feature: Mapping[str, Any]) -> Optional[Info]:
        """Return the ``<info>`` block, or ``None`` when no alert applies."""

        properties = _properties(feature)
        state = _parse_state(properties.get("state"))
        if state is None or state <= 0:
            return None

        level = self.severity_table.get(int(state)) if state.is_integer() else None
        if level is None:
            self.logger.warning(
                "No severity level configured for state %s (%s, %s)",
                state,
                properties.get("level_name"),
                properties.get("parent_name"),
            )
            return None

        effective = parse_record_timestamp(properties.get("last_updated"))
        if effective is None:
            self.logger.debug(
                "Feature %s, %s has no last_updated timestamp, using current time",
                properties.get("level_name"),
                properties.get("parent_name"),
            )
            effective = utc_now()

        area = self.build_area(feature)
        if area is None:
            return None

        settings = self.settings
        description = (
            f"{settings.sender_name} REPORTS {level.description} IN "
            f"{area.area_desc} AS OF {format_cap_datetime(effective)}"
        )

        return Info(
            language=settings.language,
            category=settings.category,
            event=settings.event,
            urgency=settings.urgency,
            severity=level.severity,
            certainty=settings.certainty,
            effective=effective,
            expires=effective + settings.expiry_horizon,
            sender_name=settings.sender_name,
            headline=settings.headline,
            description=description,
            web=settings.web,
            area=area,
        )

    # ---------- Alert ----------
    def build_alert(self, feature: Mapping[str, Any]) -> Alert:
        """Always returns an alert; ``alert.info`` is ``None`` when nothing applies."""

        properties = _properties(feature)
        sent = parse_record_timestamp(properties.get("last_updated"))

        return Alert(
            identifier=self.build_identifier(properties, sent),
            sender=self.settings.sender,
            sent=sent or utc_now(),
            status=self.settings.status,
            msg_type=self.settings.msg_type,
            scope=self.settings.scope,
            info=self.build_info(feature),
        )

    @staticmethod
    def build_identifier(properties: Mapping[str, Any], sent: Optional[datetime]) -> str:
        if sent is not None:
            stamp = str(epoch_millis(sent))
        else:
            stamp = str(properties.get("last_updated") or "")
        raw = ".".join(
            [
                str(properties.get("parent_name") or ""),
                str(properties.get("level_name") or ""),
                stamp,
            ]
        )
        return quote(raw, safe=IDENTIFIER_SAFE_CHARS)


def _properties(feature: Mapping[str, Any]) -> Mapping[str, Any]:
    return feature.get("properties") or {}


def _area_description(properties: Mapping[str, Any]) -> str:
    names = [properties.get("level_name"), properties.get("parent_name")]
    return ", ".join(str(name) for name in names if name)


def _parse_state(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


__all__ = [
    "Alert",
    "Area",
    "CapAlertBuilder",
    "CapSettings",
    "IDENTIFIER_SAFE_CHARS",
    "Info",
    "SeverityLevel",
    "severity_table_from_mapping",
]
