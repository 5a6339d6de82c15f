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
ATOM feed of CAP v1.2 alerts

Output structure:
<feed xmlns="http://www.w3.org/2005/Atom" xmlns:cap="urn:oasis:names:tc:emergency:cap:1.2">
  <id>...</id>
  <title>...</title>
  <updated>...</updated>
  <author><name>...</name></author>
  <entry>
    <id>identifier</id>
    <title>headline</title>
    <updated>sent</updated>
    <content type="text/xml">
      <cap:alert>
        <cap:identifier/> <cap:sender/> <cap:sent/> <cap:status/> <cap:msgType/> <cap:scope/>
        <cap:info>
          ... <cap:area><cap:areaDesc/><cap:polygon>lat,lon lat,lon ...</cap:polygon></cap:area>
        </cap:info>
      </cap:alert>
    </content>
  </entry>
</feed>
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional

from app_utils import format_cap_datetime, utc_now

from .cap_alerts import Alert, CapAlertBuilder, Info

ATOM_NS = "http://www.w3.org/2005/Atom"
CAP_NS = "urn:oasis:names:tc:emergency:cap:1.2"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

ET.register_namespace("", ATOM_NS)
ET.register_namespace("cap", CAP_NS)


@dataclass(frozen=True)
class FeedMetadata:
    feed_id: str
    title: str
    author: str


def _atom(tag: str) -> str:
    return f"{{{ATOM_NS}}}{tag}"


def _cap(tag: str) -> str:
    return f"{{{CAP_NS}}}{tag}"


def _sub(parent: ET.Element, tag: str, text: Optional[str] = None) -> ET.Element:
    element = ET.SubElement(parent, tag)
    if text is not None:
        element.text = text
    return element


class CapFeedSerializer:
    """Serialize features as an ATOM document of CAP alerts."""

    def __init__(
        self,
        alert_builder: CapAlertBuilder,
        metadata: FeedMetadata,
        logger: Optional[logging.Logger] = None,
    ):
        self.alert_builder = alert_builder
        self.metadata = metadata
        self.logger = logger or logging.getLogger(__name__)

    def build_alerts(self, features: Iterable[Mapping[str, Any]]) -> List[Alert]:
        """Alerts for ``features`` in input order, without the ones lacking ``info``."""

        alerts: List[Alert] = []
        skipped = 0
        for feature in features:
            alert = self.alert_builder.build_alert(feature)
            if alert.info is None:
                skipped += 1
                continue
            alerts.append(alert)

        if skipped:
            self.logger.debug("Excluded %d feature(s) without CAP info from feed", skipped)
        return alerts

    def serialize(
        self,
        features: Iterable[Mapping[str, Any]],
        updated: Optional[datetime] = None,
    ) -> str:
        alerts = self.build_alerts(features)
        feed = self._feed_element(alerts, updated or utc_now())
        self.logger.info("Serialized CAP feed with %d alert(s)", len(alerts))
        return XML_DECLARATION + ET.tostring(feed, encoding="unicode")

    # ---------- ATOM envelope ----------
    def _feed_element(self, alerts: List[Alert], updated: datetime) -> ET.Element:
        feed = ET.Element(_atom("feed"))
        _sub(feed, _atom("id"), self.metadata.feed_id)
        _sub(feed, _atom("title"), self.metadata.title)
        _sub(feed, _atom("updated"), format_cap_datetime(updated))
        author = _sub(feed, _atom("author"))
        _sub(author, _atom("name"), self.metadata.author)

        for alert in alerts:
            entry = _sub(feed, _atom("entry"))
            _sub(entry, _atom("id"), alert.identifier)
            _sub(entry, _atom("title"), alert.info.headline if alert.info else alert.identifier)
            _sub(entry, _atom("updated"), format_cap_datetime(alert.sent))
            content = _sub(entry, _atom("content"))
            content.set("type", "text/xml")
            content.append(alert_element(alert))

        return feed


def alert_element(alert: Alert) -> ET.Element:
    """CAP ``<alert>`` element; child order follows the CAP 1.2 schema."""

    element = ET.Element(_cap("alert"))
    _sub(element, _cap("identifier"), alert.identifier)
    _sub(element, _cap("sender"), alert.sender)
    _sub(element, _cap("sent"), format_cap_datetime(alert.sent))
    _sub(element, _cap("status"), alert.status)
    _sub(element, _cap("msgType"), alert.msg_type)
    _sub(element, _cap("scope"), alert.scope)
    if alert.info is not None:
        element.append(info_element(alert.info))
    return element


def info_element(info: Info) -> ET.Element:
    element = ET.Element(_cap("info"))
    _sub(element, _cap("language"), info.language)
    _sub(element, _cap("category"), info.category)
    _sub(element, _cap("event"), info.event)
    _sub(element, _cap("urgency"), info.urgency)
    _sub(element, _cap("severity"), info.severity)
    _sub(element, _cap("certainty"), info.certainty)
    _sub(element, _cap("effective"), format_cap_datetime(info.effective))
    _sub(element, _cap("expires"), format_cap_datetime(info.expires))
    _sub(element, _cap("senderName"), info.sender_name)
    _sub(element, _cap("headline"), info.headline)
    _sub(element, _cap("description"), info.description)
    if info.web:
        _sub(element, _cap("web"), info.web)

    area = _sub(element, _cap("area"))
    _sub(area, _cap("areaDesc"), info.area.area_desc)
    for polygon in info.area.polygons:
        _sub(area, _cap("polygon"), polygon)

    return element


__all__ = [
    "ATOM_NS",
    "CAP_NS",
    "CapFeedSerializer",
    "FeedMetadata",
    "alert_element",
    "info_element",
]
