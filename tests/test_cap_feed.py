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

import xml.etree.ElementTree as ET
from datetime import datetime

import pytest
import pytz

from app_core.cap_alerts import CapAlertBuilder, CapSettings, severity_table_from_mapping
from app_core.cap_feed import ATOM_NS, CAP_NS, CapFeedSerializer, FeedMetadata
from app_core.settings import DEFAULT_STATE_SEVERITY
from app_utils import set_reference_timezone

NS = {"atom": ATOM_NS, "cap": CAP_NS}

INFO_ORDER = [
    "language",
    "category",
    "event",
    "urgency",
    "severity",
    "certainty",
    "effective",
    "expires",
    "senderName",
    "headline",
    "description",
    "web",
    "area",
]


@pytest.fixture(autouse=True)
def jakarta_time():
    set_reference_timezone("Asia/Jakarta")


@pytest.fixture
def serializer():
    builder = CapAlertBuilder(
        severity_table_from_mapping(DEFAULT_STATE_SEVERITY),
        CapSettings(
            sender="BPBD.JAKARTA.GOV.ID",
            sender_name="JAKARTA DISASTER MANAGEMENT AGENCY",
            web="https://petajakarta.org/banjir/",
        ),
    )
    return CapFeedSerializer(
        builder,
        FeedMetadata(feed_id="urn:test:feed", title="Test flood feed", author="tester"),
    )


UPDATED = datetime(2016, 2, 16, 4, 0, 0, tzinfo=pytz.UTC)


def _parse(xml_text):
    assert xml_text.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    return ET.fromstring(xml_text.split("\n", 1)[1])


def test_feed_envelope(serializer):
    feed = _parse(serializer.serialize([], updated=UPDATED))

    assert feed.tag == f"{{{ATOM_NS}}}feed"
    assert feed.find("atom:id", NS).text == "urn:test:feed"
    assert feed.find("atom:title", NS).text == "Test flood feed"
    assert feed.find("atom:updated", NS).text == "2016-02-16T11:00:00+07:00"
    assert feed.find("atom:author/atom:name", NS).text == "tester"
    assert feed.findall("atom:entry", NS) == []


def test_entry_wraps_cap_alert(serializer, sample_feature):
    feed = _parse(serializer.serialize([sample_feature], updated=UPDATED))

    entries = feed.findall("atom:entry", NS)
    assert len(entries) == 1
    entry = entries[0]
    assert entry.find("atom:id", NS).text == "bar.foo%20foo.1455593810568"
    assert entry.find("atom:title", NS).text == "FLOOD WARNING"
    assert entry.find("atom:updated", NS).text == "2016-02-16T10:36:50+07:00"

    content = entry.find("atom:content", NS)
    assert content.get("type") == "text/xml"
    alert = content.find("cap:alert", NS)
    assert [child.tag.split("}")[1] for child in alert] == [
        "identifier",
        "sender",
        "sent",
        "status",
        "msgType",
        "scope",
        "info",
    ]
    assert alert.find("cap:sender", NS).text == "BPBD.JAKARTA.GOV.ID"

    info = alert.find("cap:info", NS)
    assert [child.tag.split("}")[1] for child in info] == INFO_ORDER
    assert info.find("cap:severity", NS).text == "Minor"
    assert info.find("cap:area/cap:areaDesc", NS).text == "foo foo, bar"
    assert [p.text for p in info.findall("cap:area/cap:polygon", NS)] == ["2,1 4,3"]


def test_features_without_info_are_excluded(serializer, sample_feature, square_feature):
    inactive = dict(sample_feature, properties=dict(sample_feature["properties"], state=0))
    unknown = dict(sample_feature, geometry={"type": "Unknown", "coordinates": []})

    feed = _parse(serializer.serialize([inactive, square_feature, unknown], updated=UPDATED))

    ids = [entry.find("atom:id", NS).text for entry in feed.findall("atom:entry", NS)]
    assert ids == [serializer.alert_builder.build_alert(square_feature).identifier]


def test_entries_follow_input_order(serializer, sample_feature, square_feature):
    feed = _parse(serializer.serialize([square_feature, sample_feature], updated=UPDATED))

    titles = [
        entry.find("atom:content/cap:alert/cap:info/cap:area/cap:areaDesc", NS).text
        for entry in feed.findall("atom:entry", NS)
    ]
    assert titles == ["RW 01, KAMPUNG MELAYU", "foo foo, bar"]


def test_markup_in_properties_is_escaped(serializer, sample_feature):
    sample_feature["properties"]["level_name"] = "RW <01> & co"

    xml_text = serializer.serialize([sample_feature], updated=UPDATED)
    feed = _parse(xml_text)

    area_desc = feed.find("atom:entry/atom:content/cap:alert/cap:info/cap:area/cap:areaDesc", NS)
    assert area_desc.text == "RW <01> & co, bar"
    assert "<01>" not in xml_text


def test_malformed_coordinates_drop_only_that_feature(serializer, sample_feature, square_feature):
    broken = dict(sample_feature, geometry={"type": "Polygon", "coordinates": [[[106.8]]]})

    feed = _parse(serializer.serialize([broken, square_feature], updated=UPDATED))

    descriptions = [
        entry.find("atom:content/cap:alert/cap:info/cap:area/cap:areaDesc", NS).text
        for entry in feed.findall("atom:entry", NS)
    ]
    assert descriptions == ["RW 01, KAMPUNG MELAYU"]
