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

import logging
from datetime import timedelta

import pytest

from app_core.cap_alerts import (
    CapAlertBuilder,
    CapSettings,
    SeverityLevel,
    severity_table_from_mapping,
)
from app_core.settings import DEFAULT_STATE_SEVERITY
from app_utils import format_cap_datetime, set_reference_timezone


@pytest.fixture(autouse=True)
def jakarta_time():
    set_reference_timezone("Asia/Jakarta")


@pytest.fixture
def builder():
    return CapAlertBuilder(
        severity_table_from_mapping(DEFAULT_STATE_SEVERITY),
        CapSettings(sender="BPBD.JAKARTA.GOV.ID", sender_name="JAKARTA DISASTER MANAGEMENT AGENCY"),
    )


def test_state_zero_produces_no_info(builder, sample_feature):
    sample_feature["properties"]["state"] = 0

    assert builder.build_info(sample_feature) is None


def test_negative_state_produces_no_info(builder, sample_feature):
    sample_feature["properties"]["state"] = -1

    assert builder.build_info(sample_feature) is None


def test_positive_state_produces_info(builder, sample_feature):
    info = builder.build_info(sample_feature)

    assert info is not None
    assert info.severity == "Minor"
    assert info.area.polygons == ("2,1 4,3",)
    assert info.area.area_desc == "foo foo, bar"
    assert info.headline == "FLOOD WARNING"
    assert "AN UNKNOWN LEVEL OF FLOODING" in info.description


def test_string_state_is_accepted(builder, sample_feature):
    sample_feature["properties"]["state"] = "3"

    info = builder.build_info(sample_feature)

    assert info is not None
    assert info.severity == "Severe"


def test_info_window_follows_last_updated(builder, sample_feature):
    info = builder.build_info(sample_feature)

    assert format_cap_datetime(info.effective) == "2016-02-16T10:36:50+07:00"
    assert format_cap_datetime(info.expires) == "2016-02-16T16:36:50+07:00"
    assert info.expires - info.effective == timedelta(hours=6)


def test_missing_last_updated_still_builds_info(builder):
    feature = {
        "properties": {"state": 1, "parent_name": "X"},
        "geometry": {"type": "Polygon", "coordinates": [[[1, 2], [3, 4]]]},
    }

    info = builder.build_info(feature)
    alert = builder.build_alert(feature)

    assert info is not None
    assert info.area.polygons == ("2,1 4,3",)
    assert alert.info is not None


def test_unknown_geometry_produces_no_info_but_an_alert(builder, sample_feature, caplog):
    sample_feature["geometry"]["type"] = "Unknown"

    with caplog.at_level(logging.WARNING):
        info = builder.build_info(sample_feature)
        alert = builder.build_alert(sample_feature)

    assert info is None
    assert alert is not None
    assert alert.info is None
    assert "Cannot convert geometry" in caplog.text


def test_unconfigured_state_produces_no_info(sample_feature):
    builder = CapAlertBuilder(
        {1: SeverityLevel("Minor", "SOME FLOODING")},
        CapSettings(sender="S", sender_name="N"),
    )
    sample_feature["properties"]["state"] = 9

    assert builder.build_info(sample_feature) is None


def test_alert_header_fields(builder, sample_feature):
    alert = builder.build_alert(sample_feature)

    assert alert.sender == "BPBD.JAKARTA.GOV.ID"
    assert alert.status == "Actual"
    assert alert.msg_type == "Alert"
    assert alert.scope == "Public"
    assert format_cap_datetime(alert.sent) == "2016-02-16T10:36:50+07:00"


def test_identifier_is_url_encoded(builder, sample_feature):
    sample_feature["properties"]["parent_name"] = "1<2"

    alert = builder.build_alert(sample_feature)

    assert "<" not in alert.identifier
    assert alert.identifier.startswith("1%3C2.foo%20foo.")


def test_identifier_uses_epoch_millis_of_last_updated(builder, sample_feature):
    alert = builder.build_alert(sample_feature)

    assert alert.identifier == "bar.foo%20foo.1455593810568"


def test_expiry_horizon_is_configurable(sample_feature):
    builder = CapAlertBuilder(
        severity_table_from_mapping(DEFAULT_STATE_SEVERITY),
        CapSettings(sender="S", sender_name="N", expiry_horizon=timedelta(hours=1)),
    )

    info = builder.build_info(sample_feature)

    assert info.expires - info.effective == timedelta(hours=1)
