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

"""Utility helpers for the flood data Flask application."""

from .time import (
    QUERY_TIME_FORMAT,
    UTC_TZ,
    epoch_millis,
    format_cap_datetime,
    format_query_time,
    get_reference_timezone,
    get_reference_timezone_name,
    parse_record_timestamp,
    reference_now,
    set_reference_timezone,
    utc_now,
)

__all__ = [
    "QUERY_TIME_FORMAT",
    "UTC_TZ",
    "utc_now",
    "reference_now",
    "format_query_time",
    "format_cap_datetime",
    "parse_record_timestamp",
    "epoch_millis",
    "get_reference_timezone",
    "get_reference_timezone_name",
    "set_reference_timezone",
]
