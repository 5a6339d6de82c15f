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

"""Timezone and datetime helpers for the flood data server."""

import logging
import os
from datetime import datetime
from typing import Optional, Union

import pytz

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE_NAME = os.getenv("REFERENCE_TIMEZONE", "Asia/Jakarta")
UTC_TZ = pytz.UTC
QUERY_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
_reference_timezone = pytz.timezone(DEFAULT_TIMEZONE_NAME)

# Formats produced by the database for ``last_updated`` columns.
_DB_TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
)


def get_reference_timezone():
    """Return the timezone used for business-time stamps."""

    return _reference_timezone


def get_reference_timezone_name() -> str:
    tz = get_reference_timezone()
    return getattr(tz, "zone", DEFAULT_TIMEZONE_NAME)


def set_reference_timezone(tz_name: Optional[str]) -> None:
    """Update the reference timezone used by helper utilities."""

    global _reference_timezone

    if not tz_name:
        return

    try:
        _reference_timezone = pytz.timezone(tz_name)
        logger.info("Updated reference timezone to %s", tz_name)
    except pytz.UnknownTimeZoneError as exc:
        logger.warning(
            "Invalid timezone '%s', keeping %s: %s",
            tz_name,
            get_reference_timezone_name(),
            exc,
        )


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""

    return datetime.now(UTC_TZ)


def reference_now() -> datetime:
    """Current time in the reference timezone."""

    return utc_now().astimezone(get_reference_timezone())


def format_query_time(moment: Optional[datetime] = None) -> str:
    """Format ``moment`` (default: now) as reference-timezone civil time.

    The result carries no offset, e.g. ``2016-02-16T17:36:50``, and is always
    the reference timezone, never UTC or the server zone.
    """

    if moment is None:
        moment = utc_now()
    moment = _ensure_aware(moment)
    return moment.astimezone(get_reference_timezone()).strftime(QUERY_TIME_FORMAT)


def parse_record_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse a record timestamp into an aware datetime.

    Naive values (the usual ``2016-02-16 10:36:50.568724`` database output)
    are taken as reference-timezone civil time.
    """

    if value is None:
        return None

    if isinstance(value, datetime):
        return _ensure_aware(value)

    text = str(value).strip()
    if not text:
        return None

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        for fmt in _DB_TIMESTAMP_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        logger.warning("Could not parse timestamp: %s", value)
        return None

    return _ensure_aware(parsed)


def format_cap_datetime(moment: datetime) -> str:
    """CAP ``dateTime``: reference-timezone ISO-8601 with a numeric offset."""

    local = _ensure_aware(moment).astimezone(get_reference_timezone())
    return local.replace(microsecond=0).isoformat()


def epoch_millis(moment: datetime) -> int:
    return int(_ensure_aware(moment).timestamp() * 1000)


def _ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return get_reference_timezone().localize(dt)
    return dt
