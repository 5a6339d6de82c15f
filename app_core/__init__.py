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

"""Core modules of the flood data server: formatting, caching and connectivity."""

# The package exposes commonly used symbols so callers can import from
# ``app_core`` without having to know the concrete module layout.

from .geometry import to_cap_area  # noqa: F401
from .records import RecordSource, RecordSourceError  # noqa: F401
from .responses import ResponseBuilder, ResponseEnvelope  # noqa: F401

__all__ = [
    "RecordSource",
    "RecordSourceError",
    "ResponseBuilder",
    "ResponseEnvelope",
    "to_cap_area",
]
