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

"""Interface to the data layer that produces record sets for the routes."""

from typing import Any, Dict, List, Optional, Protocol, Sequence

Rows = List[Dict[str, Any]]


class RecordSourceError(RuntimeError):
    """Raised when the data layer cannot produce a record set."""


class RecordSource(Protocol):
    """Queries used by the data routes.

    Each call returns the raw row list; for the feature endpoints the first
    row holds a feature collection (``{"type": "FeatureCollection", "features": [...]}``).
    """

    def get_states(self, options: Dict[str, Any]) -> Rows: ...

    def get_dims(self, options: Dict[str, Any]) -> Rows: ...

    def get_count_by_area(self, options: Dict[str, Any]) -> Rows: ...

    def set_state(self, options: Dict[str, Any]) -> Rows: ...


class NullRecordSource:
    """Placeholder used until a deployment wires in its data layer."""

    def _unavailable(self, name: str) -> Rows:
        raise RecordSourceError(f"No record source configured for {name}")

    def get_states(self, options: Dict[str, Any]) -> Rows:
        return self._unavailable("get_states")

    def get_dims(self, options: Dict[str, Any]) -> Rows:
        return self._unavailable("get_dims")

    def get_count_by_area(self, options: Dict[str, Any]) -> Rows:
        return self._unavailable("get_count_by_area")

    def set_state(self, options: Dict[str, Any]) -> Rows:
        return self._unavailable("set_state")


def first_record(rows: Optional[Sequence[Any]]) -> Any:
    """The payload row of a query result, or ``None`` when there is none."""

    if not rows:
        return None
    return rows[0]


__all__ = ["NullRecordSource", "RecordSource", "RecordSourceError", "Rows", "first_record"]
