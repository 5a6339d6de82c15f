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

"""Pytest configuration and shared fixtures for flood data server tests.

This module provides sample features, a fake record source and a Flask test
application wired with an in-process cache.
"""
import copy
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add project root to Python path for imports
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app_core.settings import ServerSettings  # noqa: E402


# ============================================================================
# Test data fixtures
# ============================================================================

SAMPLE_FEATURE: Dict[str, Any] = {
    "type": "Feature",
    "properties": {
        "state": 1,
        "last_updated": "2016-02-16 10:36:50.568724",
        "level_name": "foo foo",
        "parent_name": "bar",
    },
    "geometry": {
        "type": "Polygon",
        "coordinates": [
            [
                [1, 2],
                [3, 4],
            ]
        ],
    },
}

SQUARE_FEATURE: Dict[str, Any] = {
    "type": "Feature",
    "properties": {
        "pkey": 7,
        "state": 2,
        "last_updated": "2016-02-16 10:36:50",
        "level_name": "RW 01",
        "parent_name": "KAMPUNG MELAYU",
    },
    "geometry": {
        "type": "Polygon",
        "coordinates": [
            [
                [106.8, -6.2],
                [106.9, -6.2],
                [106.9, -6.1],
                [106.8, -6.1],
                [106.8, -6.2],
            ]
        ],
    },
}


@pytest.fixture
def sample_feature() -> Dict[str, Any]:
    """A single-ring polygon feature in flood state 1."""
    return copy.deepcopy(SAMPLE_FEATURE)


@pytest.fixture
def square_feature() -> Dict[str, Any]:
    """A closed square polygon feature in flood state 2."""
    return copy.deepcopy(SQUARE_FEATURE)


@pytest.fixture
def feature_collection(square_feature) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": [square_feature]}


# ============================================================================
# Mocked component fixtures
# ============================================================================

class FakeRecordSource:
    """Record source returning canned rows and recording each call."""

    def __init__(self, rows: List[Any]):
        self.rows = rows
        self.calls: List[tuple] = []
        self.error: Exception = None

    def _answer(self, name: str, options: Dict[str, Any]) -> List[Any]:
        self.calls.append((name, dict(options)))
        if self.error is not None:
            raise self.error
        return self.rows

    def get_states(self, options):
        return self._answer("get_states", options)

    def get_dims(self, options):
        return self._answer("get_dims", options)

    def get_count_by_area(self, options):
        return self._answer("get_count_by_area", options)

    def set_state(self, options):
        return self._answer("set_state", options)


@pytest.fixture
def record_source(feature_collection) -> FakeRecordSource:
    return FakeRecordSource([feature_collection])


@pytest.fixture
def settings() -> ServerSettings:
    return ServerSettings(url_prefix="banjir", response_cache_timeout=60)


@pytest.fixture
def app(settings, record_source):
    """Flask test application without a database engine."""
    from app import create_app

    flask_app = create_app(
        settings=settings,
        record_source=record_source,
        config={"TESTING": True, "CACHE_TYPE": "SimpleCache"},
    )
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


# ============================================================================
# Test markers and utilities
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (Flask test client)"
    )
