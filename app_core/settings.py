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
Environment-driven settings for the flood data server.

Values come from the process environment, optionally seeded from a ``.env``
file (or the file named by ``CONFIG_PATH``) via python-dotenv.

Deployment-specific tables are JSON:
    STATE_SEVERITY_FILE  - path to {"<state>": {"severity": ..., "description": ...}}
    AGGREGATE_LEVELS     - {"subdistrict": "jkt.subdistrict", "village": ...}
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_AGGREGATE_LEVELS: Dict[str, str] = {
    "subdistrict": "jkt_subdistrict_boundary",
    "village": "jkt_village_boundary",
    "rw": "jkt_rw_boundary",
}

# state code -> (severity, level description)
DEFAULT_STATE_SEVERITY: Dict[int, Dict[str, str]] = {
    1: {"severity": "Minor", "description": "AN UNKNOWN LEVEL OF FLOODING - USE CAUTION -"},
    2: {"severity": "Moderate", "description": "FLOODING OF BETWEEN 10 AND 70 CENTIMETERS"},
    3: {"severity": "Severe", "description": "FLOODING OF BETWEEN 71 AND 150 CENTIMETERS"},
    4: {"severity": "Severe", "description": "FLOODING OF OVER 150 CENTIMETERS"},
}


def load_environment() -> None:
    """Load ``.env`` values into the process environment.

    A plain ``.env`` never replaces variables already exported. The file named
    by ``CONFIG_PATH`` is authoritative and overrides them.
    """

    config_path = os.environ.get("CONFIG_PATH")
    if config_path:
        load_dotenv(config_path, override=True)
    else:
        load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%r, using %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid number for %s=%r, using %s", name, raw, default)
        return default


def _env_json_mapping(name: str, default: Mapping[str, str]) -> Dict[str, str]:
    raw = os.environ.get(name)
    if not raw:
        return dict(default)
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring malformed %s: %s", name, exc)
        return dict(default)
    if not isinstance(value, dict) or not value:
        logger.warning("Ignoring %s: expected a non-empty JSON object", name)
        return dict(default)
    return {str(key): str(table) for key, table in value.items()}


def load_state_severity(path: Optional[str]) -> Dict[int, Dict[str, str]]:
    """Read the state-code severity table, falling back to the default."""

    if not path:
        return {state: dict(entry) for state, entry in DEFAULT_STATE_SEVERITY.items()}

    with Path(path).open("r", encoding="utf-8") as handle:
        raw = json.load(handle)

    table: Dict[int, Dict[str, str]] = {}
    for state, entry in raw.items():
        table[int(state)] = {
            "severity": str(entry["severity"]),
            "description": str(entry.get("description", "")),
        }
    logger.info("Loaded %d state severity levels from %s", len(table), path)
    return table


@dataclass(frozen=True)
class ServerSettings:
    """Runtime configuration resolved once at application start."""

    instance: str = "flood-data-server"
    url_prefix: str = "banjir"
    port: int = 8081
    database_url: Optional[str] = None
    db_reconnection_attempts: int = 5
    db_reconnection_delay: float = 30.0
    response_cache_timeout: int = 60
    reference_timezone: str = "Asia/Jakarta"
    redirect_http: bool = False
    aggregate_levels: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_AGGREGATE_LEVELS))
    reports_table: str = "all_reports"
    unconfirmed_reports_table: str = "tweet_reports_unconfirmed"
    state_severity: Dict[int, Dict[str, str]] = field(
        default_factory=lambda: load_state_severity(None)
    )
    cap_expiry_hours: float = 6.0
    cap_sender: str = "BPBD.JAKARTA.GOV.ID"
    cap_sender_name: str = "JAKARTA DISASTER MANAGEMENT AGENCY"
    cap_web: Optional[str] = "https://petajakarta.org/banjir/"
    cap_language: str = "en-US"
    cap_feed_id: str = "https://petajakarta.org/banjir/data/api/v2/rem/flooded?format=cap"
    cap_feed_title: str = "petajakarta.org REM flood alerts"
    cap_feed_author: str = "petajakarta.org"
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    log_max_bytes: int = 10 * 1024 * 1024
    log_backup_count: int = 5

    @classmethod
    def from_env(cls) -> "ServerSettings":
        """Build settings from the environment (after ``load_environment``)."""

        defaults = cls()
        return cls(
            instance=os.environ.get("INSTANCE_NAME", defaults.instance),
            url_prefix=os.environ.get("URL_PREFIX", defaults.url_prefix).strip("/"),
            port=_env_int("PORT", defaults.port),
            database_url=os.environ.get("DATABASE_URL") or None,
            db_reconnection_attempts=_env_int(
                "DB_RECONNECTION_ATTEMPTS", defaults.db_reconnection_attempts
            ),
            db_reconnection_delay=_env_float(
                "DB_RECONNECTION_DELAY", defaults.db_reconnection_delay
            ),
            response_cache_timeout=_env_int(
                "RESPONSE_CACHE_TIMEOUT", defaults.response_cache_timeout
            ),
            reference_timezone=os.environ.get("REFERENCE_TIMEZONE", defaults.reference_timezone),
            redirect_http=_env_bool("REDIRECT_HTTP", defaults.redirect_http),
            aggregate_levels=_env_json_mapping("AGGREGATE_LEVELS", DEFAULT_AGGREGATE_LEVELS),
            reports_table=os.environ.get("REPORTS_TABLE", defaults.reports_table),
            unconfirmed_reports_table=os.environ.get(
                "UNCONFIRMED_REPORTS_TABLE", defaults.unconfirmed_reports_table
            ),
            state_severity=load_state_severity(os.environ.get("STATE_SEVERITY_FILE")),
            cap_expiry_hours=_env_float("CAP_EXPIRY_HOURS", defaults.cap_expiry_hours),
            cap_sender=os.environ.get("CAP_SENDER", defaults.cap_sender),
            cap_sender_name=os.environ.get("CAP_SENDER_NAME", defaults.cap_sender_name),
            cap_web=os.environ.get("CAP_WEB", defaults.cap_web) or None,
            cap_language=os.environ.get("CAP_LANGUAGE", defaults.cap_language),
            cap_feed_id=os.environ.get("CAP_FEED_ID", defaults.cap_feed_id),
            cap_feed_title=os.environ.get("CAP_FEED_TITLE", defaults.cap_feed_title),
            cap_feed_author=os.environ.get("CAP_FEED_AUTHOR", defaults.cap_feed_author),
            log_level=os.environ.get("LOG_LEVEL", defaults.log_level).upper(),
            log_dir=os.environ.get("LOG_DIR") or None,
            log_max_bytes=_env_int("LOG_MAX_BYTES", defaults.log_max_bytes),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", defaults.log_backup_count),
        )


__all__ = [
    "DEFAULT_AGGREGATE_LEVELS",
    "DEFAULT_STATE_SEVERITY",
    "ServerSettings",
    "load_environment",
    "load_state_severity",
]
