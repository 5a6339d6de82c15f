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

"""
Database connectivity monitor with bounded reconnection.

State machine:
    CONNECTED --(driver disconnect)--> RECONNECTING (attempt 1)
    RECONNECTING(n) --(probe fails, n < max)--> RECONNECTING(n + 1) after a fixed delay
    RECONNECTING(n) --(probe succeeds)--> CONNECTED (attempt counter reset)
    RECONNECTING(max) --(probe fails)--> FATAL -> process exit with status 1

Every failure is retried the same way; errors are not classified.

Usage:
    from app_core.connection_monitor import ConnectionMonitor, engine_probe

    monitor = ConnectionMonitor(engine_probe(engine), max_attempts=5, delay=30)
    monitor.attach(engine)
    monitor.verify_startup()
"""

import logging
import os
import threading
from enum import Enum
from typing import Any, Callable, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    """Connectivity states."""
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FATAL = "fatal"


def engine_probe(engine: Engine) -> Callable[[], None]:
    """Return a probe that raises unless ``SELECT 1`` succeeds on ``engine``."""

    def probe() -> None:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    return probe


def exit_with_status(status: int) -> None:
    """Flush and close log handlers, then terminate the process."""

    logger.info("Exiting with status %s", status)
    logging.shutdown()
    os._exit(status)


class ConnectionMonitor:
    """
    Supervise the database connection.

    A single instance exists per process. Reconnection attempts run on a chain
    of ``threading.Timer`` callbacks, one at a time, so the state is only
    mutated by that chain and by the driver error hook that starts it.
    """

    def __init__(
        self,
        probe: Callable[[], None],
        max_attempts: int = 5,
        delay: float = 30.0,
        exit_process: Callable[[int], None] = exit_with_status,
        timer_factory: Callable[..., Any] = threading.Timer,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            probe: Callable raising on connection failure
            max_attempts: Reconnection attempts before giving up
            delay: Seconds between attempts
            exit_process: Called with the exit status when giving up
            timer_factory: ``threading.Timer``-compatible factory
        """
        self.probe = probe
        self.max_attempts = max(1, int(max_attempts))
        self.delay = delay
        self.exit_process = exit_process
        self.timer_factory = timer_factory
        self.logger = logger or logging.getLogger(__name__)

        self.status = ConnectionStatus.CONNECTED
        self.attempts = 0
        self._lock = threading.Lock()

    def attach(self, engine: Engine) -> None:
        """Start reconnection whenever the driver reports a disconnect."""

        event.listen(engine, "handle_error", self._handle_engine_error)

    def _handle_engine_error(self, context) -> None:
        if context.is_disconnect:
            self.on_driver_error(context.original_exception)

    def verify_startup(self) -> bool:
        """Check the database once; failure at startup is fatal."""

        try:
            self.probe()
        except Exception as exc:
            self.logger.error("DB Connection error: %s", exc)
            self.logger.error("Fatal error: Application shutting down")
            self._give_up()
            return False

        self.logger.info("Connected to database")
        return True

    def on_driver_error(self, exc: BaseException) -> None:
        with self._lock:
            if self.status is not ConnectionStatus.CONNECTED:
                # Already reconnecting (or exiting); the running chain handles it.
                return
            self.status = ConnectionStatus.RECONNECTING
            self.attempts = 1

        self.logger.error("Database connection error: %s", exc)
        self.logger.info("Attempting to reconnect at intervals")
        self._attempt()

    def _attempt(self) -> None:
        try:
            self.probe()
        except Exception as exc:
            self._on_attempt_failed(exc)
            return

        with self._lock:
            self.status = ConnectionStatus.CONNECTED
            self.attempts = 0
        self.logger.info("Database connection re-established")

    def _on_attempt_failed(self, exc: BaseException) -> None:
        with self._lock:
            attempt = self.attempts
            exhausted = attempt >= self.max_attempts
            if not exhausted:
                self.attempts += 1

        if exhausted:
            self.logger.error("Database reconnection failed: %s", exc)
            self.logger.error("Maximum reconnection attempts reached, exiting")
            self._give_up()
            return

        self.logger.error(
            "Database reconnection failed (attempt %d/%d): %s. Next attempt in %ss",
            attempt,
            self.max_attempts,
            exc,
            self.delay,
        )
        timer = self.timer_factory(self.delay, self._attempt)
        timer.daemon = True
        timer.start()

    def _give_up(self) -> None:
        with self._lock:
            self.status = ConnectionStatus.FATAL
        self.exit_process(1)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {"status": self.status.value, "attempts": self.attempts}


__all__ = [
    "ConnectionMonitor",
    "ConnectionStatus",
    "engine_probe",
    "exit_with_status",
]
