"""Shared-password session gate in front of the dashboards."""
from __future__ import annotations

import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from hospital_revenue.config import AppSettings

LOGGER = logging.getLogger(__name__)


class InvalidPasswordError(ValueError):
    """Raised when the supplied password does not match."""


class LoginLockedError(ValueError):
    """Raised once the failed-attempt limit has been reached."""


@dataclass(frozen=True)
class Session:
    token: str
    issued_at: datetime
    expires_at: datetime


def is_session_valid(session: Optional[Session], now: datetime) -> bool:
    """Return True while ``now`` lies inside the session's lifetime."""

    if session is None:
        return False
    return session.issued_at <= now < session.expires_at


class PasswordGate:
    """Checks the shared dashboard password and issues sessions."""

    def __init__(self, settings: AppSettings) -> None:
        self._settings = settings
        self._failed_attempts = 0
        self._locked_until: Optional[datetime] = None

    @property
    def failed_attempts(self) -> int:
        return self._failed_attempts

    def login(self, password: str, now: Optional[datetime] = None) -> Session:
        """Issue a session for the right password.

        Reaching ``max_login_attempts`` failures locks the gate for
        ``lockout_minutes``; the counter starts over once the lock expires.
        """

        now = now or datetime.now(timezone.utc)
        if self._locked_until is not None:
            if now < self._locked_until:
                raise LoginLockedError("Too many failed login attempts")
            LOGGER.info("Login lockout expired")
            self._locked_until = None
            self._failed_attempts = 0
        expected = self._settings.dashboard_password
        if expected is None or not hmac.compare_digest(
            password.encode("utf-8"), expected.get_secret_value().encode("utf-8")
        ):
            self._failed_attempts += 1
            LOGGER.warning("Rejected dashboard login (%s failed)", self._failed_attempts)
            if self._failed_attempts >= self._settings.max_login_attempts:
                self._locked_until = now + timedelta(minutes=self._settings.lockout_minutes)
                LOGGER.warning("Dashboard login locked until %s", self._locked_until.isoformat())
            raise InvalidPasswordError("Invalid password")
        self._failed_attempts = 0
        return Session(
            token=secrets.token_urlsafe(32),
            issued_at=now,
            expires_at=now + timedelta(hours=self._settings.session_duration_hours),
        )


class SessionRegistry:
    """Sessions issued by this process, looked up by token."""

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}

    def add(self, session: Session) -> None:
        self._sessions[session.token] = session

    def get(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        return self._sessions.get(token)

    def validate(self, token: Optional[str], now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        session = self.get(token)
        if session is not None and not is_session_valid(session, now):
            del self._sessions[session.token]
            return False
        return is_session_valid(session, now)


__all__ = [
    "InvalidPasswordError",
    "LoginLockedError",
    "PasswordGate",
    "Session",
    "SessionRegistry",
    "is_session_valid",
]
