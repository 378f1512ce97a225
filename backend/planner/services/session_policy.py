"""
Device session lifespan policy.

Maps each session type to its absolute and idle windows, and answers
validity and expiry questions about a stored session.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import enum
from planner.core.errors import ValidationError
from planner.core.utils import utcnow


class SessionType(str, enum.Enum):
    TEMPORARY = "temporary"
    REMEMBER_DEVICE = "remember_device"
    LONG_TERM = "long_term"


@dataclass(frozen=True)
class SessionLifespan:
    max_age: timedelta
    max_idle: timedelta
    description: str


SESSION_LIFESPANS = {
    SessionType.TEMPORARY: SessionLifespan(
        max_age=timedelta(hours=24),
        max_idle=timedelta(hours=4),
        description="Short-term session for quick access"
    ),
    SessionType.REMEMBER_DEVICE: SessionLifespan(
        max_age=timedelta(days=90),
        max_idle=timedelta(days=21),
        description="Standard device session with auto-login"
    ),
    SessionType.LONG_TERM: SessionLifespan(
        max_age=timedelta(days=180),
        max_idle=timedelta(days=60),
        description="Extended session for trusted devices"
    ),
}

# Used when a stored session has no max_idle_time
DEFAULT_MAX_IDLE_SECONDS = int(SESSION_LIFESPANS[SessionType.REMEMBER_DEVICE].max_idle.total_seconds())

EXPIRING_SOON_DAYS = 7


@dataclass(frozen=True)
class CleanupPolicy:
    grace_period: timedelta = timedelta(days=7)
    max_inactive_age: timedelta = timedelta(days=90)
    max_sessions_per_device: int = 5
    orphaned_device_age: timedelta = timedelta(days=30)
    interval: timedelta = timedelta(hours=24)


CLEANUP_CONFIG = CleanupPolicy()


@dataclass(frozen=True)
class SessionWindow:
    expires_at: datetime
    max_idle_time: int  # seconds
    last_used: datetime


@dataclass(frozen=True)
class SessionExpiryInfo:
    is_expiring_soon: bool
    days_until_expiry: int
    time_until_idle_expiry: int  # seconds
    session_type_name: str


def parse_session_type(value) -> SessionType:
    """Coerce a stored or submitted session type, rejecting unknown names."""
    try:
        return SessionType(value)
    except ValueError:
        raise ValidationError(f"Unknown session type '{value}'", field="session_type")


def calculate_session_expiry(session_type, now: Optional[datetime] = None):
    """Return (expires_at, max_idle_time in seconds) for a session type."""
    lifespan = SESSION_LIFESPANS[parse_session_type(session_type)]
    now = now or utcnow()
    return now + lifespan.max_age, int(lifespan.max_idle.total_seconds())


def extend_session_lifespan(session_type, now: Optional[datetime] = None) -> SessionWindow:
    """Restart a session's windows from ``now`` (called on login and auto-login)."""
    now = now or utcnow()
    expires_at, max_idle_time = calculate_session_expiry(session_type, now)
    return SessionWindow(expires_at=expires_at, max_idle_time=max_idle_time, last_used=now)


def _max_idle(session) -> timedelta:
    seconds = session.max_idle_time if session.max_idle_time is not None else DEFAULT_MAX_IDLE_SECONDS
    return timedelta(seconds=seconds)


def is_session_idle(session, now: Optional[datetime] = None) -> bool:
    """True when unused for longer than max_idle_time."""
    now = now or utcnow()
    return now - session.last_used >= _max_idle(session)


def is_session_expired(session, now: Optional[datetime] = None) -> bool:
    """True when past the absolute expiry or idle longer than max_idle_time."""
    now = now or utcnow()
    return now >= session.expires_at or is_session_idle(session, now)


def is_session_valid(session, now: Optional[datetime] = None) -> bool:
    return bool(session.is_active) and not is_session_expired(session, now)


def get_session_expiry_info(session, now: Optional[datetime] = None) -> SessionExpiryInfo:
    """Expiry details for display."""
    now = now or utcnow()
    time_until_expiry = session.expires_at - now
    idle_left = _max_idle(session) - (now - session.last_used)

    days_until_expiry = max(0, time_until_expiry.days)
    try:
        lifespan = SESSION_LIFESPANS[SessionType(session.session_type or SessionType.REMEMBER_DEVICE)]
        type_name = lifespan.description
    except ValueError:
        type_name = "Unknown session type"

    return SessionExpiryInfo(
        is_expiring_soon=days_until_expiry <= EXPIRING_SOON_DAYS,
        days_until_expiry=days_until_expiry,
        time_until_idle_expiry=max(0, int(idle_left.total_seconds())),
        session_type_name=type_name
    )


def get_default_session_type(remember_device: Optional[bool] = None, trusted_device: bool = False) -> SessionType:
    """Pick a session type from the login preferences."""
    if trusted_device:
        return SessionType.LONG_TERM
    if remember_device is not False:
        return SessionType.REMEMBER_DEVICE
    return SessionType.TEMPORARY


def should_run_cleanup(last_cleanup: Optional[datetime], now: Optional[datetime] = None,
                       policy: CleanupPolicy = CLEANUP_CONFIG) -> bool:
    if last_cleanup is None:
        return True
    now = now or utcnow()
    return now - last_cleanup >= policy.interval
