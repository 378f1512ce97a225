"""
Tests for device session lifespan rules.
"""
from datetime import datetime, timedelta
from types import SimpleNamespace
import pytest
from planner.core.errors import ValidationError
from planner.services import session_policy
from planner.services.session_policy import SessionType

NOW = datetime(2025, 6, 1, 12, 0, 0)


def stored(expires_in, idle_for, max_idle_time=None, session_type="remember_device", is_active=True):
    return SimpleNamespace(
        expires_at=NOW + expires_in,
        last_used=NOW - idle_for,
        max_idle_time=max_idle_time,
        session_type=session_type,
        is_active=is_active
    )


@pytest.mark.parametrize("session_type,max_age,max_idle", [
    ("temporary", timedelta(hours=24), timedelta(hours=4)),
    ("remember_device", timedelta(days=90), timedelta(days=21)),
    ("long_term", timedelta(days=180), timedelta(days=60)),
])
def test_extend_session_lifespan_uses_own_window(session_type, max_age, max_idle):
    window = session_policy.extend_session_lifespan(session_type, NOW)
    assert window.expires_at == NOW + max_age
    assert window.max_idle_time == int(max_idle.total_seconds())
    assert window.last_used == NOW


def test_unknown_session_type_is_rejected():
    with pytest.raises(ValidationError):
        session_policy.calculate_session_expiry("forever", NOW)


def test_expired_session_is_invalid():
    session = stored(expires_in=timedelta(seconds=-1), idle_for=timedelta(minutes=1), max_idle_time=3600)
    assert session_policy.is_session_expired(session, NOW)
    assert not session_policy.is_session_valid(session, NOW)


def test_idle_session_is_invalid_before_expiry():
    session = stored(expires_in=timedelta(days=30), idle_for=timedelta(hours=5), max_idle_time=4 * 3600)
    assert session_policy.is_session_idle(session, NOW)
    assert not session_policy.is_session_valid(session, NOW)


def test_missing_max_idle_time_falls_back_to_21_days():
    assert session_policy.DEFAULT_MAX_IDLE_SECONDS == 1814400
    fresh = stored(expires_in=timedelta(days=30), idle_for=timedelta(days=20))
    stale = stored(expires_in=timedelta(days=30), idle_for=timedelta(days=22))
    assert session_policy.is_session_valid(fresh, NOW)
    assert not session_policy.is_session_valid(stale, NOW)


def test_inactive_session_is_invalid():
    session = stored(expires_in=timedelta(days=30), idle_for=timedelta(0), max_idle_time=3600, is_active=False)
    assert not session_policy.is_session_valid(session, NOW)


def test_get_session_expiry_info():
    session = stored(expires_in=timedelta(days=5, hours=3), idle_for=timedelta(hours=1), max_idle_time=4 * 3600,
                     session_type="temporary")
    info = session_policy.get_session_expiry_info(session, NOW)
    assert info.is_expiring_soon
    assert info.days_until_expiry == 5
    assert info.time_until_idle_expiry == 3 * 3600
    assert info.session_type_name == "Short-term session for quick access"

    later = stored(expires_in=timedelta(days=60), idle_for=timedelta(0), max_idle_time=3600)
    assert not session_policy.get_session_expiry_info(later, NOW).is_expiring_soon


def test_get_default_session_type():
    assert session_policy.get_default_session_type() == SessionType.REMEMBER_DEVICE
    assert session_policy.get_default_session_type(remember_device=False) == SessionType.TEMPORARY
    assert session_policy.get_default_session_type(remember_device=False, trusted_device=True) == SessionType.LONG_TERM


def test_should_run_cleanup():
    assert session_policy.should_run_cleanup(None, NOW)
    assert not session_policy.should_run_cleanup(NOW - timedelta(hours=23), NOW)
    assert session_policy.should_run_cleanup(NOW - timedelta(hours=24), NOW)
