"""
Tests for the scheduled device session cleanup.
"""
from datetime import timedelta
from planner.core.utils import utcnow
from planner.models.device_session import CleanupLog, Device, DeviceSession
from planner.schemas.group import GroupCreate
from planner.services import cleanup_service, group_service

NOW = utcnow()


def make_groups(db, count):
    groups = []
    for i in range(count):
        group, _ = group_service.create_group(db, GroupCreate(
            name=f"Group {i}", access_code="code-1234", traveler_name="Alice"
        ))
        groups.append(group)
    return groups


def add_session(db, fingerprint, group_id, last_used, expires_at=None, is_active=True, max_idle_time=None):
    if db.query(Device).filter(Device.fingerprint == fingerprint).first() is None:
        db.add(Device(fingerprint=fingerprint, created_at=NOW - timedelta(days=60)))
    device_session = DeviceSession(
        device_fingerprint=fingerprint,
        group_id=group_id,
        current_traveler_name="Alice",
        available_travelers=["Alice"],
        expires_at=expires_at or NOW + timedelta(days=60),
        max_idle_time=max_idle_time if max_idle_time is not None else 90 * 24 * 3600,
        last_used=last_used,
        is_active=is_active
    )
    db.add(device_session)
    db.commit()
    return device_session


def test_enforce_device_session_limit_keeps_most_recent(db):
    groups = make_groups(db, 6)
    for i, group in enumerate(groups):
        add_session(db, "fp-1", group.id, last_used=NOW - timedelta(hours=i))

    evicted = cleanup_service.enforce_device_session_limit(db)
    assert evicted == 1

    remaining = db.query(DeviceSession).filter(DeviceSession.device_fingerprint == "fp-1").all()
    assert len(remaining) == 5
    assert groups[5].id not in {s.group_id for s in remaining}


def test_enforce_device_session_limit_ignores_inactive_sessions(db):
    groups = make_groups(db, 6)
    live = add_session(db, "fp-1", groups[0].id, last_used=NOW - timedelta(days=10))
    for i, group in enumerate(groups[1:]):
        add_session(db, "fp-1", group.id, last_used=NOW - timedelta(hours=i), is_active=False)

    assert cleanup_service.enforce_device_session_limit(db) == 0

    remaining = db.query(DeviceSession).filter(DeviceSession.device_fingerprint == "fp-1").all()
    assert len(remaining) == 6
    assert live.id in {s.id for s in remaining if s.is_active}


def test_delete_expired_sessions_honours_grace_period(db):
    old, recent = make_groups(db, 2)
    add_session(db, "fp-1", old.id, last_used=NOW - timedelta(days=20), expires_at=NOW - timedelta(days=8))
    add_session(db, "fp-2", recent.id, last_used=NOW - timedelta(days=20), expires_at=NOW - timedelta(days=6))

    assert cleanup_service.delete_expired_sessions(db, NOW) == 1
    assert [s.group_id for s in db.query(DeviceSession).all()] == [recent.id]


def test_delete_idle_sessions(db):
    idle, busy = make_groups(db, 2)
    add_session(db, "fp-1", idle.id, last_used=NOW - timedelta(hours=5), max_idle_time=4 * 3600)
    add_session(db, "fp-2", busy.id, last_used=NOW - timedelta(hours=1), max_idle_time=4 * 3600)

    assert cleanup_service.delete_idle_sessions(db, NOW) == 1
    assert [s.group_id for s in db.query(DeviceSession).all()] == [busy.id]


def test_delete_old_inactive_sessions(db):
    old, recent = make_groups(db, 2)
    add_session(db, "fp-1", old.id, last_used=NOW - timedelta(days=91), is_active=False)
    add_session(db, "fp-2", recent.id, last_used=NOW - timedelta(days=10), is_active=False)

    assert cleanup_service.delete_old_inactive_sessions(db, NOW) == 1
    assert [s.group_id for s in db.query(DeviceSession).all()] == [recent.id]


def test_delete_orphaned_devices(db):
    (group,) = make_groups(db, 1)
    add_session(db, "fp-active", group.id, last_used=NOW)
    db.add(Device(fingerprint="fp-orphan", created_at=NOW - timedelta(days=31)))
    db.add(Device(fingerprint="fp-new", created_at=NOW - timedelta(days=1)))
    db.commit()

    assert cleanup_service.delete_orphaned_devices(db, NOW) == 1
    assert {d.fingerprint for d in db.query(Device).all()} == {"fp-active", "fp-new"}


def test_cleanup_device_sessions_writes_log(db):
    groups = make_groups(db, 2)
    add_session(db, "fp-1", groups[0].id, last_used=NOW - timedelta(days=20), expires_at=NOW - timedelta(days=8))
    add_session(db, "fp-2", groups[1].id, last_used=NOW)

    stats = cleanup_service.cleanup_device_sessions(db, NOW)
    assert stats.expired_sessions == 1
    assert stats.orphaned_devices == 1
    assert stats.errors == []

    log = db.query(CleanupLog).one()
    assert log.deleted_count == stats.total_cleaned
    assert log.details["expired_sessions"] == 1
    assert cleanup_service.last_cleanup_time(db) == NOW
