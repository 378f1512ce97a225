"""
Scheduled cleanup of device sessions.

Runs out of band (see ``backend/cleanup_device_sessions.py``), never inside
request handling. Each step is independent: a failing step is recorded in
the stats and the remaining steps still run.
"""
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from planner.core.utils import utcnow
from planner.models.device_session import CleanupLog, Device, DeviceSession
from planner.services.session_policy import CLEANUP_CONFIG, CleanupPolicy, is_session_idle

logger = logging.getLogger(__name__)


@dataclass
class CleanupStats:
    expired_sessions: int = 0
    idle_sessions: int = 0
    inactive_sessions: int = 0
    limit_enforced: int = 0
    orphaned_devices: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def total_cleaned(self) -> int:
        return self.expired_sessions + self.idle_sessions + self.inactive_sessions + self.limit_enforced


def delete_expired_sessions(db: Session, now: datetime, policy: CleanupPolicy = CLEANUP_CONFIG) -> int:
    """Delete sessions whose expiry plus the grace period has passed."""
    count = db.query(DeviceSession).filter(
        DeviceSession.expires_at < now - policy.grace_period
    ).delete(synchronize_session=False)
    db.commit()
    return count


def delete_idle_sessions(db: Session, now: datetime) -> int:
    """Delete active sessions idle for longer than their max_idle_time."""
    sessions = db.query(DeviceSession).filter(DeviceSession.is_active.is_(True)).all()
    idle_ids = [s.id for s in sessions if is_session_idle(s, now)]
    if not idle_ids:
        return 0
    count = db.query(DeviceSession).filter(
        DeviceSession.id.in_(idle_ids)
    ).delete(synchronize_session=False)
    db.commit()
    return count


def delete_old_inactive_sessions(db: Session, now: datetime, policy: CleanupPolicy = CLEANUP_CONFIG) -> int:
    count = db.query(DeviceSession).filter(
        DeviceSession.is_active.is_(False),
        DeviceSession.last_used < now - policy.max_inactive_age
    ).delete(synchronize_session=False)
    db.commit()
    return count


def enforce_device_session_limit(
    db: Session,
    max_per_device: int = CLEANUP_CONFIG.max_sessions_per_device,
    device_fingerprint: Optional[str] = None
) -> int:
    """
    Keep the ``max_per_device`` most recently used active sessions of every
    device and delete the rest. Inactive rows are left to the age rule.
    """
    query = db.query(DeviceSession).filter(DeviceSession.is_active.is_(True))
    if device_fingerprint is not None:
        query = query.filter(DeviceSession.device_fingerprint == device_fingerprint)

    by_device = defaultdict(list)
    for device_session in query.all():
        by_device[device_session.device_fingerprint].append(device_session)

    evict_ids = []
    for sessions in by_device.values():
        sessions.sort(key=lambda s: (s.last_used, s.id), reverse=True)
        evict_ids.extend(s.id for s in sessions[max_per_device:])

    if not evict_ids:
        return 0
    count = db.query(DeviceSession).filter(
        DeviceSession.id.in_(evict_ids)
    ).delete(synchronize_session=False)
    db.commit()
    return count


def delete_orphaned_devices(db: Session, now: datetime, policy: CleanupPolicy = CLEANUP_CONFIG) -> int:
    """Delete devices older than the orphan age that have no active session."""
    active = select(DeviceSession.device_fingerprint).where(DeviceSession.is_active.is_(True))
    orphans = [fp for (fp,) in db.query(Device.fingerprint).filter(
        Device.created_at < now - policy.orphaned_device_age,
        ~Device.fingerprint.in_(active)
    ).all()]
    if not orphans:
        return 0

    db.query(DeviceSession).filter(
        DeviceSession.device_fingerprint.in_(orphans)
    ).delete(synchronize_session=False)
    count = db.query(Device).filter(Device.fingerprint.in_(orphans)).delete(synchronize_session=False)
    db.commit()
    return count


def cleanup_device_sessions(
    db: Session,
    now: Optional[datetime] = None,
    policy: CleanupPolicy = CLEANUP_CONFIG
) -> CleanupStats:
    """Run every cleanup step and record the outcome in the cleanup log."""
    now = now or utcnow()
    started = time.monotonic()
    stats = CleanupStats()
    logger.info("Starting device session cleanup")

    steps = [
        ("expired_sessions", lambda: delete_expired_sessions(db, now, policy)),
        ("idle_sessions", lambda: delete_idle_sessions(db, now)),
        ("inactive_sessions", lambda: delete_old_inactive_sessions(db, now, policy)),
        ("limit_enforced", lambda: enforce_device_session_limit(db, policy.max_sessions_per_device)),
        ("orphaned_devices", lambda: delete_orphaned_devices(db, now, policy)),
    ]
    for name, step in steps:
        try:
            count = step()
            setattr(stats, name, count)
            logger.info("Cleanup step %s removed %d row(s)", name, count)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Cleanup step %s failed", name, exc_info=True)
            stats.errors.append(f"{name}: {exc}")

    duration_ms = int((time.monotonic() - started) * 1000)
    logger.info("Cleanup completed in %dms, %d session(s) removed", duration_ms, stats.total_cleaned)

    try:
        details = asdict(stats)
        details["duration_ms"] = duration_ms
        db.add(CleanupLog(
            table_name="device_sessions",
            deleted_count=stats.total_cleaned,
            details=details,
            cleaned_at=now
        ))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not write cleanup log", exc_info=True)

    return stats


def last_cleanup_time(db: Session) -> Optional[datetime]:
    entry = db.query(CleanupLog).filter(
        CleanupLog.table_name == "device_sessions"
    ).order_by(CleanupLog.cleaned_at.desc()).first()
    return entry.cleaned_at if entry else None
