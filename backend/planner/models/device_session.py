"""
Device registry, device sessions and cleanup bookkeeping.
"""
from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey, Integer, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from planner.db.base import BaseModel
from planner.core.utils import utcnow


class Device(BaseModel):
    """A browser or device identified by an opaque fingerprint."""
    __tablename__ = "devices"

    fingerprint = Column(String(255), unique=True, nullable=False, index=True)
    user_agent = Column(Text, nullable=True)

    # Relationships
    sessions = relationship("DeviceSession", back_populates="device", cascade="all, delete-orphan")


class DeviceSession(BaseModel):
    """Long-lived session allowing auto-login from a known device, one row per device and group."""
    __tablename__ = "device_sessions"

    device_fingerprint = Column(String(255), ForeignKey("devices.fingerprint", ondelete="CASCADE"), nullable=False, index=True)
    group_id = Column(Integer, ForeignKey("travel_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    current_traveler_name = Column(String(255), nullable=False)
    available_travelers = Column(JSON, nullable=False, default=list)
    session_type = Column(String(20), nullable=False, default="remember_device")
    expires_at = Column(DateTime, nullable=False, index=True)
    max_idle_time = Column(Integer, nullable=True)  # seconds
    user_agent = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_used = Column(DateTime, nullable=False, default=utcnow, index=True)

    # Relationships
    device = relationship("Device", back_populates="sessions")
    group = relationship("TravelGroup", back_populates="device_sessions")

    __table_args__ = (
        UniqueConstraint('device_fingerprint', 'group_id', name='uq_device_group_session'),
    )


class CleanupLog(BaseModel):
    """Outcome of one run of the scheduled cleanup job."""
    __tablename__ = "cleanup_logs"

    table_name = Column(String(100), nullable=False)
    deleted_count = Column(Integer, nullable=False, default=0)
    details = Column(JSON, nullable=True)
    cleaned_at = Column(DateTime, nullable=False, default=utcnow)
