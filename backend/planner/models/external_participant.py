"""
Registry of people who share costs without a login.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from planner.db.base import BaseModel
from planner.core.utils import utcnow


class ExternalParticipant(BaseModel):
    """Named cost sharer scoped to a group, deduplicated by name."""
    __tablename__ = "external_participants"

    group_id = Column(Integer, ForeignKey("travel_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    last_used_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    # Relationships
    group = relationship("TravelGroup", back_populates="external_participants")

    __table_args__ = (
        UniqueConstraint('group_id', 'name', name='uq_group_external_name'),
    )
