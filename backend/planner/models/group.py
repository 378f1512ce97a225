"""
Travel group and group member models.
"""
from sqlalchemy import Column, String, ForeignKey, Integer, JSON, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import relationship
from planner.db.base import BaseModel
from planner.core.permissions import MemberRole


def default_permissions():
    return {"read": True, "create": False, "modify": False}


class TravelGroup(BaseModel):
    """A group of travelers sharing trips and expenses."""
    __tablename__ = "travel_groups"

    name = Column(String(200), nullable=False)
    access_code_hash = Column(String(255), nullable=False)

    # Relationships
    members = relationship("GroupMember", back_populates="group", cascade="all, delete-orphan")
    trips = relationship("Trip", back_populates="group", cascade="all, delete-orphan")
    external_participants = relationship("ExternalParticipant", back_populates="group", cascade="all, delete-orphan")
    device_sessions = relationship("DeviceSession", back_populates="group", cascade="all, delete-orphan")


class GroupMember(BaseModel):
    """A named traveler within a group."""
    __tablename__ = "group_members"

    group_id = Column(Integer, ForeignKey("travel_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    traveler_name = Column(String(255), nullable=False)
    role = Column(
        SQLEnum(MemberRole, values_callable=lambda e: [m.value for m in e], name="member_role"),
        default=MemberRole.PARTY_MEMBER,
        nullable=False
    )
    permissions = Column(JSON, nullable=False, default=default_permissions)

    # Relationships
    group = relationship("TravelGroup", back_populates="members")
    expenses_owned = relationship("Expense", back_populates="owner", passive_deletes="all")

    __table_args__ = (
        UniqueConstraint('group_id', 'traveler_name', name='uq_group_traveler_name'),
    )
