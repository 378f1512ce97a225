"""
Trip, trip day and calendar event models.
"""
from sqlalchemy import Column, String, Date, Time, Text, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from planner.db.base import BaseModel


class Trip(BaseModel):
    """Trip model representing a group travel event."""
    __tablename__ = "trips"

    group_id = Column(Integer, ForeignKey("travel_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    destination = Column(String(255), nullable=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)

    # Relationships
    group = relationship("TravelGroup", back_populates="trips")
    days = relationship("TripDay", back_populates="trip", cascade="all, delete-orphan", order_by="TripDay.date")
    expenses = relationship("Expense", back_populates="trip", cascade="all, delete-orphan")


class TripDay(BaseModel):
    """One calendar day of a trip."""
    __tablename__ = "trip_days"

    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)

    # Relationships
    trip = relationship("Trip", back_populates="days")
    events = relationship("Event", back_populates="day", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('trip_id', 'date', name='uq_trip_day_date'),
    )


class Event(BaseModel):
    """Calendar event scheduled on a trip day."""
    __tablename__ = "events"

    day_id = Column(Integer, ForeignKey("trip_days.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    # Relationships
    day = relationship("TripDay", back_populates="events")
