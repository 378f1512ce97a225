"""
Trip service: trips, their calendar days and events.
"""
import logging
from datetime import timedelta
from typing import List
from sqlalchemy.orm import Session, selectinload
from planner.core.errors import NotFoundError
from planner.models.trip import Trip, TripDay, Event
from planner.schemas.trip import EventCreate, TripCreate

logger = logging.getLogger(__name__)


def get_trip(db: Session, group_id: int, trip_id: int) -> Trip:
    """Fetch a trip of the group, or raise NotFoundError."""
    trip = db.query(Trip).options(selectinload(Trip.days)).filter(
        Trip.id == trip_id,
        Trip.group_id == group_id
    ).first()
    if not trip:
        raise NotFoundError("Trip", trip_id)
    return trip


def list_trips(db: Session, group_id: int) -> List[Trip]:
    return db.query(Trip).filter(Trip.group_id == group_id).order_by(
        Trip.start_date.desc(), Trip.id.desc()
    ).all()


def create_trip(db: Session, group_id: int, data: TripCreate) -> Trip:
    """Create a trip with one day per calendar date, both ends included."""
    trip = Trip(
        group_id=group_id,
        name=data.name,
        destination=data.destination,
        start_date=data.start_date,
        end_date=data.end_date
    )
    current = data.start_date
    while current <= data.end_date:
        trip.days.append(TripDay(date=current))
        current += timedelta(days=1)

    db.add(trip)
    db.commit()
    logger.info("Created trip %s with %d day(s) in group %s", trip.id, len(trip.days), group_id)
    return get_trip(db, group_id, trip.id)


def delete_trip(db: Session, group_id: int, trip_id: int) -> None:
    trip = get_trip(db, group_id, trip_id)
    db.delete(trip)
    db.commit()
    logger.info("Deleted trip %s", trip_id)


def create_event(db: Session, group_id: int, trip_id: int, day_id: int, data: EventCreate) -> Event:
    get_trip(db, group_id, trip_id)
    day = db.query(TripDay).filter(TripDay.id == day_id, TripDay.trip_id == trip_id).first()
    if not day:
        raise NotFoundError("Trip day", day_id)

    event = Event(
        day_id=day.id,
        title=data.title,
        description=data.description,
        start_time=data.start_time,
        end_time=data.end_time
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event
