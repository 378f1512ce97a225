"""
Trip management routes.
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from planner.api.dependencies import get_group_cache, requires
from planner.core.cache import GroupCache
from planner.core.permissions import Permission
from planner.db.session import get_db
from planner.schemas.trip import (
    TripCreate, TripResponse, TripDetailResponse, EventCreate, EventResponse
)
from planner.services import trip_service
from planner.services.session_service import SessionContext

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("", response_model=TripDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    trip_data: TripCreate,
    context: SessionContext = Depends(requires(Permission.CREATE)),
    cache: GroupCache = Depends(get_group_cache),
    db: Session = Depends(get_db)
):
    """Create a new trip and its days."""
    trip = trip_service.create_trip(db, context.group_id, trip_data)
    cache.invalidate(context.group_id)
    return trip


@router.get("", response_model=List[TripResponse])
async def list_trips(
    context: SessionContext = Depends(requires(Permission.READ)),
    db: Session = Depends(get_db)
):
    """List all trips of the group, latest first."""
    return trip_service.list_trips(db, context.group_id)


@router.get("/{trip_id}", response_model=TripDetailResponse)
async def get_trip(
    trip_id: int,
    context: SessionContext = Depends(requires(Permission.READ)),
    db: Session = Depends(get_db)
):
    """Get trip details."""
    return trip_service.get_trip(db, context.group_id, trip_id)


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(
    trip_id: int,
    context: SessionContext = Depends(requires(Permission.MODIFY)),
    cache: GroupCache = Depends(get_group_cache),
    db: Session = Depends(get_db)
):
    """Delete a trip with its days and expenses."""
    trip_service.delete_trip(db, context.group_id, trip_id)
    cache.invalidate(context.group_id)
    return None


@router.post("/{trip_id}/days/{day_id}/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    trip_id: int,
    day_id: int,
    event_data: EventCreate,
    context: SessionContext = Depends(requires(Permission.CREATE)),
    db: Session = Depends(get_db)
):
    """Schedule an event on a trip day."""
    return trip_service.create_event(db, context.group_id, trip_id, day_id, event_data)
