"""
Pydantic schemas for Trip entity.
"""
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from datetime import date, datetime, time


class TripCreate(BaseModel):
    """Schema for trip creation."""
    name: str = Field(..., min_length=1, max_length=200)
    destination: Optional[str] = Field(None, max_length=255)
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class TripResponse(BaseModel):
    """Schema for trip response."""
    id: int
    group_id: int
    name: str
    destination: Optional[str] = None
    start_date: date
    end_date: date
    created_at: datetime

    class Config:
        from_attributes = True


class TripDayResponse(BaseModel):
    id: int
    date: date

    class Config:
        from_attributes = True


class TripDetailResponse(TripResponse):
    """Schema for detailed trip response with its days."""
    days: List[TripDayResponse] = []


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None


class EventResponse(BaseModel):
    id: int
    day_id: int
    title: str
    description: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    class Config:
        from_attributes = True
