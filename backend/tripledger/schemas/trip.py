"""
Pydantic schemas for Trip entity.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime


class TripBase(BaseModel):
    """Base trip schema."""
    name: str = Field(min_length=1, max_length=200)
    destination: Optional[str] = Field(default=None, max_length=200)
    start_date: date
    end_date: date


class TripCreate(TripBase):
    """Schema for trip creation."""
    pass


class TripUpdate(BaseModel):
    """
    Schema for trip update.

    Changing either date regenerates every trip day, deleting the events and
    expenses attached to the old days. When such content exists the update
    is refused unless ``confirm_schedule_reset`` is true.
    """
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    destination: Optional[str] = Field(default=None, max_length=200)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    confirm_schedule_reset: bool = False


class TripDayResponse(BaseModel):
    """Schema for a trip day."""
    id: int
    trip_id: int
    date: date
    day_number: int

    class Config:
        from_attributes = True


class TripResponse(TripBase):
    """Schema for trip response."""
    id: int
    group_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TripDetailResponse(TripResponse):
    """Schema for detailed trip response with its days."""
    days: List[TripDayResponse] = []


class ScheduleImpactResponse(BaseModel):
    """What regenerating a trip's days deletes."""
    days: int
    events: int
    expenses: int
    has_content: bool
