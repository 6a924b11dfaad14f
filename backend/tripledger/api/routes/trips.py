"""
Trip management routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from tripledger.db.session import get_db
from tripledger.schemas.trip import (
    ScheduleImpactResponse,
    TripCreate,
    TripDayResponse,
    TripDetailResponse,
    TripResponse,
    TripUpdate,
)
from tripledger.api.dependencies import MemberContext, get_current_member
from tripledger.services import trip_service

router = APIRouter(prefix="/trips", tags=["trips"])


def _detail(trip) -> TripDetailResponse:
    return TripDetailResponse(
        id=trip.id,
        group_id=trip.group_id,
        name=trip.name,
        destination=trip.destination,
        start_date=trip.start_date,
        end_date=trip.end_date,
        created_at=trip.created_at,
        updated_at=trip.updated_at,
        days=[TripDayResponse.model_validate(day) for day in trip.days],
    )


@router.post("", response_model=TripDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    trip_data: TripCreate,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Create a new trip and its days."""
    trip = trip_service.create_trip(db, current_member.group_id, trip_data)
    return _detail(trip)


@router.get("", response_model=List[TripResponse])
async def list_trips(
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """List all trips of the current group."""
    return trip_service.list_trips(db, current_member.group_id)


@router.get("/{trip_id}", response_model=TripDetailResponse)
async def get_trip(
    trip_id: int,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Get trip details with days."""
    trip = trip_service.get_trip(db, current_member.group_id, trip_id)
    return _detail(trip)


@router.put("/{trip_id}", response_model=TripDetailResponse)
async def update_trip(
    trip_id: int,
    trip_data: TripUpdate,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Update a trip. Date changes regenerate its days."""
    trip = trip_service.update_trip(db, current_member.group_id, trip_id, trip_data)
    return _detail(trip)


@router.delete("/{trip_id}")
async def delete_trip(
    trip_id: int,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Delete a trip with everything attached to it."""
    trip_service.delete_trip(db, current_member.group_id, trip_id)
    return {"message": "Trip deleted successfully"}


@router.get("/{trip_id}/days", response_model=List[TripDayResponse])
async def get_trip_days(
    trip_id: int,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Get the days of a trip in order."""
    return trip_service.list_trip_days(db, current_member.group_id, trip_id)


@router.get("/{trip_id}/schedule-impact", response_model=ScheduleImpactResponse)
async def get_schedule_impact(
    trip_id: int,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """What changing the trip dates would delete."""
    impact = trip_service.preview_schedule_change(db, current_member.group_id, trip_id)
    return ScheduleImpactResponse(
        days=impact.days,
        events=impact.events,
        expenses=impact.expenses,
        has_content=impact.has_content,
    )
