"""
Trip service: trips and their day skeletons.
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from tripledger.core.exceptions import ScheduleChangeConflict
from tripledger.models.trip import Trip, TripDay
from tripledger.schemas.trip import TripCreate, TripUpdate
from tripledger.services.expense_service import get_group_trip
from tripledger.services.trip_day_service import (
    ScheduleImpact,
    generate_trip_days,
    regenerate_trip_schedule,
    schedule_change_impact,
)

logger = logging.getLogger(__name__)


def list_trips(db: Session, group_id: int) -> List[Trip]:
    """Trips of a group, latest start first."""
    return db.query(Trip).filter(
        Trip.group_id == group_id
    ).order_by(Trip.start_date.desc(), Trip.id.desc()).all()


def get_trip(db: Session, group_id: int, trip_id: int) -> Trip:
    return get_group_trip(db, group_id, trip_id)


def list_trip_days(db: Session, group_id: int, trip_id: int) -> List[TripDay]:
    trip = get_group_trip(db, group_id, trip_id)
    return db.query(TripDay).filter(
        TripDay.trip_id == trip.id
    ).order_by(TripDay.day_number).all()


def create_trip(db: Session, group_id: int, data: TripCreate) -> Trip:
    """Create a trip together with one day per date in its range."""
    days = generate_trip_days(data.start_date, data.end_date)

    try:
        trip = Trip(
            group_id=group_id,
            name=data.name,
            destination=data.destination,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        db.add(trip)
        db.flush()
        for spec in days:
            db.add(TripDay(trip_id=trip.id, date=spec.date, day_number=spec.day_number))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(trip)
    logger.info("Created trip %s with %s days", trip.id, len(days))
    return trip


def preview_schedule_change(db: Session, group_id: int, trip_id: int) -> ScheduleImpact:
    """What a date change on ``trip_id`` would delete."""
    trip = get_group_trip(db, group_id, trip_id)
    return schedule_change_impact(db, trip)


def update_trip(db: Session, group_id: int, trip_id: int, data: TripUpdate) -> Trip:
    """
    Update a trip.

    A change to either date regenerates the whole day set. If that would
    delete events or expenses and the caller has not confirmed, nothing is
    changed and ``ScheduleChangeConflict`` is raised with the impact.
    """
    trip = get_group_trip(db, group_id, trip_id)
    start = data.start_date or trip.start_date
    end = data.end_date or trip.end_date
    dates_changed = start != trip.start_date or end != trip.end_date

    if dates_changed:
        # Validate the new range before touching anything
        generate_trip_days(start, end)
        impact = schedule_change_impact(db, trip)
        if impact.has_content and not data.confirm_schedule_reset:
            raise ScheduleChangeConflict(
                "Changing the trip dates deletes events and expenses attached to its days",
                details=impact,
            )

    try:
        if data.name is not None:
            trip.name = data.name
        if "destination" in data.model_fields_set:
            trip.destination = data.destination
        if dates_changed:
            regenerate_trip_schedule(db, trip, start, end)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(trip)
    return trip


def delete_trip(db: Session, group_id: int, trip_id: int) -> None:
    """Delete a trip with its days, events and expenses."""
    trip = get_group_trip(db, group_id, trip_id)
    try:
        db.delete(trip)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted trip %s", trip_id)
