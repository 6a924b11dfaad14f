"""
Trip day generation.

Trip dates are calendar dates, not instants. Days are produced by stepping
year/month/day components directly, so no timezone or daylight-saving shift
can move a day across midnight.
"""
import calendar
import logging
from datetime import date
from typing import List, Union

from pydantic import BaseModel
from sqlalchemy.orm import Session

from tripledger.core.exceptions import InvalidRangeError, ValidationError
from tripledger.models.expense import Expense
from tripledger.models.trip import Event, Trip, TripDay

logger = logging.getLogger(__name__)

DateLike = Union[str, date]


class TripDaySpec(BaseModel):
    """A day to be created for a trip."""
    date: date
    day_number: int


class ScheduleImpact(BaseModel):
    """Content removed (or that would be removed) by regenerating a trip's days."""
    days: int = 0
    events: int = 0
    expenses: int = 0

    @property
    def has_content(self) -> bool:
        return self.events > 0 or self.expenses > 0


def parse_calendar_date(value: DateLike) -> date:
    """Read a ``YYYY-MM-DD`` string (or pass a date through) by its components."""
    if isinstance(value, date):
        return date(value.year, value.month, value.day)
    parts = str(value).strip()[:10].split("-")
    if len(parts) != 3:
        raise ValidationError(f"Invalid calendar date: {value!r}")
    try:
        year, month, day = (int(part) for part in parts)
        return date(year, month, day)
    except ValueError:
        raise ValidationError(f"Invalid calendar date: {value!r}")


def next_calendar_day(current: date) -> date:
    """The following calendar day, rolling month and year by hand."""
    year, month, day = current.year, current.month, current.day
    if day < calendar.monthrange(year, month)[1]:
        return date(year, month, day + 1)
    if month < 12:
        return date(year, month + 1, 1)
    return date(year + 1, 1, 1)


def generate_trip_days(start: DateLike, end: DateLike) -> List[TripDaySpec]:
    """One day per calendar date from ``start`` to ``end`` inclusive, numbered from 1."""
    start_date = parse_calendar_date(start)
    end_date = parse_calendar_date(end)
    if end_date < start_date:
        raise InvalidRangeError(
            f"End date {end_date.isoformat()} is before start date {start_date.isoformat()}"
        )

    days = []
    current = start_date
    day_number = 1
    while True:
        days.append(TripDaySpec(date=current, day_number=day_number))
        if current == end_date:
            return days
        current = next_calendar_day(current)
        day_number += 1


def schedule_change_impact(db: Session, trip: Trip) -> ScheduleImpact:
    """Count what regenerating ``trip``'s days would delete."""
    day_ids = [day_id for (day_id,) in db.query(TripDay.id).filter(TripDay.trip_id == trip.id).all()]
    if not day_ids:
        return ScheduleImpact()
    return ScheduleImpact(
        days=len(day_ids),
        events=db.query(Event).filter(Event.day_id.in_(day_ids)).count(),
        expenses=db.query(Expense).filter(Expense.day_id.in_(day_ids)).count(),
    )


def regenerate_trip_schedule(db: Session, trip: Trip, start: DateLike, end: DateLike) -> ScheduleImpact:
    """
    Replace every day of ``trip`` with a fresh range.

    Deleting a day deletes the events and expenses anchored to it. Callers
    must have warned the user (see ``schedule_change_impact``). Does not
    commit.
    """
    new_days = generate_trip_days(start, end)
    impact = schedule_change_impact(db, trip)

    for day in db.query(TripDay).filter(TripDay.trip_id == trip.id).all():
        db.delete(day)
    db.flush()

    trip.start_date = new_days[0].date
    trip.end_date = new_days[-1].date
    for spec in new_days:
        db.add(TripDay(trip_id=trip.id, date=spec.date, day_number=spec.day_number))
    db.flush()
    db.expire(trip, ["days", "events", "expenses"])

    if impact.has_content:
        logger.warning(
            "Regenerated schedule for trip %s: removed %s days, %s events, %s expenses",
            trip.id, impact.days, impact.events, impact.expenses
        )
    else:
        logger.info("Regenerated schedule for trip %s with %s days", trip.id, len(new_days))
    return impact
