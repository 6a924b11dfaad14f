"""
Trip model for group travel management.
"""
from sqlalchemy import Column, String, Date, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from tripledger.db.base import BaseModel


class Trip(BaseModel):
    """Trip model representing a group travel event."""
    __tablename__ = "trips"

    group_id = Column(Integer, ForeignKey("travel_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)

    # Relationships
    group = relationship("Group", back_populates="trips")
    days = relationship("TripDay", back_populates="trip", cascade="all, delete", order_by="TripDay.day_number")
    events = relationship("Event", back_populates="trip", cascade="all, delete")
    expenses = relationship("Expense", back_populates="trip", cascade="all, delete")


class TripDay(BaseModel):
    """One calendar day of a trip, numbered from 1."""
    __tablename__ = "trip_days"
    __table_args__ = (
        UniqueConstraint("trip_id", "day_number", name="uq_trip_days_trip_day_number"),
    )

    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    day_number = Column(Integer, nullable=False)

    # Relationships
    trip = relationship("Trip", back_populates="days")
    events = relationship("Event", back_populates="day", cascade="all, delete")
    expenses = relationship("Expense", back_populates="day", cascade="all, delete")


class Event(BaseModel):
    """Itinerary entry anchored to a trip day."""
    __tablename__ = "events"

    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    day_id = Column(Integer, ForeignKey("trip_days.id", ondelete="CASCADE"), nullable=True, index=True)
    title = Column(String(200), nullable=False)

    # Relationships
    trip = relationship("Trip", back_populates="events")
    day = relationship("TripDay", back_populates="events")
    expenses = relationship("Expense", back_populates="event")
