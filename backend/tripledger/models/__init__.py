"""Models package - Import all models for SQLAlchemy registration."""
from tripledger.models.group import Group, GroupMember, ExternalParticipant
from tripledger.models.trip import Trip, TripDay, Event
from tripledger.models.expense import (
    Expense,
    ExpenseParticipant,
    ExpenseLineItem,
    LineItemParticipant,
    ParticipantItemizedList,
    ParticipantItem,
)

__all__ = [
    "Group",
    "GroupMember",
    "ExternalParticipant",
    "Trip",
    "TripDay",
    "Event",
    "Expense",
    "ExpenseParticipant",
    "ExpenseLineItem",
    "LineItemParticipant",
    "ParticipantItemizedList",
    "ParticipantItem",
]
