"""
Expense model and the split rows hanging off it.

An expense stores exactly one kind of split, chosen by ``split_type``:
flat participant rows, line items with their own participant rows, or
per-participant itemized lists.
"""
from sqlalchemy import Column, String, Numeric, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from tripledger.db.base import BaseModel


class Expense(BaseModel):
    """Expense model representing a single spending event."""
    __tablename__ = "expenses"

    group_id = Column(Integer, ForeignKey("travel_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    day_id = Column(Integer, ForeignKey("trip_days.id", ondelete="CASCADE"), nullable=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="SET NULL"), nullable=True, index=True)
    payer_id = Column(Integer, ForeignKey("group_members.id"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String(100), nullable=True)
    split_type = Column(String(20), nullable=False, default="equal", index=True)

    # Relationships
    trip = relationship("Trip", back_populates="expenses")
    day = relationship("TripDay", back_populates="expenses")
    event = relationship("Event", back_populates="expenses")
    payer = relationship("GroupMember", foreign_keys=[payer_id])
    participants = relationship("ExpenseParticipant", back_populates="expense", cascade="all, delete-orphan")
    line_items = relationship("ExpenseLineItem", back_populates="expense", cascade="all, delete-orphan")
    itemized_lists = relationship("ParticipantItemizedList", back_populates="expense", cascade="all, delete-orphan")


class ExpenseParticipant(BaseModel):
    """Flat split row: one participant's percentage of the whole expense."""
    __tablename__ = "expense_participants"

    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("group_members.id"), nullable=True, index=True)
    external_participant_id = Column(Integer, ForeignKey("external_participants.id", ondelete="SET NULL"), nullable=True, index=True)
    external_name = Column(String(255), nullable=True)
    split_percentage = Column(Numeric(9, 4), nullable=False)
    amount_owed = Column(Numeric(15, 4), nullable=False)

    # Relationships
    expense = relationship("Expense", back_populates="participants")
    participant = relationship("GroupMember")
    external_participant = relationship("ExternalParticipant")


class ExpenseLineItem(BaseModel):
    """Sub-item of an expense with its own percentage split."""
    __tablename__ = "expense_line_items"

    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    category = Column(String(100), nullable=True)

    # Relationships
    expense = relationship("Expense", back_populates="line_items")
    participants = relationship("LineItemParticipant", back_populates="line_item", cascade="all, delete-orphan")


class LineItemParticipant(BaseModel):
    """Split row of a line item."""
    __tablename__ = "line_item_participants"

    line_item_id = Column(Integer, ForeignKey("expense_line_items.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("group_members.id"), nullable=True, index=True)
    external_participant_id = Column(Integer, ForeignKey("external_participants.id", ondelete="SET NULL"), nullable=True, index=True)
    external_name = Column(String(255), nullable=True)
    split_percentage = Column(Numeric(9, 4), nullable=False)
    amount_owed = Column(Numeric(15, 4), nullable=False)

    # Relationships
    line_item = relationship("ExpenseLineItem", back_populates="participants")
    participant = relationship("GroupMember")
    external_participant = relationship("ExternalParticipant")


class ParticipantItemizedList(BaseModel):
    """One participant's shopping list within an itemized expense."""
    __tablename__ = "participant_itemized_lists"
    __table_args__ = (
        UniqueConstraint("expense_id", "participant_id", name="uq_itemized_lists_expense_participant"),
        UniqueConstraint("expense_id", "external_name", name="uq_itemized_lists_expense_external_name"),
    )

    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("group_members.id"), nullable=True, index=True)
    external_participant_id = Column(Integer, ForeignKey("external_participants.id", ondelete="SET NULL"), nullable=True, index=True)
    external_name = Column(String(255), nullable=True)
    total_amount = Column(Numeric(15, 4), nullable=False, default=0)
    split_percentage = Column(Numeric(9, 4), nullable=False, default=0)

    # Relationships
    expense = relationship("Expense", back_populates="itemized_lists")
    participant = relationship("GroupMember")
    external_participant = relationship("ExternalParticipant")
    items = relationship("ParticipantItem", back_populates="participant_list", cascade="all, delete-orphan")


class ParticipantItem(BaseModel):
    """Single purchased item on a participant's itemized list."""
    __tablename__ = "participant_items"

    participant_list_id = Column(Integer, ForeignKey("participant_itemized_lists.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    category = Column(String(100), nullable=True)

    # Relationships
    participant_list = relationship("ParticipantItemizedList", back_populates="items")
