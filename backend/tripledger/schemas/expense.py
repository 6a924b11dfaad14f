"""
Pydantic schemas for Expense entity.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from tripledger.schemas.split import ItemizedListIn, LineItemIn, SplitRowIn, SplitSpec, SplitType


class ExpenseCreate(SplitSpec):
    """Schema for expense creation, split included."""
    trip_id: int
    payer_id: int  # Group member who fronted the money
    description: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(gt=0, decimal_places=2)
    category: Optional[str] = Field(default=None, max_length=100)
    day_id: Optional[int] = None
    event_id: Optional[int] = None

    def split_spec(self) -> SplitSpec:
        return SplitSpec(
            split_type=self.split_type,
            participants=self.participants,
            line_items=self.line_items,
            itemized_lists=self.itemized_lists,
        )


class ExpenseUpdate(BaseModel):
    """
    Schema for expense update.

    Sending any split section replaces the whole split. ``day_id`` and
    ``event_id`` may be sent as null to detach the expense.
    """
    description: Optional[str] = Field(default=None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    category: Optional[str] = Field(default=None, max_length=100)
    payer_id: Optional[int] = None
    day_id: Optional[int] = None
    event_id: Optional[int] = None
    split_type: Optional[SplitType] = None
    participants: Optional[List[SplitRowIn]] = None
    line_items: Optional[List[LineItemIn]] = None
    itemized_lists: Optional[List[ItemizedListIn]] = None

    def has_split(self) -> bool:
        return any(
            getattr(self, name) is not None
            for name in ("participants", "line_items", "itemized_lists")
        )

    def split_spec(self, default_type: SplitType) -> Optional[SplitSpec]:
        """The replacement split, or None when the update leaves the split alone."""
        if not self.has_split():
            return None
        return SplitSpec(
            split_type=self.split_type or default_type,
            participants=self.participants,
            line_items=self.line_items,
            itemized_lists=self.itemized_lists,
        )


class SplitRowResponse(BaseModel):
    """Schema for a stored split row (flat or line item)."""
    id: int
    participant_id: Optional[int] = None
    participant_name: Optional[str] = None
    external_participant_id: Optional[int] = None
    external_name: Optional[str] = None
    split_percentage: Decimal
    amount_owed: Decimal


class LineItemResponse(BaseModel):
    """Schema for a stored line item."""
    id: int
    description: str
    amount: Decimal
    quantity: int
    category: Optional[str] = None
    participants: List[SplitRowResponse] = []


class ItemResponse(BaseModel):
    """Schema for an item on an itemized list."""
    id: int
    description: str
    amount: Decimal
    quantity: int
    category: Optional[str] = None

    class Config:
        from_attributes = True


class ItemizedListResponse(BaseModel):
    """Schema for a participant's stored itemized list."""
    id: int
    participant_id: Optional[int] = None
    participant_name: Optional[str] = None
    external_participant_id: Optional[int] = None
    external_name: Optional[str] = None
    total_amount: Decimal
    split_percentage: Decimal  # Derived from total_amount, never supplied by clients
    items: List[ItemResponse] = []


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: int
    group_id: int
    trip_id: int
    day_id: Optional[int] = None
    event_id: Optional[int] = None
    payer_id: int
    payer_name: str
    description: str
    amount: Decimal
    category: Optional[str] = None
    split_type: SplitType
    participants: List[SplitRowResponse] = []
    line_items: List[LineItemResponse] = []
    itemized_lists: List[ItemizedListResponse] = []
    created_at: datetime
    updated_at: datetime
