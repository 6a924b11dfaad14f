"""
Pydantic schemas describing how an expense is split.

A split arrives in one of three shapes, selected by ``split_type``:

* ``equal`` / ``manual`` with ``participants`` - one percentage per person
  against the whole expense. Percentages are the input, amounts are derived.
* ``manual`` with ``line_items`` - the expense is broken into sub-items and
  each sub-item carries its own percentage split.
* ``itemized`` with ``itemized_lists`` - each person owns a list of items.
  Here the amounts are the input and each person's percentage is derived
  from their item total. Callers must not send percentages in this mode.
"""
import enum
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SplitType(str, enum.Enum):
    """How an expense is divided."""
    EQUAL = "equal"
    MANUAL = "manual"
    ITEMIZED = "itemized"


class MemberTarget(BaseModel):
    """A split participant who is a group member."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["member"] = "member"
    member_id: int


class ExternalTarget(BaseModel):
    """A split participant without an account, identified by name."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["external"] = "external"
    name: str


SplitTarget = Annotated[Union[MemberTarget, ExternalTarget], Field(discriminator="kind")]


class ParticipantRef(BaseModel):
    """Either a member id or an external name, as sent by clients."""
    participant_id: Optional[int] = None
    external_name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("external_name")
    @classmethod
    def strip_external_name(cls, v):
        """Trim surrounding whitespace; matching is otherwise exact."""
        if isinstance(v, str):
            return v.strip()
        return v

    def names_exactly_one(self) -> bool:
        """True when the row carries a member id or a non-blank name, not both."""
        has_member = self.participant_id is not None
        has_external = bool(self.external_name)
        return has_member != has_external

    def target(self) -> Union[MemberTarget, ExternalTarget]:
        """Convert to a tagged target. Only call on validated rows."""
        if not self.names_exactly_one():
            raise ValueError("Row must reference exactly one of participant_id or external_name")
        if self.participant_id is not None:
            return MemberTarget(member_id=self.participant_id)
        return ExternalTarget(name=self.external_name)


class SplitRowIn(ParticipantRef):
    """Percentage-based split row."""
    split_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)


class LineItemIn(BaseModel):
    """Sub-item of a manual split with its own participants."""
    description: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(gt=0, decimal_places=2)
    quantity: int = Field(default=1, ge=1)
    category: Optional[str] = Field(default=None, max_length=100)
    participants: List[SplitRowIn] = Field(min_length=1)

    @property
    def total(self) -> Decimal:
        return self.amount * self.quantity


class ItemIn(BaseModel):
    """Item on a participant's itemized list."""
    description: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(gt=0, decimal_places=2)
    quantity: int = Field(default=1, ge=1)
    category: Optional[str] = Field(default=None, max_length=100)

    @property
    def total(self) -> Decimal:
        return self.amount * self.quantity


class ItemizedListIn(ParticipantRef):
    """One participant's items in an itemized split."""
    items: List[ItemIn] = Field(min_length=1)


class SplitSpec(BaseModel):
    """Complete split of one expense."""
    split_type: SplitType = SplitType.EQUAL
    participants: Optional[List[SplitRowIn]] = None
    line_items: Optional[List[LineItemIn]] = None
    itemized_lists: Optional[List[ItemizedListIn]] = None

    def populated_sections(self) -> List[str]:
        """Names of the split sections that carry rows."""
        return [
            name for name in ("participants", "line_items", "itemized_lists")
            if getattr(self, name)
        ]


class SplitViolation(BaseModel):
    """One reason a split was rejected."""
    code: str
    message: str
    line_item: Optional[str] = None


class OwedShare(BaseModel):
    """Computed amount one participant owes for a flat or line-item split."""
    target: SplitTarget
    split_percentage: Decimal
    amount_owed: Decimal


class LineItemShares(BaseModel):
    """A line item together with its computed shares."""
    line_item: LineItemIn
    shares: List[OwedShare]


class ItemizedShare(BaseModel):
    """A participant's itemized total and the percentage derived from it."""
    target: SplitTarget
    total_amount: Decimal
    split_percentage: Decimal
    items: List[ItemIn]


class CalculatedSplit(BaseModel):
    """Result of the split calculator; exactly one section is populated."""
    split_type: SplitType
    participants: List[OwedShare] = []
    line_items: List[LineItemShares] = []
    itemized_lists: List[ItemizedShare] = []

    def targets(self) -> List[Union[MemberTarget, ExternalTarget]]:
        """Every target referenced by the split, in order of appearance."""
        found = [share.target for share in self.participants]
        for entry in self.line_items:
            found.extend(share.target for share in entry.shares)
        found.extend(share.target for share in self.itemized_lists)
        return found
