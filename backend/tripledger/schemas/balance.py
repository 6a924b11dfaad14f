"""
Pydantic schemas for balance aggregation.

Inputs (``ExpenseRecord`` / ``ShareRecord``) are plain data flattened from
stored expenses. Fields are optional on purpose: a damaged row must still load
so the aggregator can skip it with a warning instead of failing.
"""
from pydantic import BaseModel, ConfigDict
from typing import List, Literal, Optional, Tuple, Union
from decimal import Decimal


class ShareRecord(BaseModel):
    """What one participant owes on one expense."""
    member_id: Optional[int] = None
    external_participant_id: Optional[int] = None
    name: Optional[str] = None
    amount_owed: Optional[Decimal] = None


class ExpenseRecord(BaseModel):
    """One expense reduced to what balance aggregation needs."""
    expense_id: int
    trip_id: Optional[int] = None
    trip_name: Optional[str] = None
    payer_id: Optional[int] = None
    payer_name: Optional[str] = None
    amount: Optional[Decimal] = None
    shares: List[ShareRecord] = []


class Counterparty(BaseModel):
    """The other side of a debt: a group member or an external participant."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["member", "external"]
    id: Optional[int] = None
    name: str

    @property
    def key(self) -> Tuple[str, Union[int, str]]:
        return (self.kind, self.id if self.id is not None else self.name)


class AggregationWarning(BaseModel):
    """An expense left out of a summary because it is malformed."""
    expense_id: int
    reason: str


class TripAmount(BaseModel):
    """Amount attributed to one trip."""
    trip_id: int
    trip_name: str
    amount: Decimal


class CounterpartyBalance(BaseModel):
    """Total owed to or by one counterparty, itemized by trip."""
    counterparty: Counterparty
    amount: Decimal
    trips: List[TripAmount] = []


class TripBalance(BaseModel):
    """A member's position within a single trip."""
    trip_id: int
    trip_name: str
    total_expenses: Decimal = Decimal(0)  # Everything spent on the trip
    total_paid: Decimal = Decimal(0)  # What the member fronted
    your_share: Decimal = Decimal(0)  # The member's own split rows, including on expenses they paid
    you_owe: Decimal = Decimal(0)
    owed_to_you: Decimal = Decimal(0)
    net_balance: Decimal = Decimal(0)


class PersonalBalanceSummary(BaseModel):
    """Net position of one member across a trip or a whole group."""
    member_id: int
    member_name: Optional[str] = None
    total_expenses: Decimal
    total_paid: Decimal
    your_share: Decimal
    total_you_owe: Decimal
    total_owed_to_you: Decimal
    net_balance: Decimal  # Positive = others owe you
    trip_breakdowns: List[TripBalance] = []
    people_you_owe: List[CounterpartyBalance] = []
    people_who_owe_you: List[CounterpartyBalance] = []
    warnings: List[AggregationWarning] = []


class BalanceWith(BaseModel):
    """Net between a member and one counterparty."""
    counterparty: Counterparty
    amount: Decimal  # Positive = they owe the member, negative = the member owes them


class MemberBalance(BaseModel):
    """One member's totals in a group summary."""
    member_id: int
    member_name: str
    total_owed: Decimal
    total_owing: Decimal
    net_balance: Decimal
    balances_with: List[BalanceWith] = []


class Transfer(BaseModel):
    """A suggested payment that settles part of the group's debts."""
    from_party: Counterparty
    to_party: Counterparty
    amount: Decimal


class GroupBalanceSummary(BaseModel):
    """Balances of every member of a group, optionally limited to one trip."""
    trip_id: Optional[int] = None
    total_expenses: Decimal
    balances: List[MemberBalance] = []
    transfers: List[Transfer] = []
    warnings: List[AggregationWarning] = []
