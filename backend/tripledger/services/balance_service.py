"""
Balance aggregation over stored expenses.

The summaries are folds over plain ``ExpenseRecord`` data. A malformed
record never aborts a summary: it is logged, reported as an
``AggregationWarning`` and left out of every total.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session, joinedload, selectinload

from tripledger.core.config import settings
from tripledger.models.expense import Expense, ExpenseLineItem, ExpenseParticipant, LineItemParticipant, ParticipantItemizedList
from tripledger.models.group import GroupMember
from tripledger.models.trip import Trip
from tripledger.schemas.balance import (
    AggregationWarning,
    BalanceWith,
    Counterparty,
    CounterpartyBalance,
    ExpenseRecord,
    GroupBalanceSummary,
    MemberBalance,
    PersonalBalanceSummary,
    ShareRecord,
    TripAmount,
    TripBalance,
)
from tripledger.schemas.split import SplitType
from tripledger.services.settlement_service import (
    net_positions,
    payer_counterparty,
    share_counterparty,
    suggest_transfers,
)

logger = logging.getLogger(__name__)

ZERO = Decimal(0)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _row_name(row) -> Optional[str]:
    if row.participant is not None:
        return row.participant.traveler_name
    if row.external_participant is not None:
        return row.external_participant.name
    return row.external_name


def expense_to_record(expense: Expense) -> ExpenseRecord:
    """Flatten an expense of any split type into an ``ExpenseRecord``."""
    if expense.split_type == SplitType.ITEMIZED.value:
        rows = [(row, row.total_amount) for row in expense.itemized_lists]
    elif expense.line_items:
        rows = [(row, row.amount_owed) for item in expense.line_items for row in item.participants]
    else:
        rows = [(row, row.amount_owed) for row in expense.participants]

    return ExpenseRecord(
        expense_id=expense.id,
        trip_id=expense.trip_id,
        trip_name=expense.trip.name if expense.trip else None,
        payer_id=expense.payer_id,
        payer_name=expense.payer.traveler_name if expense.payer else None,
        amount=expense.amount,
        shares=[
            ShareRecord(
                member_id=row.participant_id,
                external_participant_id=row.external_participant_id,
                name=_row_name(row),
                amount_owed=owed,
            )
            for row, owed in rows
        ],
    )


def load_expense_records(db: Session, group_id: int, trip_id: Optional[int] = None) -> List[ExpenseRecord]:
    """Load a group's expenses (optionally one trip's) as records, newest trips first."""
    query = db.query(Expense).join(Trip, Expense.trip_id == Trip.id).options(
        joinedload(Expense.trip),
        joinedload(Expense.payer),
        selectinload(Expense.participants).joinedload(ExpenseParticipant.participant),
        selectinload(Expense.participants).joinedload(ExpenseParticipant.external_participant),
        selectinload(Expense.line_items).selectinload(ExpenseLineItem.participants).joinedload(LineItemParticipant.participant),
        selectinload(Expense.line_items).selectinload(ExpenseLineItem.participants).joinedload(LineItemParticipant.external_participant),
        selectinload(Expense.itemized_lists).joinedload(ParticipantItemizedList.participant),
        selectinload(Expense.itemized_lists).joinedload(ParticipantItemizedList.external_participant),
    ).filter(Expense.group_id == group_id)

    if trip_id is not None:
        query = query.filter(Expense.trip_id == trip_id)

    expenses = query.order_by(Trip.start_date.desc(), Expense.created_at, Expense.id).all()
    return [expense_to_record(expense) for expense in expenses]


# ---------------------------------------------------------------------------
# Folding
# ---------------------------------------------------------------------------

def record_problem(record: ExpenseRecord) -> Optional[str]:
    """Why ``record`` cannot be aggregated, or None when it is well formed."""
    if record.payer_id is None:
        return "expense has no payer"
    if record.trip_id is None:
        return "expense has no trip"
    if record.amount is None or record.amount <= 0:
        return "expense amount is missing or not positive"
    if not record.shares:
        return "expense has no split rows"
    for share in record.shares:
        if share.amount_owed is None or share.amount_owed < 0:
            return "split row has no valid amount owed"
        if share.member_id is None and share.external_participant_id is None and not share.name:
            return "split row has no participant"
    return None


def partition_records(records: Iterable[ExpenseRecord]) -> Tuple[List[ExpenseRecord], List[AggregationWarning]]:
    """Split records into well-formed ones and warnings for the rest."""
    valid = []
    warnings = []
    for record in records:
        problem = record_problem(record)
        if problem:
            logger.warning("Skipping expense %s in balance summary: %s", record.expense_id, problem)
            warnings.append(AggregationWarning(expense_id=record.expense_id, reason=problem))
            continue
        valid.append(record)
    return valid, warnings


class _Ledger:
    """Running per-counterparty, per-trip totals for one direction of debt."""

    def __init__(self):
        self.parties: Dict[tuple, Counterparty] = {}
        self.amounts: Dict[tuple, Dict[int, Decimal]] = {}
        self.trip_names: Dict[int, str] = {}

    def add(self, party: Counterparty, record: ExpenseRecord, amount: Decimal):
        self.parties.setdefault(party.key, party)
        by_trip = self.amounts.setdefault(party.key, {})
        by_trip[record.trip_id] = by_trip.get(record.trip_id, ZERO) + amount
        self.trip_names.setdefault(record.trip_id, record.trip_name or "")

    def total(self, key) -> Decimal:
        return sum(self.amounts.get(key, {}).values(), ZERO)

    def balances(self) -> List[CounterpartyBalance]:
        result = [
            CounterpartyBalance(
                counterparty=self.parties[key],
                amount=sum(by_trip.values(), ZERO),
                trips=[
                    TripAmount(trip_id=trip_id, trip_name=self.trip_names[trip_id], amount=amount)
                    for trip_id, amount in by_trip.items()
                ],
            )
            for key, by_trip in self.amounts.items()
        ]
        result.sort(key=lambda balance: balance.amount, reverse=True)
        return result


def _fold_member(records: Sequence[ExpenseRecord], member_id: int, trips_seed: Sequence[Tuple[int, str]] = ()):
    """Accumulate trip totals and both debt ledgers for ``member_id``."""
    trips: Dict[int, TripBalance] = {
        trip_id: TripBalance(trip_id=trip_id, trip_name=trip_name)
        for trip_id, trip_name in trips_seed
    }
    you_owe = _Ledger()
    owed_to_you = _Ledger()

    for record in records:
        trip = trips.get(record.trip_id)
        if trip is None:
            trip = TripBalance(trip_id=record.trip_id, trip_name=record.trip_name or "")
            trips[record.trip_id] = trip

        is_payer = record.payer_id == member_id
        trip.total_expenses += record.amount
        if is_payer:
            trip.total_paid += record.amount

        for share in record.shares:
            is_mine = share.member_id == member_id
            if is_mine:
                trip.your_share += share.amount_owed
            if is_payer and not is_mine:
                trip.owed_to_you += share.amount_owed
                owed_to_you.add(share_counterparty(share), record, share.amount_owed)
            elif is_mine and not is_payer:
                trip.you_owe += share.amount_owed
                you_owe.add(payer_counterparty(record), record, share.amount_owed)

    for trip in trips.values():
        trip.net_balance = trip.owed_to_you - trip.you_owe
    return list(trips.values()), you_owe, owed_to_you


def summarize_member_balances(
    records: Iterable[ExpenseRecord],
    member_id: int,
    member_name: Optional[str] = None,
    trips: Sequence[Tuple[int, str]] = (),
) -> PersonalBalanceSummary:
    """
    Summarize what ``member_id`` owes and is owed.

    ``total_you_owe`` sums the member's rows on expenses someone else paid;
    ``total_owed_to_you`` sums everyone else's rows on expenses the member
    paid (the payer's own row never counts). Every ``(trip_id, name)`` in
    ``trips`` gets a breakdown, even with no expenses.
    """
    valid, warnings = partition_records(records)
    trips, you_owe, owed_to_you = _fold_member(valid, member_id, trips)

    total_you_owe = sum((trip.you_owe for trip in trips), ZERO)
    total_owed_to_you = sum((trip.owed_to_you for trip in trips), ZERO)

    return PersonalBalanceSummary(
        member_id=member_id,
        member_name=member_name,
        total_expenses=sum((trip.total_expenses for trip in trips), ZERO),
        total_paid=sum((trip.total_paid for trip in trips), ZERO),
        your_share=sum((trip.your_share for trip in trips), ZERO),
        total_you_owe=total_you_owe,
        total_owed_to_you=total_owed_to_you,
        net_balance=total_owed_to_you - total_you_owe,
        trip_breakdowns=trips,
        people_you_owe=you_owe.balances(),
        people_who_owe_you=owed_to_you.balances(),
        warnings=warnings,
    )


def summarize_group_balances(
    records: Iterable[ExpenseRecord],
    members: Sequence[Tuple[int, str]],
    trip_id: Optional[int] = None,
) -> GroupBalanceSummary:
    """Balances of every ``(member_id, name)`` plus transfers that would settle them."""
    valid, warnings = partition_records(records)
    tolerance = settings.SPLIT_TOLERANCE

    balances = []
    for member_id, member_name in members:
        _, you_owe, owed_to_you = _fold_member(valid, member_id)
        keys = list(owed_to_you.parties) + [k for k in you_owe.parties if k not in owed_to_you.parties]

        balances_with = []
        for key in keys:
            party = owed_to_you.parties.get(key) or you_owe.parties[key]
            net = owed_to_you.total(key) - you_owe.total(key)
            if abs(net) > tolerance:
                balances_with.append(BalanceWith(counterparty=party, amount=net))
        balances_with.sort(key=lambda entry: entry.amount, reverse=True)

        total_owed = sum((owed_to_you.total(key) for key in owed_to_you.parties), ZERO)
        total_owing = sum((you_owe.total(key) for key in you_owe.parties), ZERO)
        balances.append(MemberBalance(
            member_id=member_id,
            member_name=member_name,
            total_owed=total_owed,
            total_owing=total_owing,
            net_balance=total_owed - total_owing,
            balances_with=balances_with,
        ))

    return GroupBalanceSummary(
        trip_id=trip_id,
        total_expenses=sum((record.amount for record in valid), ZERO),
        balances=balances,
        transfers=suggest_transfers(net_positions(valid)),
        warnings=warnings,
    )


def get_personal_summary(db: Session, group_id: int, member: GroupMember, trip_id: Optional[int] = None) -> PersonalBalanceSummary:
    """Load and summarize the balances of ``member``, with a breakdown for every group trip."""
    records = load_expense_records(db, group_id, trip_id)
    query = db.query(Trip.id, Trip.name).filter(Trip.group_id == group_id)
    if trip_id is not None:
        query = query.filter(Trip.id == trip_id)
    trips = query.order_by(Trip.start_date.desc(), Trip.id).all()
    return summarize_member_balances(
        records,
        member.id,
        member.traveler_name,
        trips=[(trip.id, trip.name) for trip in trips],
    )


def get_group_summary(db: Session, group_id: int, trip_id: Optional[int] = None) -> GroupBalanceSummary:
    """Load and summarize balances for every member of a group."""
    records = load_expense_records(db, group_id, trip_id)
    members = db.query(GroupMember).filter(
        GroupMember.group_id == group_id
    ).order_by(GroupMember.id).all()
    return summarize_group_balances(
        records,
        [(member.id, member.traveler_name) for member in members],
        trip_id=trip_id,
    )
