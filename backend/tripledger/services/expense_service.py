"""
Expense service for expense-related business logic.

Every write follows the same order: look up and check everything the
request references, validate the split, and only then mutate. The mutation
(expense row plus all of its split rows) is committed as one transaction and
rolled back as a whole on failure.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.orm import Session, joinedload, selectinload

from tripledger.core.exceptions import NotFoundError, ValidationError
from tripledger.models.expense import (
    Expense,
    ExpenseLineItem,
    ExpenseParticipant,
    LineItemParticipant,
    ParticipantItem,
    ParticipantItemizedList,
)
from tripledger.models.group import ExternalParticipant, GroupMember
from tripledger.models.trip import Event, Trip, TripDay
from tripledger.schemas.expense import ExpenseCreate, ExpenseUpdate
from tripledger.schemas.split import (
    CalculatedSplit,
    ItemIn,
    ItemizedListIn,
    LineItemIn,
    MemberTarget,
    SplitRowIn,
    SplitSpec,
    SplitType,
)
from tripledger.services.external_participant_service import resolve_split_targets
from tripledger.services.split_calculator import calculate_split
from tripledger.services.split_validator import ensure_valid_split, referenced_member_ids

logger = logging.getLogger(__name__)


def _expense_query(db: Session):
    return db.query(Expense).options(
        joinedload(Expense.payer),
        selectinload(Expense.participants).joinedload(ExpenseParticipant.participant),
        selectinload(Expense.line_items).selectinload(ExpenseLineItem.participants).joinedload(LineItemParticipant.participant),
        selectinload(Expense.itemized_lists).joinedload(ParticipantItemizedList.participant),
        selectinload(Expense.itemized_lists).selectinload(ParticipantItemizedList.items),
    )


def get_expense(db: Session, group_id: int, expense_id: int) -> Expense:
    """Fetch an expense of the caller's group."""
    expense = _expense_query(db).filter(
        Expense.id == expense_id,
        Expense.group_id == group_id
    ).first()
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def list_expenses(db: Session, group_id: int, trip_id: Optional[int] = None) -> List[Expense]:
    """Expenses of a group, optionally limited to one trip, newest first."""
    query = _expense_query(db).filter(Expense.group_id == group_id)
    if trip_id is not None:
        query = query.filter(Expense.trip_id == trip_id)
    return query.order_by(Expense.created_at.desc(), Expense.id.desc()).all()


def get_group_trip(db: Session, group_id: int, trip_id: int) -> Trip:
    """Fetch a trip, treating other groups' trips as missing."""
    trip = db.query(Trip).filter(Trip.id == trip_id, Trip.group_id == group_id).first()
    if not trip:
        raise NotFoundError("Trip not found")
    return trip


def get_group_member(db: Session, group_id: int, member_id: int) -> GroupMember:
    """Fetch a member of the group, treating other groups' members as missing."""
    member = db.query(GroupMember).filter(
        GroupMember.id == member_id,
        GroupMember.group_id == group_id
    ).first()
    if not member:
        raise NotFoundError("Group member not found")
    return member


def group_member_ids(db: Session, group_id: int, candidate_ids: Iterable[int]) -> Set[int]:
    """Which of ``candidate_ids`` belong to the group, in a single query."""
    candidate_ids = set(candidate_ids)
    if not candidate_ids:
        return set()
    rows = db.query(GroupMember.id).filter(
        GroupMember.group_id == group_id,
        GroupMember.id.in_(candidate_ids)
    ).all()
    return {member_id for (member_id,) in rows}


def check_anchors(db: Session, trip_id: int, day_id: Optional[int], event_id: Optional[int]) -> None:
    """The day and event an expense hangs off must belong to its trip."""
    if day_id is not None:
        day = db.query(TripDay).filter(TripDay.id == day_id, TripDay.trip_id == trip_id).first()
        if not day:
            raise ValidationError("Invalid day for this trip")
    if event_id is not None:
        event = db.query(Event).filter(Event.id == event_id, Event.trip_id == trip_id).first()
        if not event:
            raise ValidationError("Invalid event for this trip")


def stored_split_spec(expense: Expense) -> SplitSpec:
    """Rebuild the split specification an expense was saved with."""
    def row_in(row) -> SplitRowIn:
        return SplitRowIn(
            participant_id=row.participant_id,
            external_name=row.external_name,
            split_percentage=row.split_percentage,
        )

    split_type = SplitType(expense.split_type)
    if split_type == SplitType.ITEMIZED:
        return SplitSpec(split_type=split_type, itemized_lists=[
            ItemizedListIn(
                participant_id=entry.participant_id,
                external_name=entry.external_name,
                items=[
                    ItemIn(description=i.description, amount=i.amount, quantity=i.quantity, category=i.category)
                    for i in entry.items
                ],
            )
            for entry in expense.itemized_lists
        ])
    if expense.line_items:
        return SplitSpec(split_type=split_type, line_items=[
            LineItemIn(
                description=item.description,
                amount=item.amount,
                quantity=item.quantity,
                category=item.category,
                participants=[row_in(row) for row in item.participants],
            )
            for item in expense.line_items
        ])
    return SplitSpec(split_type=split_type, participants=[row_in(row) for row in expense.participants])


def _identity_columns(target, externals: Dict[str, ExternalParticipant]) -> dict:
    if isinstance(target, MemberTarget):
        return {"participant_id": target.member_id}
    external = externals[target.name]
    return {"external_participant_id": external.id, "external_name": target.name}


def _write_split(db: Session, expense: Expense, calculated: CalculatedSplit, externals: Dict[str, ExternalParticipant]) -> None:
    """Delete every split row of ``expense`` and write ``calculated`` in their place."""
    expense.participants.clear()
    expense.line_items.clear()
    expense.itemized_lists.clear()
    db.flush()

    expense.split_type = calculated.split_type.value

    for share in calculated.participants:
        expense.participants.append(ExpenseParticipant(
            split_percentage=share.split_percentage,
            amount_owed=share.amount_owed,
            **_identity_columns(share.target, externals)
        ))

    for entry in calculated.line_items:
        item = entry.line_item
        line_item = ExpenseLineItem(
            description=item.description,
            amount=item.amount,
            quantity=item.quantity,
            category=item.category,
        )
        for share in entry.shares:
            line_item.participants.append(LineItemParticipant(
                split_percentage=share.split_percentage,
                amount_owed=share.amount_owed,
                **_identity_columns(share.target, externals)
            ))
        expense.line_items.append(line_item)

    for share in calculated.itemized_lists:
        itemized = ParticipantItemizedList(
            total_amount=share.total_amount,
            split_percentage=share.split_percentage,
            **_identity_columns(share.target, externals)
        )
        for item in share.items:
            itemized.items.append(ParticipantItem(
                description=item.description,
                amount=item.amount,
                quantity=item.quantity,
                category=item.category,
            ))
        expense.itemized_lists.append(itemized)

    db.flush()


def _validated(db: Session, group_id: int, spec: SplitSpec, amount: Decimal) -> SplitSpec:
    known = group_member_ids(db, group_id, referenced_member_ids(spec))
    ensure_valid_split(spec, amount, known)
    return spec


def create_expense(db: Session, group_id: int, data: ExpenseCreate) -> Expense:
    """Create an expense and its split rows atomically."""
    trip = get_group_trip(db, group_id, data.trip_id)
    get_group_member(db, group_id, data.payer_id)
    check_anchors(db, trip.id, data.day_id, data.event_id)
    spec = _validated(db, group_id, data.split_spec(), data.amount)

    try:
        calculated = calculate_split(spec, data.amount)
        externals = resolve_split_targets(db, group_id, calculated.targets())

        expense = Expense(
            group_id=group_id,
            trip_id=trip.id,
            day_id=data.day_id,
            event_id=data.event_id,
            payer_id=data.payer_id,
            description=data.description,
            amount=data.amount,
            category=data.category,
            split_type=spec.split_type.value,
        )
        db.add(expense)
        db.flush()
        _write_split(db, expense, calculated, externals)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Created %s expense %s for trip %s (amount %s)", spec.split_type.value, expense.id, trip.id, data.amount)
    return get_expense(db, group_id, expense.id)


def update_expense(db: Session, group_id: int, expense_id: int, data: ExpenseUpdate) -> Expense:
    """
    Update an expense.

    A new split replaces the old one entirely. Changing only the amount
    re-runs the stored split against the new amount, which fails for
    itemized expenses whose items no longer add up.
    """
    expense = get_expense(db, group_id, expense_id)
    fields = data.model_fields_set

    if data.payer_id is not None:
        get_group_member(db, group_id, data.payer_id)

    day_id = data.day_id if "day_id" in fields else expense.day_id
    event_id = data.event_id if "event_id" in fields else expense.event_id
    check_anchors(db, expense.trip_id, day_id, event_id)

    amount = data.amount if data.amount is not None else expense.amount
    if data.split_type is not None and not data.has_split() and data.split_type.value != expense.split_type:
        raise ValidationError(
            f"Changing split type to '{data.split_type.value}' requires the new split rows"
        )
    spec = data.split_spec(SplitType(expense.split_type))
    if spec is None and data.amount is not None and data.amount != expense.amount:
        spec = stored_split_spec(expense)
    if spec is not None:
        _validated(db, group_id, spec, amount)

    try:
        if spec is not None:
            calculated = calculate_split(spec, amount)
            externals = resolve_split_targets(db, group_id, calculated.targets())
            _write_split(db, expense, calculated, externals)

        expense.amount = amount
        expense.day_id = day_id
        expense.event_id = event_id
        if data.description is not None:
            expense.description = data.description
        if "category" in fields:
            expense.category = data.category
        if data.payer_id is not None:
            expense.payer_id = data.payer_id
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Updated expense %s%s", expense_id, " (split replaced)" if spec is not None else "")
    db.expire_all()
    return get_expense(db, group_id, expense_id)


def delete_expense(db: Session, group_id: int, expense_id: int) -> None:
    """Delete an expense; its split rows go with it."""
    expense = get_expense(db, group_id, expense_id)
    try:
        db.delete(expense)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted expense %s", expense_id)
