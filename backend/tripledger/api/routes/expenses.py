"""
Expense management routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from tripledger.db.session import get_db
from tripledger.models.expense import Expense
from tripledger.schemas.balance import GroupBalanceSummary, PersonalBalanceSummary
from tripledger.schemas.expense import (
    ExpenseCreate,
    ExpenseResponse,
    ExpenseUpdate,
    ItemResponse,
    ItemizedListResponse,
    LineItemResponse,
    SplitRowResponse,
)
from tripledger.api.dependencies import MemberContext, get_current_member
from tripledger.services import balance_service, expense_service

router = APIRouter(prefix="/expenses", tags=["expenses"])


def _split_row_response(row) -> SplitRowResponse:
    return SplitRowResponse(
        id=row.id,
        participant_id=row.participant_id,
        participant_name=row.participant.traveler_name if row.participant else None,
        external_participant_id=row.external_participant_id,
        external_name=row.external_name,
        split_percentage=row.split_percentage,
        amount_owed=row.amount_owed,
    )


def build_expense_response(expense: Expense) -> ExpenseResponse:
    """Build an expense response with every split row."""
    return ExpenseResponse(
        id=expense.id,
        group_id=expense.group_id,
        trip_id=expense.trip_id,
        day_id=expense.day_id,
        event_id=expense.event_id,
        payer_id=expense.payer_id,
        payer_name=expense.payer.traveler_name,
        description=expense.description,
        amount=expense.amount,
        category=expense.category,
        split_type=expense.split_type,
        participants=[_split_row_response(row) for row in expense.participants],
        line_items=[
            LineItemResponse(
                id=item.id,
                description=item.description,
                amount=item.amount,
                quantity=item.quantity,
                category=item.category,
                participants=[_split_row_response(row) for row in item.participants],
            )
            for item in expense.line_items
        ],
        itemized_lists=[
            ItemizedListResponse(
                id=entry.id,
                participant_id=entry.participant_id,
                participant_name=entry.participant.traveler_name if entry.participant else None,
                external_participant_id=entry.external_participant_id,
                external_name=entry.external_name,
                total_amount=entry.total_amount,
                split_percentage=entry.split_percentage,
                items=[ItemResponse.model_validate(item) for item in entry.items],
            )
            for entry in expense.itemized_lists
        ],
        created_at=expense.created_at,
        updated_at=expense.updated_at
    )


@router.get("/summary", response_model=GroupBalanceSummary)
async def get_group_summary(
    trip_id: Optional[int] = None,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Balances of every group member, with suggested settlement transfers."""
    if trip_id is not None:
        expense_service.get_group_trip(db, current_member.group_id, trip_id)
    return balance_service.get_group_summary(db, current_member.group_id, trip_id)


@router.get("/personal-summary", response_model=PersonalBalanceSummary)
async def get_personal_summary(
    trip_id: Optional[int] = None,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """What the current member owes and is owed, per person and per trip."""
    if trip_id is not None:
        expense_service.get_group_trip(db, current_member.group_id, trip_id)
    member = expense_service.get_group_member(db, current_member.group_id, current_member.member_id)
    return balance_service.get_personal_summary(db, current_member.group_id, member, trip_id)


@router.get("", response_model=List[ExpenseResponse])
async def list_expenses(
    trip_id: Optional[int] = None,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """List expenses of the current group, optionally for one trip."""
    expenses = expense_service.list_expenses(db, current_member.group_id, trip_id)
    return [build_expense_response(expense) for expense in expenses]


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense_data: ExpenseCreate,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Create an expense with its split."""
    expense = expense_service.create_expense(db, current_member.group_id, expense_data)
    return build_expense_response(expense)


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Get a single expense."""
    expense = expense_service.get_expense(db, current_member.group_id, expense_id)
    return build_expense_response(expense)


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: int,
    expense_data: ExpenseUpdate,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Update an expense; a supplied split replaces the stored one."""
    expense = expense_service.update_expense(db, current_member.group_id, expense_id, expense_data)
    return build_expense_response(expense)


@router.delete("/{expense_id}")
async def delete_expense(
    expense_id: int,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Delete an expense and its split rows."""
    expense_service.delete_expense(db, current_member.group_id, expense_id)
    return {"message": "Expense deleted successfully"}
