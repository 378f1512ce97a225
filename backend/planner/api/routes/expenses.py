"""
Expense management routes.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from planner.api.dependencies import get_group_cache, requires
from planner.core.cache import GroupCache
from planner.core.permissions import Permission
from planner.db.session import get_db
from planner.models.expense import Expense
from planner.schemas.balance import (
    BalanceSummaryResponse, DebtResponse, ExpenseSummaryResponse,
    PersonalSummaryResponse, TripInfo
)
from planner.schemas.expense import (
    ExpenseCreate, ExpenseUpdate, ExpenseResponse,
    ExpenseParticipantResponse, LineItemResponse
)
from planner.services import balance_service, expense_service
from planner.services.group_service import get_member, list_members
from planner.services.session_service import SessionContext
from planner.services.trip_service import get_trip, list_trips

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/expenses", tags=["expenses"])


def build_share_response(share) -> ExpenseParticipantResponse:
    return ExpenseParticipantResponse(
        id=share.id,
        participant_id=share.participant_id,
        participant_name=share.participant.traveler_name if share.participant else None,
        external_participant_id=share.external_participant_id,
        external_name=share.external_name,
        split_percentage=share.split_percentage,
        amount_owed=share.amount_owed
    )


def build_expense_response(expense: Expense) -> ExpenseResponse:
    """Build the response for an expense loaded with its owner, shares and line items."""
    return ExpenseResponse(
        id=expense.id,
        description=expense.description,
        amount=expense.amount,
        category=expense.category,
        owner_id=expense.owner_id,
        owner_name=expense.owner.traveler_name,
        trip_id=expense.trip_id,
        group_id=expense.group_id,
        day_id=expense.day_id,
        event_id=expense.event_id,
        participants=[build_share_response(p) for p in expense.participants],
        line_items=[
            LineItemResponse(
                id=item.id,
                description=item.description,
                amount=item.amount,
                quantity=item.quantity,
                category=item.category,
                participants=[build_share_response(p) for p in item.participants]
            )
            for item in expense.line_items
        ],
        created_at=expense.created_at,
        updated_at=expense.updated_at
    )


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense_data: ExpenseCreate,
    context: SessionContext = Depends(requires(Permission.CREATE)),
    cache: GroupCache = Depends(get_group_cache),
    db: Session = Depends(get_db)
):
    """Create an expense split between members and external participants."""
    expense = expense_service.create_expense(db, context.group_id, expense_data)
    cache.invalidate(context.group_id)
    return build_expense_response(expense)


@router.get("", response_model=List[ExpenseResponse])
async def list_expenses(
    trip_id: Optional[int] = Query(None, alias="tripId"),
    context: SessionContext = Depends(requires(Permission.READ)),
    db: Session = Depends(get_db)
):
    """List the group's expenses, optionally for one trip."""
    if trip_id is not None:
        get_trip(db, context.group_id, trip_id)
    expenses = expense_service.list_expenses(db, context.group_id, trip_id)
    return [build_expense_response(e) for e in expenses]


@router.get("/summary", response_model=ExpenseSummaryResponse)
async def get_expense_summary(
    trip_id: Optional[int] = Query(None, alias="tripId"),
    context: SessionContext = Depends(requires(Permission.READ)),
    db: Session = Depends(get_db)
):
    """Balance table of the group, optionally limited to one trip."""
    trip = get_trip(db, context.group_id, trip_id) if trip_id is not None else None
    members = list_members(db, context.group_id)
    expenses = expense_service.list_expenses(db, context.group_id, trip_id)

    summaries = balance_service.compute_balances(expenses, members)
    return ExpenseSummaryResponse(
        balances=[BalanceSummaryResponse.model_validate(s) for s in summaries],
        settlements=[DebtResponse.model_validate(d) for d in balance_service.pairwise_debts(summaries)],
        suggested_transfers=[DebtResponse.model_validate(d) for d in balance_service.suggest_transfers(summaries)],
        trip=TripInfo.model_validate(trip) if trip else None,
        total_expenses=balance_service.total_expenses(expenses)
    )


@router.get("/personal-summary", response_model=PersonalSummaryResponse)
async def get_personal_summary(
    context: SessionContext = Depends(requires(Permission.READ)),
    db: Session = Depends(get_db)
):
    """The caller's balances across every trip of the group."""
    member = get_member(db, context.group_id, context.member_id)
    summary = balance_service.compute_personal_summary(
        member,
        list_members(db, context.group_id),
        list_trips(db, context.group_id),
        expense_service.list_expenses(db, context.group_id)
    )
    return PersonalSummaryResponse.model_validate(summary)


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int,
    context: SessionContext = Depends(requires(Permission.READ)),
    db: Session = Depends(get_db)
):
    expense = expense_service.get_expense(db, context.group_id, expense_id)
    return build_expense_response(expense)


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: int,
    expense_data: ExpenseUpdate,
    context: SessionContext = Depends(requires(Permission.MODIFY)),
    cache: GroupCache = Depends(get_group_cache),
    db: Session = Depends(get_db)
):
    """Update an expense."""
    expense = expense_service.update_expense(db, context.group_id, expense_id, expense_data)
    cache.invalidate(context.group_id)
    return build_expense_response(expense)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: int,
    context: SessionContext = Depends(requires(Permission.MODIFY)),
    cache: GroupCache = Depends(get_group_cache),
    db: Session = Depends(get_db)
):
    """Delete an expense."""
    expense_service.delete_expense(db, context.group_id, expense_id)
    cache.invalidate(context.group_id)
    return None
