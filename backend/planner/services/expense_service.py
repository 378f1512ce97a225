"""
Expense service for expense-related business logic.

Every write is validated eagerly, then applied inside a single transaction:
the expense, its line items, its shares and any external participant
registrations are committed together or not at all.
"""
import logging
from collections import Counter
from typing import List, Optional, Sequence
from sqlalchemy.orm import Session, joinedload, selectinload
from planner.core.errors import NotFoundError, ValidationError
from planner.core.utils import utcnow
from planner.models.expense import Expense, ExpenseParticipant, ExpenseLineItem, LineItemParticipant
from planner.models.external_participant import ExternalParticipant
from planner.models.group import GroupMember
from planner.models.trip import Trip, TripDay, Event
from planner.schemas.expense import ExpenseCreate, ExpenseUpdate, LineItemCreate, ParticipantSplit
from planner.services.balance_service import split_amount, validate_split_percentages

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("description", "amount", "owner_id")


def _expense_query(db: Session):
    return db.query(Expense).options(
        joinedload(Expense.owner),
        joinedload(Expense.trip),
        selectinload(Expense.participants).joinedload(ExpenseParticipant.participant),
        selectinload(Expense.line_items).selectinload(ExpenseLineItem.participants).joinedload(LineItemParticipant.participant),
    )


def get_expense(db: Session, group_id: int, expense_id: int) -> Expense:
    expense = _expense_query(db).filter(
        Expense.id == expense_id,
        Expense.group_id == group_id
    ).first()
    if not expense:
        raise NotFoundError("Expense", expense_id)
    return expense


def list_expenses(db: Session, group_id: int, trip_id: Optional[int] = None) -> List[Expense]:
    """Expenses of a group (optionally one trip), newest first."""
    query = _expense_query(db).filter(Expense.group_id == group_id)
    if trip_id is not None:
        query = query.filter(Expense.trip_id == trip_id)
    return query.order_by(Expense.created_at.desc(), Expense.id.desc()).all()


def resolve_external_participant(db: Session, group_id: int, name: str) -> ExternalParticipant:
    """Find-or-create an external participant by (group, name) and bump last_used_at."""
    name = name.strip()
    participant = db.query(ExternalParticipant).filter(
        ExternalParticipant.group_id == group_id,
        ExternalParticipant.name == name
    ).first()
    if participant is None:
        participant = ExternalParticipant(group_id=group_id, name=name, last_used_at=utcnow())
        db.add(participant)
    else:
        participant.last_used_at = utcnow()
    db.flush()
    return participant


def list_external_participants(db: Session, group_id: int) -> List[ExternalParticipant]:
    return db.query(ExternalParticipant).filter(
        ExternalParticipant.group_id == group_id
    ).order_by(ExternalParticipant.last_used_at.desc(), ExternalParticipant.name.asc()).all()


# Validation

def _check_members(db: Session, group_id: int, member_ids: Sequence[int], message: str) -> None:
    ids = set(member_ids)
    if not ids:
        return
    found = db.query(GroupMember.id).filter(
        GroupMember.id.in_(ids),
        GroupMember.group_id == group_id
    ).count()
    if found != len(ids):
        raise ValidationError(message)


def _check_split(splits: Sequence[ParticipantSplit], label: str) -> None:
    member_counts = Counter(s.participant_id for s in splits if s.participant_id is not None)
    name_counts = Counter(s.external_name for s in splits if s.external_name is not None)
    if any(c > 1 for c in member_counts.values()) or any(c > 1 for c in name_counts.values()):
        raise ValidationError(f"Duplicate participant in split for {label}")
    validate_split_percentages([s.split_percentage for s in splits], label=label)


def _split_member_ids(participants, line_items) -> List[int]:
    ids = []
    for split in participants or []:
        if split.participant_id is not None:
            ids.append(split.participant_id)
    for line_item in line_items or []:
        for split in line_item.participants:
            if split.participant_id is not None:
                ids.append(split.participant_id)
    return ids


def _validate_splits(
    db: Session,
    group_id: int,
    participants: Optional[Sequence[ParticipantSplit]],
    line_items: Optional[Sequence[LineItemCreate]]
) -> None:
    _check_members(db, group_id, _split_member_ids(participants, line_items),
                   "All participants must be members of the group")
    if line_items:
        for line_item in line_items:
            _check_split(line_item.participants, f'line item "{line_item.description}"')
    elif participants:
        _check_split(participants, "expense")


def _validate_day_and_event(db: Session, trip_id: int, day_id: Optional[int], event_id: Optional[int]) -> None:
    if day_id is not None:
        day = db.query(TripDay).filter(TripDay.id == day_id, TripDay.trip_id == trip_id).first()
        if not day:
            raise ValidationError("Invalid day for this trip", field="day_id")
    if event_id is not None:
        event = db.query(Event).join(TripDay).filter(
            Event.id == event_id,
            TripDay.trip_id == trip_id
        ).first()
        if not event:
            raise ValidationError("Invalid event for this trip", field="event_id")


# Share construction

def _build_shares(db: Session, group_id: int, total, splits: Sequence[ParticipantSplit], model) -> list:
    amounts = split_amount(total, [s.split_percentage for s in splits])
    shares = []
    for split, amount_owed in zip(splits, amounts):
        external_id = None
        if split.participant_id is None and split.external_name:
            external_id = resolve_external_participant(db, group_id, split.external_name).id
        shares.append(model(
            participant_id=split.participant_id,
            external_participant_id=external_id,
            external_name=split.external_name,
            split_percentage=split.split_percentage,
            amount_owed=amount_owed
        ))
    return shares


def _build_line_items(db: Session, group_id: int, line_items: Sequence[LineItemCreate]) -> List[ExpenseLineItem]:
    built = []
    for line_item in line_items:
        row = ExpenseLineItem(
            description=line_item.description,
            amount=line_item.amount,
            quantity=line_item.quantity,
            category=line_item.category
        )
        row.participants = _build_shares(
            db, group_id, line_item.amount * line_item.quantity, line_item.participants, LineItemParticipant
        )
        built.append(row)
    return built


def _recompute_shares(expense: Expense) -> None:
    """Re-derive amount_owed of existing expense-level shares after an amount change."""
    shares = list(expense.participants)
    amounts = split_amount(expense.amount, [s.split_percentage for s in shares])
    for share, amount_owed in zip(shares, amounts):
        share.amount_owed = amount_owed


# Writes

def create_expense(db: Session, group_id: int, data: ExpenseCreate) -> Expense:
    """Validate and create an expense with its shares or line items."""
    trip = db.query(Trip).filter(Trip.id == data.trip_id, Trip.group_id == group_id).first()
    if not trip:
        raise NotFoundError("Trip", data.trip_id)

    _check_members(db, group_id, [data.owner_id], "Owner must be a member of the group")
    _validate_splits(db, group_id, data.participants, data.line_items)
    _validate_day_and_event(db, trip.id, data.day_id, data.event_id)

    try:
        expense = Expense(
            description=data.description,
            amount=data.amount,
            category=data.category,
            owner_id=data.owner_id,
            trip_id=trip.id,
            group_id=group_id,
            day_id=data.day_id,
            event_id=data.event_id
        )
        if data.line_items:
            expense.line_items = _build_line_items(db, group_id, data.line_items)
        elif data.participants:
            expense.participants = _build_shares(db, group_id, data.amount, data.participants, ExpenseParticipant)
        db.add(expense)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Created expense %s in trip %s", expense.id, trip.id)
    return get_expense(db, group_id, expense.id)


def update_expense(db: Session, group_id: int, expense_id: int, data: ExpenseUpdate) -> Expense:
    """
    Apply a partial update. New participants or line items replace the old
    ones; an amount change alone re-derives the existing shares.
    """
    expense = get_expense(db, group_id, expense_id)
    fields = data.model_dump(exclude_unset=True)
    for name in REQUIRED_FIELDS:
        if name in fields and fields[name] is None:
            raise ValidationError("cannot be null", field=name)

    if data.owner_id is not None:
        _check_members(db, group_id, [data.owner_id], "Owner must be a member of the group")
    if data.participants is not None or data.line_items is not None:
        _validate_splits(db, group_id, data.participants, data.line_items)
    _validate_day_and_event(db, expense.trip_id, data.day_id, data.event_id)

    try:
        for name in ("description", "amount", "category", "owner_id", "day_id", "event_id"):
            if name in fields:
                setattr(expense, name, fields[name])

        if data.line_items or data.participants:
            expense.participants = []
            expense.line_items = []
            # Old rows must be gone before new ones reuse their unique keys
            db.flush()
            if data.line_items:
                expense.line_items = _build_line_items(db, group_id, data.line_items)
            else:
                expense.participants = _build_shares(
                    db, group_id, expense.amount, data.participants, ExpenseParticipant
                )
        elif "amount" in fields and expense.participants:
            _recompute_shares(expense)

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Updated expense %s", expense_id)
    db.expire_all()
    return get_expense(db, group_id, expense_id)


def delete_expense(db: Session, group_id: int, expense_id: int) -> None:
    expense = get_expense(db, group_id, expense_id)
    db.delete(expense)
    db.commit()
    logger.info("Deleted expense %s", expense_id)
