"""
Group service: groups, members and the cached group overview.
"""
import logging
from typing import List
from sqlalchemy.orm import Session
from planner.core.cache import GroupCache
from planner.core.errors import NotFoundError, ValidationError
from planner.core.permissions import ALL_PERMISSIONS, MemberRole
from planner.core.security import hash_access_code
from planner.models.device_session import DeviceSession
from planner.models.expense import Expense, ExpenseParticipant, LineItemParticipant
from planner.models.group import GroupMember, TravelGroup
from planner.models.trip import Trip
from planner.schemas.group import (
    GroupCreate, GroupOverviewResponse, GroupResponse, ExpenseTotals,
    MemberCreate, MemberResponse, MemberUpdate, OverviewTrip
)
from planner.services import balance_service
from planner.services.expense_service import list_expenses

logger = logging.getLogger(__name__)

OVERVIEW_KEY = "overview"


def get_group(db: Session, group_id: int) -> TravelGroup:
    group = db.query(TravelGroup).filter(TravelGroup.id == group_id).first()
    if not group:
        raise NotFoundError("Group", group_id)
    return group


def get_member(db: Session, group_id: int, member_id: int) -> GroupMember:
    member = db.query(GroupMember).filter(
        GroupMember.id == member_id,
        GroupMember.group_id == group_id
    ).first()
    if not member:
        raise NotFoundError("Member", member_id)
    return member


def list_members(db: Session, group_id: int) -> List[GroupMember]:
    return db.query(GroupMember).filter(
        GroupMember.group_id == group_id
    ).order_by(GroupMember.created_at.asc(), GroupMember.id.asc()).all()


def _check_name_free(db: Session, group_id: int, traveler_name: str) -> None:
    taken = db.query(GroupMember).filter(
        GroupMember.group_id == group_id,
        GroupMember.traveler_name == traveler_name
    ).first()
    if taken:
        raise ValidationError(f"Traveler name '{traveler_name}' is already taken in this group",
                              field="traveler_name")


def create_group(db: Session, data: GroupCreate):
    """Create a group; the founding traveler becomes its adventurer."""
    group = TravelGroup(name=data.name, access_code_hash=hash_access_code(data.access_code))
    founder = GroupMember(
        traveler_name=data.traveler_name.strip(),
        role=MemberRole.ADVENTURER,
        permissions=ALL_PERMISSIONS.to_dict()
    )
    group.members.append(founder)
    db.add(group)
    db.commit()
    db.refresh(group)
    db.refresh(founder)
    logger.info("Created group %s with adventurer %s", group.id, founder.traveler_name)
    return group, founder


def delete_group(db: Session, group_id: int) -> None:
    group = get_group(db, group_id)
    db.delete(group)
    db.commit()
    logger.info("Deleted group %s", group_id)


def add_member(db: Session, group_id: int, data: MemberCreate) -> GroupMember:
    traveler_name = data.traveler_name.strip()
    _check_name_free(db, group_id, traveler_name)
    member = GroupMember(
        group_id=group_id,
        traveler_name=traveler_name,
        role=MemberRole.PARTY_MEMBER,
        permissions=data.permissions.model_dump()
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info("Added member %s to group %s", traveler_name, group_id)
    return member


def update_member(db: Session, group_id: int, member_id: int, data: MemberUpdate) -> GroupMember:
    member = get_member(db, group_id, member_id)

    if data.role is not None and data.role != member.role:
        if member.role == MemberRole.ADVENTURER:
            adventurers = db.query(GroupMember).filter(
                GroupMember.group_id == group_id,
                GroupMember.role == MemberRole.ADVENTURER
            ).count()
            if adventurers <= 1:
                raise ValidationError("A group must keep at least one adventurer", field="role")
        member.role = data.role

    if member.role == MemberRole.ADVENTURER:
        member.permissions = ALL_PERMISSIONS.to_dict()
    elif data.permissions is not None:
        member.permissions = data.permissions.model_dump()

    db.commit()
    db.refresh(member)
    return member


def _has_expenses(db: Session, member_id: int) -> bool:
    if db.query(Expense.id).filter(Expense.owner_id == member_id).first():
        return True
    if db.query(ExpenseParticipant.id).filter(ExpenseParticipant.participant_id == member_id).first():
        return True
    return db.query(LineItemParticipant.id).filter(LineItemParticipant.participant_id == member_id).first() is not None


def remove_member(db: Session, group_id: int, member_id: int) -> None:
    """Remove a party member and the device sessions currently signed in as them."""
    member = get_member(db, group_id, member_id)
    if member.role == MemberRole.ADVENTURER:
        raise ValidationError("Cannot remove the adventurer from the group")
    if _has_expenses(db, member.id):
        raise ValidationError("Cannot remove a member who has expenses in this group")

    traveler_name = member.traveler_name
    db.query(DeviceSession).filter(
        DeviceSession.group_id == group_id,
        DeviceSession.current_traveler_name == traveler_name
    ).delete(synchronize_session=False)
    db.delete(member)
    db.commit()
    logger.info("Removed member %s from group %s", traveler_name, group_id)


def build_group_overview(db: Session, group_id: int, member_id: int) -> GroupOverviewResponse:
    group = get_group(db, group_id)
    members = list_members(db, group_id)
    current = next((m for m in members if m.id == member_id), None)
    if current is None:
        raise NotFoundError("Member", member_id)

    trips = db.query(Trip).filter(Trip.group_id == group_id).order_by(Trip.start_date.desc()).all()
    expenses = list_expenses(db, group_id)
    personal = balance_service.compute_personal_summary(current, members, trips, expenses)

    return GroupOverviewResponse(
        group=GroupResponse.model_validate(group),
        current_member=MemberResponse.model_validate(current),
        members=[MemberResponse.model_validate(m) for m in members],
        trips=[OverviewTrip.model_validate(t) for t in trips],
        expenses_summary=ExpenseTotals(
            total_you_owe=personal.total_you_owe,
            total_owed_to_you=personal.total_owed_to_you,
            net_balance=personal.net_balance,
            total_expenses=personal.total_expenses_across_all_trips
        )
    )


def get_group_overview(db: Session, cache: GroupCache, group_id: int, member_id: int) -> GroupOverviewResponse:
    """Group overview for one member, served from the cache when fresh."""
    key = (OVERVIEW_KEY, member_id)
    overview = cache.get(group_id, key)
    if overview is None:
        overview = build_group_overview(db, group_id, member_id)
        cache.set(group_id, overview, key)
    return overview
