"""
Group and member management routes.
"""
from typing import List
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
from planner.api.cookies import clear_session_cookies, set_session_cookies
from planner.api.dependencies import (
    get_adventurer_context, get_client_ip, get_current_context, get_group_cache, requires
)
from planner.api.routes.auth import build_login_response
from planner.core.cache import GroupCache
from planner.core.permissions import Permission
from planner.db.session import get_db
from planner.schemas.group import (
    GroupCreate, GroupOverviewResponse, MemberCreate, MemberResponse, MemberUpdate
)
from planner.schemas.session import LoginResponse
from planner.services import group_service, session_service
from planner.services.session_service import SessionContext

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_data: GroupCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """Create a group and log its founder in as the adventurer."""
    group, founder = group_service.create_group(db, group_data)
    result = session_service.start_session(
        db, group, founder,
        device_fingerprint=group_data.device_fingerprint,
        user_agent=request.headers.get("user-agent"),
        ip_address=get_client_ip(request)
    )
    set_session_cookies(response, result.issued)
    return build_login_response(result)


@router.get("/current", response_model=GroupOverviewResponse)
async def get_current_group(
    context: SessionContext = Depends(get_current_context),
    cache: GroupCache = Depends(get_group_cache),
    db: Session = Depends(get_db)
):
    """Overview of the caller's group."""
    return group_service.get_group_overview(db, cache, context.group_id, context.member_id)


@router.delete("/current", status_code=status.HTTP_204_NO_CONTENT)
async def delete_current_group(
    response: Response,
    context: SessionContext = Depends(get_adventurer_context),
    cache: GroupCache = Depends(get_group_cache),
    db: Session = Depends(get_db)
):
    """Delete the caller's group and everything in it."""
    group_service.delete_group(db, context.group_id)
    cache.invalidate(context.group_id)
    clear_session_cookies(response)
    return None


@router.get("/members", response_model=List[MemberResponse])
async def list_members(
    context: SessionContext = Depends(requires(Permission.READ)),
    db: Session = Depends(get_db)
):
    return group_service.list_members(db, context.group_id)


@router.post("/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    member_data: MemberCreate,
    context: SessionContext = Depends(get_adventurer_context),
    cache: GroupCache = Depends(get_group_cache),
    db: Session = Depends(get_db)
):
    """Add a party member."""
    member = group_service.add_member(db, context.group_id, member_data)
    cache.invalidate(context.group_id)
    return member


@router.put("/members/{member_id}", response_model=MemberResponse)
async def update_member(
    member_id: int,
    member_data: MemberUpdate,
    context: SessionContext = Depends(get_adventurer_context),
    cache: GroupCache = Depends(get_group_cache),
    db: Session = Depends(get_db)
):
    """Rename a member or change their role and permissions."""
    member = group_service.update_member(db, context.group_id, member_id, member_data)
    cache.invalidate(context.group_id)
    return member


@router.delete("/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    member_id: int,
    context: SessionContext = Depends(get_adventurer_context),
    cache: GroupCache = Depends(get_group_cache),
    db: Session = Depends(get_db)
):
    """Remove a party member."""
    group_service.remove_member(db, context.group_id, member_id)
    cache.invalidate(context.group_id)
    return None
