"""
Shared dependencies for API routes.
"""
from typing import Optional
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session
from planner.core.cache import GroupCache
from planner.core.errors import PermissionDeniedError
from planner.core.permissions import Permission, is_adventurer
from planner.db.session import get_db
from planner.services.session_service import (
    CookieState, SessionContext, require_permission, resolve_session
)

DEVICE_FINGERPRINT_HEADER = "X-Device-Fingerprint"


def get_cookie_state(request: Request) -> CookieState:
    return CookieState.from_cookies(request.cookies)


def get_device_fingerprint(
    x_device_fingerprint: Optional[str] = Header(None, alias=DEVICE_FINGERPRINT_HEADER)
) -> Optional[str]:
    """Opaque device fingerprint supplied by the client, if any."""
    return x_device_fingerprint or None


def get_client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_current_context(
    cookies: CookieState = Depends(get_cookie_state),
    device_fingerprint: Optional[str] = Depends(get_device_fingerprint),
    db: Session = Depends(get_db)
) -> SessionContext:
    """Resolve the caller's session or raise UnauthorizedAccessError."""
    return resolve_session(db, cookies, device_fingerprint)


def requires(permission: Permission):
    """Dependency factory: the current context, provided its role grants ``permission``."""
    def dependency(context: SessionContext = Depends(get_current_context)) -> SessionContext:
        require_permission(context, permission)
        return context
    return dependency


def get_adventurer_context(context: SessionContext = Depends(get_current_context)) -> SessionContext:
    if not is_adventurer(context.role):
        raise PermissionDeniedError("Only group adventurers can manage the group")
    return context


def get_group_cache(request: Request) -> GroupCache:
    return request.app.state.group_cache
