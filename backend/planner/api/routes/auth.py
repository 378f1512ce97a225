"""
Authentication routes for the access code gate, group login and logout.
"""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session
from planner.api.cookies import clear_session_cookies, set_access_cookie, set_session_cookies
from planner.api.dependencies import get_client_ip, get_current_context
from planner.db.session import get_db
from planner.schemas.group import PermissionFlags
from planner.schemas.session import (
    VerifyCodeRequest, LoginRequest, LogoutRequest, LoginResponse,
    SessionMember, SessionContextResponse, SessionExpiryInfo
)
from planner.services import session_service
from planner.services.session_policy import get_default_session_type
from planner.services.session_service import LoginResult, SessionContext

router = APIRouter(prefix="/auth", tags=["auth"])


def build_login_response(result: LoginResult) -> LoginResponse:
    """Login payload shared by login, auto-login and group creation."""
    return LoginResponse(
        group_id=result.group.id,
        group_name=result.group.name,
        current_member=SessionMember(
            name=result.member.traveler_name,
            role=result.member.role,
            permissions=PermissionFlags(**result.context.permissions.to_dict())
        ),
        device_session_saved=result.device_session is not None
    )


@router.post("/verify-code")
async def verify_code(payload: VerifyCodeRequest, response: Response):
    """Check the shared access code and set the access cookie."""
    token = session_service.verify_site_code(payload.code)
    set_access_cookie(response, token)
    return {"success": True}


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """Log in to a group as one of its travelers."""
    result = session_service.login(
        db,
        group_id=payload.group_id,
        access_code=payload.access_code,
        traveler_name=payload.traveler_name.strip(),
        device_fingerprint=payload.device_fingerprint,
        session_type=get_default_session_type(payload.remember_device, payload.trusted_device),
        user_agent=request.headers.get("user-agent"),
        ip_address=get_client_ip(request)
    )
    set_session_cookies(response, result.issued)
    return build_login_response(result)


@router.post("/logout")
async def logout(payload: LogoutRequest, response: Response, db: Session = Depends(get_db)):
    """Clear the session cookies and deactivate the device's sessions."""
    session_service.logout(db, payload.device_fingerprint)
    clear_session_cookies(response)
    return {"success": True}


@router.get("/session", response_model=SessionContextResponse)
async def get_session(context: SessionContext = Depends(get_current_context)):
    """Describe the caller's session."""
    expiry = session_service.device_expiry_info(context)
    return SessionContextResponse(
        group_id=context.group_id,
        traveler_name=context.traveler_name,
        member_id=context.member_id,
        role=context.role.name,
        permissions=PermissionFlags(**context.permissions.to_dict()),
        session_type=context.session_type,
        device_expiry=SessionExpiryInfo(**vars(expiry)) if expiry else None
    )
