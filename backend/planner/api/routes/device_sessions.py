"""
Device session routes: remember a device, list resumable sessions, auto-login.
"""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session
from planner.api.cookies import set_session_cookies
from planner.api.dependencies import get_client_ip, get_current_context
from planner.api.routes.auth import build_login_response
from planner.db.session import get_db
from planner.schemas.group import PermissionFlags
from planner.schemas.session import (
    AutoLoginRequest, AvailableSessionResponse, DeviceCheckRequest, DeviceCheckResponse,
    DeviceSaveRequest, DeviceSaveResponse, LoginResponse
)
from planner.services import session_service
from planner.services.session_policy import SessionType
from planner.services.session_service import SessionContext

router = APIRouter(prefix="/device-sessions", tags=["device-sessions"])


@router.post("/save", response_model=DeviceSaveResponse)
async def save_device_session(
    payload: DeviceSaveRequest,
    request: Request,
    context: SessionContext = Depends(get_current_context),
    db: Session = Depends(get_db)
):
    """Create or refresh this device's session for the caller's group."""
    device_session = session_service.refresh_device_session(
        db,
        payload.device_fingerprint,
        context.group_id,
        context.traveler_name,
        session_type=payload.session_type or SessionType.REMEMBER_DEVICE,
        user_agent=request.headers.get("user-agent"),
        ip_address=get_client_ip(request)
    )
    return DeviceSaveResponse(session_id=device_session.id, expires_at=device_session.expires_at)


@router.post("/check", response_model=DeviceCheckResponse)
async def check_device_sessions(payload: DeviceCheckRequest, db: Session = Depends(get_db)):
    """List the group/traveler pairs this device can resume."""
    sessions = session_service.check_device_sessions(db, payload.device_fingerprint)
    return DeviceCheckResponse(sessions=[
        AvailableSessionResponse(
            group_id=s.group_id,
            group_name=s.group_name,
            traveler_name=s.traveler_name,
            role=s.role,
            permissions=PermissionFlags(**(s.permissions or {})),
            last_login=s.last_login
        )
        for s in sessions
    ])


@router.post("/auto-login", response_model=LoginResponse)
async def auto_login(payload: AutoLoginRequest, response: Response, db: Session = Depends(get_db)):
    """Log in from a remembered device without the access code."""
    result = session_service.auto_login(
        db, payload.device_fingerprint, payload.group_id, payload.traveler_name
    )
    set_session_cookies(response, result.issued)
    return build_login_response(result)
