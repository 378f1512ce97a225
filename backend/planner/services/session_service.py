"""
Session reconciliation: cookie sessions, device sessions and the transitions between them.

States::

    Unauthenticated -> Active(cookie) -> Active(cookie+device) -> Expired -> LoggedOut

Each event has one transition function here: ``login``, ``auto_login``,
``logout`` and ``expire_device_session``. ``resolve_session`` turns the
cookies of a request (plus an optional device fingerprint) into a
``SessionContext`` or raises ``UnauthorizedAccessError``.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional
import enum
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from planner.core.config import settings
from planner.core.errors import (
    NotFoundError, PermissionDeniedError, UnauthorizedAccessError, InternalError
)
from planner.core.permissions import Permission, Role, role_for_member
from planner.core.security import (
    ACCESS_SCOPE, GROUP_SCOPE, create_session_token, decode_session_token,
    verify_access_code, verify_site_access_code
)
from planner.core.utils import utcnow
from planner.models.device_session import Device, DeviceSession
from planner.models.group import GroupMember, TravelGroup
from planner.services.session_policy import (
    SessionType, extend_session_lifespan, get_session_expiry_info,
    is_session_valid, parse_session_type
)

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    ACTIVE_COOKIE = "cookie"
    ACTIVE_DEVICE = "both"
    EXPIRED = "expired"
    LOGGED_OUT = "logged_out"


@dataclass
class CookieState:
    """The three session cookies as read from a request."""
    session_token: Optional[str] = None
    group_id: Optional[str] = None
    traveler_name: Optional[str] = None

    @classmethod
    def from_cookies(cls, cookies) -> "CookieState":
        return cls(
            session_token=cookies.get(settings.SESSION_COOKIE),
            group_id=cookies.get(settings.GROUP_ID_COOKIE),
            traveler_name=cookies.get(settings.TRAVELER_NAME_COOKIE),
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.session_token and self.group_id and self.traveler_name)


@dataclass
class SessionContext:
    """Authenticated identity of the caller."""
    group_id: int
    traveler_name: str
    member_id: int
    role: Role
    state: SessionState = SessionState.ACTIVE_COOKIE
    device_fingerprint: Optional[str] = None
    device_session: Optional[DeviceSession] = field(default=None, repr=False)

    @property
    def permissions(self):
        return self.role.permissions

    @property
    def session_type(self) -> str:
        return self.state.value

    def can(self, permission) -> bool:
        return self.role.can(permission)


@dataclass
class IssuedSession:
    """Cookie values to hand back to the client."""
    token: str
    group_id: int
    traveler_name: str
    max_age: int  # seconds


@dataclass
class LoginResult:
    group: TravelGroup
    member: GroupMember
    context: SessionContext
    issued: IssuedSession
    device_session: Optional[DeviceSession] = None


@dataclass
class AvailableSession:
    group_id: int
    group_name: str
    traveler_name: str
    role: str
    permissions: dict
    last_login: datetime


def require_permission(context: SessionContext, permission) -> None:
    """Raise PermissionDeniedError unless the caller's role grants ``permission``."""
    if not context.can(permission):
        perm = Permission(permission).value
        raise PermissionDeniedError(f"Insufficient permissions: {perm} required")


def issue_session(group_id: int, traveler_name: str) -> IssuedSession:
    max_age = timedelta(days=settings.SESSION_COOKIE_MAX_AGE_DAYS)
    token = create_session_token(GROUP_SCOPE, group_id=group_id, traveler_name=traveler_name, expires_delta=max_age)
    return IssuedSession(token=token, group_id=group_id, traveler_name=traveler_name,
                         max_age=int(max_age.total_seconds()))


def verify_site_code(code: str) -> str:
    """Check the global access code and return an access-scoped token."""
    if not settings.ACCESS_CODE:
        logger.error("ACCESS_CODE environment variable not set")
        raise InternalError("Server configuration error")
    if not verify_site_access_code(code):
        raise UnauthorizedAccessError("Invalid access code")
    return create_session_token(
        ACCESS_SCOPE, expires_delta=timedelta(days=settings.ACCESS_CODE_COOKIE_MAX_AGE_DAYS)
    )


def _find_member(db: Session, group_id: int, traveler_name: str) -> Optional[GroupMember]:
    return db.query(GroupMember).filter(
        GroupMember.group_id == group_id,
        GroupMember.traveler_name == traveler_name
    ).first()


def _active_device_session(db: Session, device_fingerprint: str, group_id: int) -> Optional[DeviceSession]:
    return db.query(DeviceSession).filter(
        DeviceSession.device_fingerprint == device_fingerprint,
        DeviceSession.group_id == group_id,
        DeviceSession.is_active.is_(True)
    ).first()


def expire_device_session(db: Session, device_session: DeviceSession) -> None:
    """Mark a session that failed validation inactive (lazy expiry)."""
    device_session.is_active = False
    db.commit()
    logger.info("Device session %s expired", device_session.id)


def resolve_session(
    db: Session,
    cookies: CookieState,
    device_fingerprint: Optional[str] = None,
    now: Optional[datetime] = None
) -> SessionContext:
    """Resolve the caller's identity from cookies, enriched by a device session when one backs it."""
    if not cookies.is_complete:
        raise UnauthorizedAccessError("No session cookies found", requires_device_setup=True)

    claims = decode_session_token(cookies.session_token)
    if not claims or claims.get("scope") != GROUP_SCOPE:
        raise UnauthorizedAccessError("Invalid session")

    if str(claims.get("group_id")) != cookies.group_id or claims.get("traveler_name") != cookies.traveler_name:
        raise UnauthorizedAccessError("Session does not match group cookies")

    group_id = int(claims["group_id"])
    member = _find_member(db, group_id, cookies.traveler_name)
    if not member:
        raise UnauthorizedAccessError("Member not found or invalid")

    context = SessionContext(
        group_id=group_id,
        traveler_name=member.traveler_name,
        member_id=member.id,
        role=role_for_member(member),
        device_fingerprint=device_fingerprint
    )

    if device_fingerprint:
        device_session = _active_device_session(db, device_fingerprint, group_id)
        if device_session is not None:
            now = now or utcnow()
            if not is_session_valid(device_session, now):
                expire_device_session(db, device_session)
            elif member.traveler_name in (device_session.available_travelers or []):
                device_session.last_used = now
                db.commit()
                context.state = SessionState.ACTIVE_DEVICE
                context.device_session = device_session

    return context


def refresh_device_session(
    db: Session,
    device_fingerprint: str,
    group_id: int,
    traveler_name: str,
    session_type=SessionType.REMEMBER_DEVICE,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
    now: Optional[datetime] = None
) -> DeviceSession:
    """
    Upsert the device session keyed by (device_fingerprint, group_id).

    Other active sessions of the same fingerprint are deactivated first, so
    at most one session per device is active. Calling this repeatedly with
    the same arguments leaves a single active row with ``last_used`` advanced.
    """
    session_type = parse_session_type(session_type)
    window = extend_session_lifespan(session_type, now)

    try:
        device = db.query(Device).filter(Device.fingerprint == device_fingerprint).first()
        if device is None:
            device = Device(fingerprint=device_fingerprint, user_agent=user_agent)
            db.add(device)
        elif user_agent:
            device.user_agent = user_agent
        db.flush()

        db.query(DeviceSession).filter(
            DeviceSession.device_fingerprint == device_fingerprint,
            DeviceSession.group_id != group_id,
            DeviceSession.is_active.is_(True)
        ).update({DeviceSession.is_active: False}, synchronize_session="fetch")

        device_session = db.query(DeviceSession).filter(
            DeviceSession.device_fingerprint == device_fingerprint,
            DeviceSession.group_id == group_id
        ).first()

        if device_session is None:
            device_session = DeviceSession(
                device_fingerprint=device_fingerprint,
                group_id=group_id,
                available_travelers=[traveler_name],
            )
            db.add(device_session)
        elif traveler_name not in (device_session.available_travelers or []):
            # JSON columns only persist on reassignment
            device_session.available_travelers = list(device_session.available_travelers or []) + [traveler_name]

        device_session.current_traveler_name = traveler_name
        device_session.session_type = session_type.value
        device_session.expires_at = window.expires_at
        device_session.max_idle_time = window.max_idle_time
        device_session.last_used = window.last_used
        device_session.is_active = True
        if user_agent:
            device_session.user_agent = user_agent
        if ip_address:
            device_session.ip_address = ip_address

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(device_session)
    return device_session


def save_device_session(db: Session, *args, **kwargs) -> Optional[DeviceSession]:
    """Best-effort ``refresh_device_session``: failures are logged, never raised."""
    try:
        return refresh_device_session(db, *args, **kwargs)
    except SQLAlchemyError:
        logger.warning("Failed to save device session", exc_info=True)
        return None


def start_session(
    db: Session,
    group: TravelGroup,
    member: GroupMember,
    device_fingerprint: Optional[str] = None,
    session_type=SessionType.REMEMBER_DEVICE,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
    now: Optional[datetime] = None
) -> LoginResult:
    """Issue cookies for an authenticated member and, if a fingerprint is known, save the device session."""
    issued = issue_session(group.id, member.traveler_name)
    context = SessionContext(
        group_id=group.id,
        traveler_name=member.traveler_name,
        member_id=member.id,
        role=role_for_member(member),
        device_fingerprint=device_fingerprint
    )

    device_session = None
    if device_fingerprint:
        device_session = save_device_session(
            db, device_fingerprint, group.id, member.traveler_name,
            session_type=session_type, user_agent=user_agent, ip_address=ip_address, now=now
        )
        if device_session is not None:
            context.state = SessionState.ACTIVE_DEVICE
            context.device_session = device_session

    return LoginResult(group=group, member=member, context=context, issued=issued, device_session=device_session)


def login(
    db: Session,
    group_id: int,
    access_code: str,
    traveler_name: str,
    device_fingerprint: Optional[str] = None,
    session_type=SessionType.REMEMBER_DEVICE,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
    now: Optional[datetime] = None
) -> LoginResult:
    """Unauthenticated -> Active: verify the group access code and the traveler."""
    session_type = parse_session_type(session_type)
    group = db.query(TravelGroup).filter(TravelGroup.id == group_id).first()
    if not group or not verify_access_code(access_code, group.access_code_hash):
        raise UnauthorizedAccessError("Invalid group or access code")

    member = _find_member(db, group_id, traveler_name)
    if not member:
        raise NotFoundError("Group member")

    logger.info("Traveler %s logged in to group %s", traveler_name, group_id)
    return start_session(db, group, member, device_fingerprint, session_type, user_agent, ip_address, now)


def auto_login(
    db: Session,
    device_fingerprint: str,
    group_id: int,
    traveler_name: str,
    now: Optional[datetime] = None
) -> LoginResult:
    """Re-enter Active(cookie+device) from a remembered device without credentials."""
    now = now or utcnow()
    device_session = _active_device_session(db, device_fingerprint, group_id)
    if device_session is None:
        raise UnauthorizedAccessError("Invalid or expired device session")

    if not is_session_valid(device_session, now):
        expire_device_session(db, device_session)
        raise UnauthorizedAccessError("Invalid or expired device session")

    if traveler_name not in (device_session.available_travelers or []):
        raise UnauthorizedAccessError("Traveler not available on this device")

    group = db.query(TravelGroup).filter(TravelGroup.id == group_id).first()
    member = _find_member(db, group_id, traveler_name)
    if not group or not member:
        raise NotFoundError("Group or member")

    window = extend_session_lifespan(device_session.session_type or SessionType.REMEMBER_DEVICE, now)
    device_session.current_traveler_name = traveler_name
    device_session.expires_at = window.expires_at
    device_session.max_idle_time = window.max_idle_time
    device_session.last_used = window.last_used
    db.commit()

    context = SessionContext(
        group_id=group.id,
        traveler_name=traveler_name,
        member_id=member.id,
        role=role_for_member(member),
        state=SessionState.ACTIVE_DEVICE,
        device_fingerprint=device_fingerprint,
        device_session=device_session
    )
    logger.info("Auto-login for %s in group %s", traveler_name, group_id)
    return LoginResult(group=group, member=member, context=context,
                       issued=issue_session(group.id, traveler_name), device_session=device_session)


def logout(db: Session, device_fingerprint: Optional[str] = None) -> bool:
    """
    Deactivate the device's sessions. Cookie clearing is done by the caller
    and is what makes the logout authoritative, so a failure here is only logged.
    """
    if not device_fingerprint:
        return True
    try:
        count = db.query(DeviceSession).filter(
            DeviceSession.device_fingerprint == device_fingerprint,
            DeviceSession.is_active.is_(True)
        ).update({DeviceSession.is_active: False}, synchronize_session=False)
        db.commit()
        logger.info("Deactivated %d device session(s) on logout", count)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Failed to clear device sessions on logout", exc_info=True)
    return True


def check_device_sessions(db: Session, device_fingerprint: str, now: Optional[datetime] = None) -> List[AvailableSession]:
    """List group/traveler pairs the device can resume, lazily expiring invalid sessions."""
    now = now or utcnow()
    sessions = db.query(DeviceSession).filter(
        DeviceSession.device_fingerprint == device_fingerprint,
        DeviceSession.is_active.is_(True)
    ).order_by(DeviceSession.last_used.desc()).all()

    available = []
    for device_session in sessions:
        if not is_session_valid(device_session, now):
            expire_device_session(db, device_session)
            continue

        group = db.query(TravelGroup).filter(TravelGroup.id == device_session.group_id).first()
        if group is None:
            continue

        for traveler_name in device_session.available_travelers or []:
            member = _find_member(db, device_session.group_id, str(traveler_name))
            if member:
                available.append(AvailableSession(
                    group_id=group.id,
                    group_name=group.name,
                    traveler_name=member.traveler_name,
                    role=member.role,
                    permissions=member.permissions,
                    last_login=device_session.last_used
                ))

    return available


def device_expiry_info(context: SessionContext, now: Optional[datetime] = None):
    """Expiry details of the device session backing a context, if any."""
    if context.device_session is None:
        return None
    return get_session_expiry_info(context.device_session, now)
