"""
Pydantic schemas for authentication and device sessions.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from planner.core.permissions import MemberRole
from planner.schemas.group import PermissionFlags


class VerifyCodeRequest(BaseModel):
    code: str


class LoginRequest(BaseModel):
    """Group login with the group's access code."""
    group_id: int
    access_code: str
    traveler_name: str = Field(..., min_length=1, max_length=255)
    device_fingerprint: Optional[str] = Field(None, max_length=255)
    remember_device: Optional[bool] = None
    trusted_device: bool = False


class LogoutRequest(BaseModel):
    device_fingerprint: Optional[str] = None


class DeviceCheckRequest(BaseModel):
    device_fingerprint: str = Field(..., min_length=1, max_length=255)


class AutoLoginRequest(BaseModel):
    device_fingerprint: str = Field(..., min_length=1, max_length=255)
    group_id: int
    traveler_name: str = Field(..., min_length=1, max_length=255)


class DeviceSaveRequest(BaseModel):
    device_fingerprint: str = Field(..., min_length=1, max_length=255)
    session_type: Optional[str] = None


class SessionMember(BaseModel):
    name: str
    role: MemberRole
    permissions: PermissionFlags


class LoginResponse(BaseModel):
    success: bool = True
    group_id: int
    group_name: str
    current_member: SessionMember
    device_session_saved: bool = False


class DeviceSaveResponse(BaseModel):
    success: bool = True
    session_id: int
    expires_at: datetime


class AvailableSessionResponse(BaseModel):
    """A group/traveler pair the device can resume without credentials."""
    group_id: int
    group_name: str
    traveler_name: str
    role: MemberRole
    permissions: PermissionFlags
    last_login: datetime


class DeviceCheckResponse(BaseModel):
    success: bool = True
    sessions: List[AvailableSessionResponse] = []


class SessionExpiryInfo(BaseModel):
    is_expiring_soon: bool
    days_until_expiry: int
    time_until_idle_expiry: int  # seconds
    session_type_name: str


class SessionContextResponse(BaseModel):
    """The caller's resolved identity."""
    group_id: int
    traveler_name: str
    member_id: int
    role: MemberRole
    permissions: PermissionFlags
    session_type: str  # cookie, device or both
    device_expiry: Optional[SessionExpiryInfo] = None
