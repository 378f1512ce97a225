"""
Pydantic schemas for TravelGroup and GroupMember entities.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from planner.core.permissions import MemberRole


class PermissionFlags(BaseModel):
    read: bool = True
    create: bool = False
    modify: bool = False


class GroupCreate(BaseModel):
    """Schema for group creation; the founder becomes the adventurer."""
    name: str = Field(..., min_length=1, max_length=200)
    access_code: str = Field(..., min_length=4, max_length=128)
    traveler_name: str = Field(..., min_length=1, max_length=255)
    device_fingerprint: Optional[str] = Field(None, max_length=255)


class GroupResponse(BaseModel):
    id: int
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class MemberCreate(BaseModel):
    """Schema for adding a party member."""
    traveler_name: str = Field(..., min_length=1, max_length=255)
    permissions: PermissionFlags = PermissionFlags()


class MemberUpdate(BaseModel):
    """Role and permission changes. Names are fixed once a member exists."""
    role: Optional[MemberRole] = None
    permissions: Optional[PermissionFlags] = None


class MemberResponse(BaseModel):
    id: int
    traveler_name: str
    role: MemberRole
    permissions: PermissionFlags
    created_at: datetime

    class Config:
        from_attributes = True


class OverviewTrip(BaseModel):
    id: int
    name: str
    destination: Optional[str] = None
    start_date: date
    end_date: date

    class Config:
        from_attributes = True


class ExpenseTotals(BaseModel):
    total_you_owe: Decimal
    total_owed_to_you: Decimal
    net_balance: Decimal
    total_expenses: Decimal


class GroupOverviewResponse(BaseModel):
    """Everything the client needs after switching to a group."""
    group: GroupResponse
    current_member: MemberResponse
    members: List[MemberResponse]
    trips: List[OverviewTrip]
    expenses_summary: ExpenseTotals
