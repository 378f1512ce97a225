"""
Pydantic schemas for Expense entity.
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class ParticipantSplit(BaseModel):
    """One share of a split: either a group member or an external name."""
    participant_id: Optional[int] = None
    external_name: Optional[str] = Field(None, min_length=1, max_length=255)
    split_percentage: Decimal = Field(..., ge=0, le=100)

    @field_validator("external_name", mode="before")
    @classmethod
    def strip_external_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_exactly_one_identity(self):
        if (self.participant_id is None) == (self.external_name is None):
            raise ValueError("Provide exactly one of participant_id or external_name")
        return self


class LineItemCreate(BaseModel):
    """Schema for an itemized part of an expense."""
    description: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0)
    quantity: int = Field(1, gt=0)
    category: Optional[str] = Field(None, max_length=100)
    participants: List[ParticipantSplit] = Field(..., min_length=1)


class ExpenseCreate(BaseModel):
    """Schema for expense creation."""
    description: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0)
    category: Optional[str] = Field(None, max_length=100)
    owner_id: int  # Group member who paid
    trip_id: int
    day_id: Optional[int] = None
    event_id: Optional[int] = None
    participants: Optional[List[ParticipantSplit]] = Field(None, min_length=1)
    line_items: Optional[List[LineItemCreate]] = None  # Supersede participants when present


class ExpenseUpdate(BaseModel):
    """Schema for expense update. Omitted fields are left unchanged."""
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(None, gt=0)
    category: Optional[str] = Field(None, max_length=100)
    owner_id: Optional[int] = None
    day_id: Optional[int] = None
    event_id: Optional[int] = None
    participants: Optional[List[ParticipantSplit]] = Field(None, min_length=1)
    line_items: Optional[List[LineItemCreate]] = None


class ExpenseParticipantResponse(BaseModel):
    """Schema for a stored share."""
    id: int
    participant_id: Optional[int] = None
    participant_name: Optional[str] = None
    external_participant_id: Optional[int] = None
    external_name: Optional[str] = None
    split_percentage: Decimal
    amount_owed: Decimal

    class Config:
        from_attributes = True


class LineItemResponse(BaseModel):
    """Schema for a stored line item."""
    id: int
    description: str
    amount: Decimal
    quantity: int
    category: Optional[str] = None
    participants: List[ExpenseParticipantResponse] = []

    class Config:
        from_attributes = True


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: int
    description: str
    amount: Decimal
    category: Optional[str] = None
    owner_id: int
    owner_name: str
    trip_id: int
    group_id: int
    day_id: Optional[int] = None
    event_id: Optional[int] = None
    participants: List[ExpenseParticipantResponse] = []
    line_items: List[LineItemResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
