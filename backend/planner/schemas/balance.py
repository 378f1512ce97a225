"""
Pydantic schemas for balance summaries.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from decimal import Decimal


class MemberBalance(BaseModel):
    """Net amount with one counterparty: positive = they owe you, negative = you owe them."""
    member_id: int
    member_name: str
    amount: Decimal

    class Config:
        from_attributes = True


class BalanceSummaryResponse(BaseModel):
    member_id: int
    member_name: str
    total_owed: Decimal
    total_owing: Decimal
    net_balance: Decimal
    balances_with: List[MemberBalance] = []

    class Config:
        from_attributes = True


class DebtResponse(BaseModel):
    """Amount one member owes another."""
    from_member_id: int
    from_member_name: str
    to_member_id: int
    to_member_name: str
    amount: Decimal

    class Config:
        from_attributes = True


class TripInfo(BaseModel):
    id: int
    name: str
    destination: Optional[str] = None
    start_date: date
    end_date: date

    class Config:
        from_attributes = True


class ExpenseSummaryResponse(BaseModel):
    """Schema for the group balance table."""
    balances: List[BalanceSummaryResponse]
    settlements: List[DebtResponse]  # Net pairwise debts
    suggested_transfers: List[DebtResponse]  # Fewest transfers settling all net balances
    trip: Optional[TripInfo] = None
    total_expenses: Decimal


class TripAmount(BaseModel):
    trip_id: int
    trip_name: str
    amount: Decimal

    class Config:
        from_attributes = True


class Counterparty(BaseModel):
    member_id: int
    member_name: str
    amount: Decimal
    trips: List[TripAmount] = []

    class Config:
        from_attributes = True


class TripBreakdown(BaseModel):
    trip_id: int
    trip_name: str
    trip_destination: Optional[str] = None
    total_expenses: Decimal
    you_paid: Decimal
    your_share: Decimal
    you_owe: Decimal
    owed_to_you: Decimal

    class Config:
        from_attributes = True


class PersonalSummaryResponse(BaseModel):
    """Schema for the caller's own balances across every trip of the group."""
    current_member_id: int
    current_member_name: str
    total_expenses_across_all_trips: Decimal
    total_you_owe: Decimal
    total_owed_to_you: Decimal
    net_balance: Decimal
    trip_breakdowns: List[TripBreakdown] = []
    people_you_owe: List[Counterparty] = []
    people_who_owe_you: List[Counterparty] = []

    class Config:
        from_attributes = True
