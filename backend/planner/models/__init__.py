"""Models package - Import all models for SQLAlchemy registration."""
from planner.models.group import TravelGroup, GroupMember
from planner.models.trip import Trip, TripDay, Event
from planner.models.expense import Expense, ExpenseParticipant, ExpenseLineItem, LineItemParticipant
from planner.models.external_participant import ExternalParticipant
from planner.models.device_session import Device, DeviceSession, CleanupLog

__all__ = [
    "TravelGroup",
    "GroupMember",
    "Trip",
    "TripDay",
    "Event",
    "Expense",
    "ExpenseParticipant",
    "ExpenseLineItem",
    "LineItemParticipant",
    "ExternalParticipant",
    "Device",
    "DeviceSession",
    "CleanupLog",
]
