"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from planner.api.routes import (
    auth, device_sessions, groups, trips, expenses, external_participants
)

api_router = APIRouter()

# Include all route modules
api_router.include_router(auth.router)
api_router.include_router(device_sessions.router)
api_router.include_router(groups.router)
api_router.include_router(trips.router)
api_router.include_router(expenses.router)
api_router.include_router(external_participants.router)
