"""
External participant registry routes.
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from planner.api.dependencies import requires
from planner.core.permissions import Permission
from planner.db.session import get_db
from planner.schemas.external_participant import ExternalParticipantCreate, ExternalParticipantResponse
from planner.services import expense_service
from planner.services.session_service import SessionContext

router = APIRouter(prefix="/external-participants", tags=["external-participants"])


@router.get("", response_model=List[ExternalParticipantResponse])
async def list_external_participants(
    context: SessionContext = Depends(requires(Permission.READ)),
    db: Session = Depends(get_db)
):
    """Most recently used first."""
    return expense_service.list_external_participants(db, context.group_id)


@router.post("", response_model=ExternalParticipantResponse)
async def register_external_participant(
    payload: ExternalParticipantCreate,
    context: SessionContext = Depends(requires(Permission.CREATE)),
    db: Session = Depends(get_db)
):
    """Find or create an external participant by name."""
    participant = expense_service.resolve_external_participant(db, context.group_id, payload.name)
    db.commit()
    db.refresh(participant)
    return participant
