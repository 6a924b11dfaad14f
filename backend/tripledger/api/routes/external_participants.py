"""
External participant routes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from tripledger.db.session import get_db
from tripledger.schemas.external_participant import ExternalParticipantCreate, ExternalParticipantResponse
from tripledger.api.dependencies import MemberContext, get_current_member
from tripledger.services import external_participant_service

router = APIRouter(prefix="/external-participants", tags=["external-participants"])


@router.get("", response_model=List[ExternalParticipantResponse])
async def list_external_participants(
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """External participants of the current group, most recently used first."""
    return external_participant_service.list_external_participants(db, current_member.group_id)


@router.post("", response_model=ExternalParticipantResponse)
async def register_external_participant(
    data: ExternalParticipantCreate,
    current_member: MemberContext = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Register a name, or refresh it when the group already knows it."""
    try:
        participant = external_participant_service.resolve_external_participant(
            db, current_member.group_id, data.name
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(participant)
    return participant
