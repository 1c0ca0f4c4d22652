"""Draw Routes - create a draw, list the caller's draws, list a draw's participants.

Invariants:
    - Request bodies validated by Pydantic before reaching the handler
    - Domain errors propagate to the global SantaError handler
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from secret_santa.api.dependencies import get_current_user_id, get_draw_orchestrator
from secret_santa.core.domain_types import DrawId, DrawStatus, UserId
from secret_santa.schemas.draw import (
    DrawCreate, DrawResponse, ParticipantResponse, ParticipantsWithMatchStatus,
)
from secret_santa.services.draw_orchestrator import DrawOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/draws", tags=["draws"])


@router.post(
    "", response_model=DrawResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_draw(
    body: DrawCreate,
    user_id: UserId = Depends(get_current_user_id),
    orchestrator: DrawOrchestrator = Depends(get_draw_orchestrator),
):
    """Create a draw with its participants and send invitations."""
    name, participants = body.to_command()
    draw = await orchestrator.create_draw(name, participants, user_id)
    logger.info(
        f"Draw created successfully: {draw.name}",
        extra={"draw_id": str(draw.id), "participant_count": len(participants)},
    )
    return DrawResponse.from_record(draw)


@router.get("", response_model=list[DrawResponse])
async def list_draws(
    user_id: UserId = Depends(get_current_user_id),
    orchestrator: DrawOrchestrator = Depends(get_draw_orchestrator),
):
    """Draws authored by the caller, newest first."""
    draws = await orchestrator.list_draws(user_id)
    return [DrawResponse.from_record(d) for d in draws]


@router.get("/{draw_id}/participants", response_model=ParticipantsWithMatchStatus)
async def list_participants(
    draw_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    orchestrator: DrawOrchestrator = Depends(get_draw_orchestrator),
):
    """Participants of a draw and whether it has been matched (author only)."""
    participants, has_matches = await orchestrator.get_participants(
        DrawId(draw_id), user_id,
    )
    return ParticipantsWithMatchStatus(
        participants=[ParticipantResponse.from_record(p) for p in participants],
        has_matches=has_matches,
        status=DrawStatus.derive(len(participants), has_matches),
    )
