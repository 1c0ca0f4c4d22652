"""Match Routes - trigger matching for a draw, read the caller's own assignment.

Invariants:
    - POST /match checks matches_exist before delegating; the orchestrator
      checks again (direct invocations get the same guarantee)
    - Responses: 200 matched, 400 malformed draw id, 404 unknown draw,
      409 already matched or too few participants, 500 anything else
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from secret_santa.api.dependencies import (
    get_current_user_id, get_match_orchestrator, get_storage,
)
from secret_santa.core.domain_types import DrawId, ExternalUserId, UserId
from secret_santa.core.errors import MatchesAlreadyExistError, NotFoundError
from secret_santa.core.repository_protocols import StoragePort
from secret_santa.schemas.draw import (
    AssignmentResponse, MatchCreatedResponse, RecipientResponse,
)
from secret_santa.services.match_orchestrator import MatchOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/draws", tags=["matches"])


@router.post("/{draw_id}/match", response_model=MatchCreatedResponse)
async def generate_matches(
    draw_id: UUID,
    storage: StoragePort = Depends(get_storage),
    orchestrator: MatchOrchestrator = Depends(get_match_orchestrator),
):
    """Run the matching for a draw. One-shot: a matched draw answers 409."""
    if await storage.matches_exist(DrawId(draw_id)):
        raise MatchesAlreadyExistError(str(draw_id))
    result = await orchestrator.generate_matches(DrawId(draw_id))
    logger.info(
        "Matches created successfully",
        extra={"draw_id": str(draw_id), "participant_count": result.match_count},
    )
    return MatchCreatedResponse(match_count=result.match_count)


@router.get("/{draw_id}/my-match", response_model=AssignmentResponse)
async def get_my_match(
    draw_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    orchestrator: MatchOrchestrator = Depends(get_match_orchestrator),
):
    """The recipient assigned to the caller in this draw."""
    assignment = await orchestrator.get_assignment(
        DrawId(draw_id), ExternalUserId(str(user_id)),
    )
    if assignment is None:
        raise NotFoundError("Match", f"{draw_id}/{user_id}")
    match, recipient = assignment
    return AssignmentResponse(
        draw_id=match.draw_id,
        recipient=RecipientResponse(
            name=recipient.name,
            surname=recipient.surname,
            email=recipient.email,
            gift_preferences=recipient.gift_preferences,
        ),
    )
