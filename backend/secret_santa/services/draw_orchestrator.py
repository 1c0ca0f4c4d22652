"""Draw Orchestrator - creates a draw and its participants, all-or-nothing in effect.

Invariants:
    - insert_draw failure -> PersistenceError, nothing else attempted
    - insert_participants failure (or zero rows back) -> compensating delete_draw,
      then ParticipantCreationFailedError; no partial participant set survives
    - Compensating delete failure -> CRITICAL "ORPHANED_DRAW" log record, the
      caller still gets ParticipantCreationFailedError
    - Provisioning runs only after participants are committed and never fails
      create_draw

Design Decisions:
    - Two writes plus compensation instead of one DB transaction: the draw and
      participant inserts go through StoragePort, which may be a remote
      backend with no cross-call transaction
    - Orphaned draws are remediated manually from the log record (see DESIGN.md)
"""

import logging
from collections.abc import Sequence

from secret_santa.core.domain_types import (
    MAX_PARTICIPANTS, MIN_PARTICIPANTS, DrawId, DrawRecord, DrawSummary,
    NewParticipant, ParticipantRecord, ProvisionTarget, UserId,
)
from secret_santa.core.errors import (
    AccessDeniedError, DrawNotFoundError, ErrorContext,
    ParticipantCreationFailedError, PersistenceError, ValidationError,
)
from secret_santa.core.repository_protocols import StoragePort
from secret_santa.services.account_provisioner import (
    AccountProvisioner, provision_and_link,
)

logger = logging.getLogger(__name__)


class DrawOrchestrator:
    """Draw creation plus the author-facing draw queries."""

    def __init__(self, storage: StoragePort, provisioner: AccountProvisioner):
        self.storage = storage
        self.provisioner = provisioner

    async def create_draw(
        self,
        name: str,
        participants: Sequence[NewParticipant],
        author_id: UserId,
    ) -> DrawSummary:
        _validate_draw_input(name, participants)

        try:
            draw = await self.storage.insert_draw(name.strip(), author_id)
        except PersistenceError:
            logger.error("Failed to create draw", extra={"error_code": "PERSISTENCE_ERROR"})
            raise

        inserted = await self._insert_participants_or_rollback(draw, participants)
        logger.info(
            f"Successfully inserted {len(inserted)} participants for draw {draw.id}",
            extra={"draw_id": str(draw.id), "participant_count": len(inserted)},
        )

        provisioning = await provision_and_link(
            self.provisioner,
            self.storage,
            [ProvisionTarget(p.id, p.email) for p in inserted],
            draw.id,
        )
        return DrawSummary(
            id=draw.id, name=draw.name, created_at=draw.created_at,
            provisioning=provisioning,
        )

    async def list_draws(self, author_id: UserId) -> list[DrawRecord]:
        return await self.storage.list_draws_by_author(author_id)

    async def get_participants(
        self, draw_id: DrawId, user_id: UserId,
    ) -> tuple[list[ParticipantRecord], bool]:
        """Participants of a draw plus its has-matches flag, for the author only."""
        draw = await self.storage.get_draw(draw_id)
        if draw is None:
            raise DrawNotFoundError(str(draw_id))
        if draw.author_id != user_id:
            logger.warning(
                "Forbidden access attempt to draw participants",
                extra={"draw_id": str(draw_id)},
            )
            raise AccessDeniedError(
                "You do not have access to this draw",
                ErrorContext(draw_id=str(draw_id)),
            )
        participants = await self.storage.list_participants(draw_id)
        has_matches = await self.storage.matches_exist(draw_id)
        return participants, has_matches

    async def _insert_participants_or_rollback(
        self, draw: DrawRecord, participants: Sequence[NewParticipant],
    ) -> list[ParticipantRecord]:
        try:
            inserted = await self.storage.insert_participants(draw.id, participants)
            if not inserted:
                raise PersistenceError(
                    "Participant insertion succeeded but no data returned",
                    "insert_participants",
                )
            return inserted
        except Exception as e:
            reason = e.message if isinstance(e, PersistenceError) else str(e)
            logger.error(
                f"Failed to create participants, rolling back draw: {reason}",
                extra={"draw_id": str(draw.id), "error_code": "PARTICIPANT_CREATION_FAILED"},
            )
            await self._delete_draw_best_effort(draw.id)
            raise ParticipantCreationFailedError(
                reason, ErrorContext(draw_id=str(draw.id)),
            ) from e

    async def _delete_draw_best_effort(self, draw_id: DrawId) -> None:
        """Compensating delete. A failure leaves an orphaned, participant-less draw."""
        try:
            await self.storage.delete_draw(draw_id)
        except Exception as e:
            logger.critical(
                f"Rollback of draw {draw_id} failed, draw is orphaned "
                f"and needs manual removal: {e}",
                extra={"draw_id": str(draw_id), "error_code": "ORPHANED_DRAW"},
            )


def _validate_draw_input(name: str, participants: Sequence[NewParticipant]) -> None:
    if not name or not name.strip():
        raise ValidationError("Draw name is required", "name")
    if len(participants) < MIN_PARTICIPANTS:
        raise ValidationError(
            f"At least {MIN_PARTICIPANTS} participants are required", "participants",
        )
    if len(participants) > MAX_PARTICIPANTS:
        raise ValidationError(
            f"Maximum {MAX_PARTICIPANTS} participants allowed", "participants",
        )
