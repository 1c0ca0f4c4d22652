"""Match Orchestrator - generates and persists a draw's matches exactly once.

Invariants:
    - matches_exist -> MatchesAlreadyExistError before any read or write
    - Missing draw -> DrawNotFoundError
    - InsufficientParticipantsError propagates unchanged; storage untouched
    - Full match set persisted in one insert_matches call
    - A concurrent loser is rejected by the storage uniqueness constraint and
      surfaces as MatchesAlreadyExistError, never as duplicated rows
    - Provisioning of account-less participants runs only after the match
      rows are committed and never fails generate_matches

Design Decisions:
    - The idempotency gate is repeated here although the API route checks
      first: direct callers (scripts, tests) get the same guarantee
    - rng injected at construction: deterministic tests, SystemRandom in prod
"""

import logging
import random

from secret_santa.core import matching_engine
from secret_santa.core.domain_types import (
    DrawId, ExternalUserId, MatchRecord, MatchResult, ParticipantRecord,
    ProvisionTarget, ProvisionedAccount,
)
from secret_santa.core.errors import (
    InsufficientParticipantsError, MatchesAlreadyExistError,
)
from secret_santa.core.repository_protocols import StoragePort
from secret_santa.services.account_provisioner import (
    AccountProvisioner, provision_and_link,
)

logger = logging.getLogger(__name__)


class MatchOrchestrator:
    """Idempotent match generation plus the participant-facing assignment query."""

    def __init__(
        self,
        storage: StoragePort,
        provisioner: AccountProvisioner,
        rng: random.Random | None = None,
    ):
        self.storage = storage
        self.provisioner = provisioner
        self.rng = rng

    async def generate_matches(self, draw_id: DrawId) -> MatchResult:
        if await self.storage.matches_exist(draw_id):
            logger.info("Matches already exist for draw", extra={"draw_id": str(draw_id)})
            raise MatchesAlreadyExistError(str(draw_id))

        participant_ids = await self.storage.get_participant_ids(draw_id)
        try:
            pairs = matching_engine.generate(participant_ids, self.rng)
        except InsufficientParticipantsError as e:
            e.context.draw_id = str(draw_id)
            logger.info(
                f"Cannot match draw {draw_id}: {e.message}",
                extra={"draw_id": str(draw_id), "error_code": e.code},
            )
            raise

        await self.storage.insert_matches(draw_id, pairs)
        logger.info(
            f"Persisted {len(pairs)} matches for draw {draw_id}",
            extra={"draw_id": str(draw_id), "participant_count": len(pairs)},
        )

        provisioning = await self._provision_unlinked(draw_id)
        return MatchResult(
            draw_id=draw_id, match_count=len(pairs), provisioning=provisioning,
        )

    async def get_assignment(
        self, draw_id: DrawId, user_id: ExternalUserId,
    ) -> tuple[MatchRecord, ParticipantRecord] | None:
        """The caller's own match and recipient, or None."""
        return await self.storage.get_match_for_user(draw_id, user_id)

    async def _provision_unlinked(self, draw_id: DrawId) -> tuple[ProvisionedAccount, ...]:
        try:
            unlinked = await self.storage.list_participants_without_account(draw_id)
        except Exception as e:
            logger.error(
                f"Failed to load participants without account: {e}",
                extra={"draw_id": str(draw_id), "error_code": getattr(e, "code", None)},
            )
            return ()
        return await provision_and_link(
            self.provisioner,
            self.storage,
            [ProvisionTarget(p.id, p.email) for p in unlinked],
            draw_id,
        )
