"""Account Provisioner - sequential, per-participant-isolated wrapper over IdentityPort.

Invariants:
    - Participants processed strictly one at a time, in input order
    - Existing account (case-insensitive email) -> skipped-existing, no invitation
    - Unknown email -> invite_by_email -> success with the returned external id
    - Any error for one participant -> failed (with reason), loop continues
    - Returns exactly one ProvisionedAccount per input participant
    - Raises only when the batch cannot be attempted (ensure_available fails)

Design Decisions:
    - Sequential loop over asyncio.gather: the identity provider rate-limits
      admin calls, latency is accepted
    - Result list instead of log-and-forget: callers and tests assert on outcomes
    - provision_and_link() is the shared post-commit step of both orchestrators
"""

import logging
from collections.abc import Sequence

from secret_santa.core.domain_types import (
    DrawId, ProvisionTarget, ProvisionedAccount, ProvisioningOutcome,
)
from secret_santa.core.errors import ProvisioningError
from secret_santa.core.repository_protocols import IdentityPort, StoragePort

logger = logging.getLogger(__name__)

PARTICIPANT_ROLE = "participant"


class AccountProvisioner:
    """Creates or confirms identity accounts for draw participants."""

    def __init__(self, identity: IdentityPort):
        self.identity = identity

    async def provision(
        self, participants: Sequence[ProvisionTarget], draw_id: DrawId,
    ) -> list[ProvisionedAccount]:
        if not participants:
            logger.info("No participants to provision", extra={"draw_id": str(draw_id)})
            return []

        try:
            await self.identity.ensure_available()
        except ProvisioningError as e:
            e.context.draw_id = str(draw_id)
            raise

        results = []
        for target in participants:
            result = await self._provision_one(target, draw_id)
            results.append(result)

        invited = sum(1 for r in results if r.outcome is ProvisioningOutcome.SUCCESS)
        failed = sum(1 for r in results if r.outcome is ProvisioningOutcome.FAILED)
        logger.info(
            f"Provisioned accounts for draw {draw_id}: {invited} invited, "
            f"{len(results) - invited - failed} existing, {failed} failed",
            extra={"draw_id": str(draw_id), "participant_count": len(results)},
        )
        return results

    async def _provision_one(
        self, target: ProvisionTarget, draw_id: DrawId,
    ) -> ProvisionedAccount:
        """Provision a single participant; never raises."""
        log_extra = {
            "draw_id": str(draw_id), "participant_id": str(target.participant_id),
        }
        try:
            existing = await self.identity.find_account_by_email(target.email)
            if existing:
                logger.info(
                    f"User already exists for email: {target.email}",
                    extra={**log_extra, "outcome": ProvisioningOutcome.SKIPPED_EXISTING.value},
                )
                return ProvisionedAccount(
                    participant_id=target.participant_id,
                    email=target.email,
                    outcome=ProvisioningOutcome.SKIPPED_EXISTING,
                    external_user_id=existing.external_user_id,
                )

            external_id = await self.identity.invite_by_email(
                target.email,
                {"role": PARTICIPANT_ROLE, "draw_id": str(draw_id)},
            )
            logger.info(
                f"Successfully invited user {target.email}",
                extra={**log_extra, "outcome": ProvisioningOutcome.SUCCESS.value},
            )
            return ProvisionedAccount(
                participant_id=target.participant_id,
                email=target.email,
                outcome=ProvisioningOutcome.SUCCESS,
                external_user_id=external_id,
            )
        except Exception as e:
            reason = e.message if isinstance(e, ProvisioningError) else str(e)
            logger.error(
                f"Account provisioning failed for participant {target.email}: {reason}",
                extra={
                    **log_extra,
                    "outcome": ProvisioningOutcome.FAILED.value,
                    "error_code": getattr(e, "code", "PROVISIONING_ERROR"),
                },
            )
            return ProvisionedAccount(
                participant_id=target.participant_id,
                email=target.email,
                outcome=ProvisioningOutcome.FAILED,
                reason=reason,
            )


async def provision_and_link(
    provisioner: AccountProvisioner,
    storage: StoragePort,
    participants: Sequence[ProvisionTarget],
    draw_id: DrawId,
) -> tuple[ProvisionedAccount, ...]:
    """Provision, then write external ids back onto participant rows.

    Best-effort: a batch failure or a linking failure is logged with draw
    context and swallowed. The enclosing operation has already committed.
    """
    try:
        results = await provisioner.provision(participants, draw_id)
    except Exception as e:
        logger.error(
            f"Failed to provision accounts and send invitations: {e}",
            extra={
                "draw_id": str(draw_id),
                "error_code": getattr(e, "code", "PROVISIONING_ERROR"),
            },
            exc_info=not isinstance(e, ProvisioningError),
        )
        return ()

    linked = {
        r.participant_id: r.external_user_id
        for r in results
        if r.has_account and r.external_user_id
    }
    if linked:
        try:
            await storage.link_participant_accounts(linked)
        except Exception as e:
            logger.error(
                f"Failed to link {len(linked)} participant account(s): {e}",
                extra={
                    "draw_id": str(draw_id),
                    "error_code": getattr(e, "code", "PERSISTENCE_ERROR"),
                },
            )
    return tuple(results)
