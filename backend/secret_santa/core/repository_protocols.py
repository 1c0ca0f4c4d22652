"""Boundary Protocols - contracts between the orchestrators and their collaborators.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - StoragePort write failures raise PersistenceError
    - StoragePort.insert_matches raises MatchesAlreadyExistError when the
      (draw_id, giver_participant_id) uniqueness constraint rejects a row
    - IdentityPort failures raise ProvisioningError (or a subclass)

Design Decisions:
    - Protocol over ABC: structural subtyping, in-memory fakes need no base class
    - Async methods: every implementation does IO; the matching engine that the
      orchestrators call between these awaits stays synchronous and pure
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from secret_santa.core.domain_types import (
    DrawId, DrawRecord, ExternalUserId, IdentityAccount, MatchPair,
    MatchRecord, NewParticipant, ParticipantId, ParticipantRecord, UserId,
)


class StoragePort(Protocol):
    """Draw / participant / match persistence - implemented by shell."""

    async def insert_draw(self, name: str, author_id: UserId) -> DrawRecord: ...

    async def delete_draw(self, draw_id: DrawId) -> None: ...

    async def insert_participants(
        self, draw_id: DrawId, records: Sequence[NewParticipant],
    ) -> list[ParticipantRecord]: ...

    async def insert_matches(
        self, draw_id: DrawId, pairs: Sequence[MatchPair],
    ) -> None: ...

    async def get_participant_ids(self, draw_id: DrawId) -> list[ParticipantId]:
        """Raises DrawNotFoundError when the draw does not exist."""
        ...

    async def matches_exist(self, draw_id: DrawId) -> bool: ...

    async def get_draw(self, draw_id: DrawId) -> DrawRecord | None: ...

    async def list_draws_by_author(self, author_id: UserId) -> list[DrawRecord]: ...

    async def list_participants(self, draw_id: DrawId) -> list[ParticipantRecord]: ...

    async def list_participants_without_account(
        self, draw_id: DrawId,
    ) -> list[ParticipantRecord]: ...

    async def link_participant_accounts(
        self, accounts: Mapping[ParticipantId, ExternalUserId],
    ) -> None: ...

    async def get_match_for_user(
        self, draw_id: DrawId, user_id: ExternalUserId,
    ) -> tuple[MatchRecord, ParticipantRecord] | None: ...


class IdentityPort(Protocol):
    """External identity / invitation provider - implemented by shell."""

    async def ensure_available(self) -> None:
        """Raise ProvisioningError if the provider cannot be reached at all."""
        ...

    async def find_account_by_email(self, email: str) -> IdentityAccount | None: ...

    async def invite_by_email(
        self, email: str, metadata: Mapping[str, Any],
    ) -> ExternalUserId:
        """Create a pending identity and dispatch an invitation out of band."""
        ...
