"""Domain Types - identifiers, enums, and plain records shared by core and shell.

Invariants:
    - DrawId, ParticipantId, UserId wrap UUIDs; ExternalUserId is whatever the
      identity provider hands back (opaque string)
    - MIN_PARTICIPANTS is the matching floor; MAX_PARTICIPANTS is the
      draw-creation ceiling
    - Records are frozen: orchestrators pass them around, never mutate them

Design Decisions:
    - NewType over wrapper classes: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
    - Records are dataclasses, not ORM rows: core never imports SQLAlchemy
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NamedTuple, NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

DrawId = NewType("DrawId", UUID)
ParticipantId = NewType("ParticipantId", UUID)
UserId = NewType("UserId", UUID)
ExternalUserId = NewType("ExternalUserId", str)


MIN_PARTICIPANTS = 3
MAX_PARTICIPANTS = 32


# ─── Enums ───────────────────────────────────────────────────────

class DrawStatus(str, Enum):
    """Draw lifecycle. One-directional: created -> populated -> matched."""
    CREATED = "created"
    POPULATED = "populated"
    MATCHED = "matched"

    @classmethod
    def derive(cls, participant_count: int, has_matches: bool) -> "DrawStatus":
        if has_matches:
            return cls.MATCHED
        return cls.POPULATED if participant_count else cls.CREATED


class ProvisioningOutcome(str, Enum):
    """Per-participant result of an identity provisioning attempt."""
    SUCCESS = "success"
    SKIPPED_EXISTING = "skipped-existing"
    FAILED = "failed"


# ─── Records ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class NewParticipant:
    """Participant data supplied by the organizer, before persistence."""
    name: str
    surname: str
    email: str
    gift_preferences: str = ""


@dataclass(frozen=True)
class DrawRecord:
    id: DrawId
    name: str
    author_id: UserId
    created_at: datetime


@dataclass(frozen=True)
class ParticipantRecord:
    id: ParticipantId
    draw_id: DrawId
    name: str
    surname: str
    email: str
    gift_preferences: str
    created_at: datetime
    user_id: ExternalUserId | None = None


@dataclass(frozen=True)
class DrawSummary:
    """What createDraw hands back to the caller, with per-participant provisioning outcomes."""
    id: DrawId
    name: str
    created_at: datetime
    provisioning: tuple["ProvisionedAccount", ...] = ()


class MatchPair(NamedTuple):
    giver_id: ParticipantId
    receiver_id: ParticipantId


@dataclass(frozen=True)
class MatchRecord:
    draw_id: DrawId
    giver_participant_id: ParticipantId
    receiver_participant_id: ParticipantId
    created_at: datetime


@dataclass(frozen=True)
class IdentityAccount:
    """An account as known by the identity provider."""
    external_user_id: ExternalUserId
    email: str


@dataclass(frozen=True)
class ProvisionTarget:
    """One participant to provision: who, and under which email."""
    participant_id: ParticipantId
    email: str


@dataclass(frozen=True)
class ProvisionedAccount:
    """Transient per-participant provisioning result (not authoritative state)."""
    participant_id: ParticipantId
    email: str
    outcome: ProvisioningOutcome
    external_user_id: ExternalUserId | None = None
    reason: str | None = None

    @property
    def has_account(self) -> bool:
        return self.outcome is not ProvisioningOutcome.FAILED


@dataclass(frozen=True)
class MatchResult:
    """What generateMatches hands back once match rows are committed."""
    draw_id: DrawId
    match_count: int
    provisioning: tuple[ProvisionedAccount, ...] = ()
