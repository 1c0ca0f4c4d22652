"""Draw Schemas - Pydantic models with field-level validation for API boundaries.

Invariants:
    - DrawCreate.name: stripped, non-empty, at most 200 chars
    - DrawCreate.participants: MIN_PARTICIPANTS..MAX_PARTICIPANTS entries
    - ParticipantCreate: name/surname stripped and non-empty, valid email,
      gift_preferences at most 10000 chars

Design Decisions:
    - field_validator for side-effect-free transforms (strip)
    - to_command() converts to core records so routes never hand pydantic
      models to the services
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from secret_santa.core.domain_types import (
    MAX_PARTICIPANTS, MIN_PARTICIPANTS, DrawRecord, DrawStatus, DrawSummary,
    NewParticipant, ParticipantRecord,
)


class ParticipantCreate(BaseModel):
    """One participant of a new draw."""
    name: str = Field(min_length=1, max_length=200)
    surname: str = Field(min_length=1, max_length=200)
    email: EmailStr
    gift_preferences: str = Field("", max_length=10_000)

    @field_validator("name", "surname")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v

    def to_record(self) -> NewParticipant:
        return NewParticipant(
            name=self.name,
            surname=self.surname,
            email=str(self.email),
            gift_preferences=self.gift_preferences,
        )


class DrawCreate(BaseModel):
    """Draw creation - validates name and participant count."""
    name: str = Field(min_length=1, max_length=200)
    participants: list[ParticipantCreate] = Field(
        min_length=MIN_PARTICIPANTS, max_length=MAX_PARTICIPANTS,
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Draw name is required")
        return v

    def to_command(self) -> tuple[str, list[NewParticipant]]:
        return self.name, [p.to_record() for p in self.participants]


class DrawResponse(BaseModel):
    """Draw summary - public-facing draw data."""
    id: UUID
    name: str
    created_at: datetime

    @classmethod
    def from_record(cls, draw: DrawSummary | DrawRecord) -> "DrawResponse":
        return cls(id=draw.id, name=draw.name, created_at=draw.created_at)


class ParticipantResponse(BaseModel):
    id: UUID
    name: str
    surname: str
    email: str
    gift_preferences: str

    @classmethod
    def from_record(cls, p: ParticipantRecord) -> "ParticipantResponse":
        return cls(
            id=p.id, name=p.name, surname=p.surname,
            email=p.email, gift_preferences=p.gift_preferences,
        )


class ParticipantsWithMatchStatus(BaseModel):
    participants: list[ParticipantResponse]
    has_matches: bool
    status: DrawStatus


class MatchCreatedResponse(BaseModel):
    message: str = "Matches created successfully"
    match_count: int


class RecipientResponse(BaseModel):
    name: str
    surname: str
    email: str
    gift_preferences: str


class AssignmentResponse(BaseModel):
    """The caller's own assignment within a draw."""
    draw_id: UUID
    recipient: RecipientResponse
