"""Draw ORM - one gift-exchange event, the aggregate root.

Invariants:
    - id is UUID primary key
    - name and author_id are immutable after creation
    - Deleting a draw cascades to its participants and matches

Design Decisions:
    - No status column: lifecycle (created/populated/matched) is derived from
      the presence of participant and match rows
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from secret_santa.db.base import Base


class Draw(Base):
    """Draw aggregate root - owns participants and matches."""
    __tablename__ = "draws"
    __table_args__ = (
        Index("idx_draws_author_created", "author_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    author_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    participants: Mapped[list["Participant"]] = relationship(
        "Participant", back_populates="draw",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    matches: Mapped[list["Match"]] = relationship(
        "Match", back_populates="draw",
        cascade="all, delete-orphan", passive_deletes=True,
    )
