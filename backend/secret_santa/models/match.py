"""Match ORM - one giver -> receiver row of a draw's assignment.

Invariants:
    - (draw_id, giver_participant_id) unique: the backstop against two
      concurrent generate_matches calls both writing a match set
    - (draw_id, receiver_participant_id) unique: nobody receives twice
    - Rows are never updated once written
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from secret_santa.db.base import Base


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("draw_id", "giver_participant_id", name="uq_matches_draw_giver"),
        UniqueConstraint("draw_id", "receiver_participant_id", name="uq_matches_draw_receiver"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    draw_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("draws.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    giver_participant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("draw_participants.id", ondelete="CASCADE"),
        nullable=False,
    )
    receiver_participant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("draw_participants.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    draw: Mapped["Draw"] = relationship("Draw", back_populates="matches")
