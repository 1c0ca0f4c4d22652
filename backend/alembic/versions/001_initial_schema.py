"""Initial schema - draws, draw_participants, matches.

Revision ID: 001_initial
Revises: None
Create Date: 2025-11-09

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "draws",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("author_id", UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_draws_author_id", "draws", ["author_id"])
    op.create_index("idx_draws_author_created", "draws", ["author_id", "created_at"])

    op.create_table(
        "draw_participants",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("draw_id", UUID(as_uuid=True), sa.ForeignKey("draws.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("surname", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("gift_preferences", sa.Text, nullable=False, server_default=""),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_draw_participants_draw_id", "draw_participants", ["draw_id"])
    op.create_index("ix_draw_participants_user_id", "draw_participants", ["user_id"])

    op.create_table(
        "matches",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("draw_id", UUID(as_uuid=True), sa.ForeignKey("draws.id", ondelete="CASCADE"), nullable=False),
        sa.Column("giver_participant_id", UUID(as_uuid=True), sa.ForeignKey("draw_participants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("receiver_participant_id", UUID(as_uuid=True), sa.ForeignKey("draw_participants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("draw_id", "giver_participant_id", name="uq_matches_draw_giver"),
        sa.UniqueConstraint("draw_id", "receiver_participant_id", name="uq_matches_draw_receiver"),
    )
    op.create_index("ix_matches_draw_id", "matches", ["draw_id"])


def downgrade() -> None:
    op.drop_table("matches")
    op.drop_table("draw_participants")
    op.drop_table("draws")
