"""SQL Storage - StoragePort implemented over async SQLAlchemy.

Invariants:
    - Every method runs in its own session and commits before returning;
      insert_draw and insert_participants are separate, independently committed writes
    - insert_participants / insert_matches are single batch writes (all rows or none)
    - A unique violation on the matches table -> MatchesAlreadyExistError
    - Every other SQLAlchemy failure -> PersistenceError (via DatabaseSessionManager)
    - Returned values are frozen domain records, never ORM instances

Design Decisions:
    - Session-per-call over request-scoped session: mirrors a remote backend where
      each call is its own round trip, so the orchestrator's compensation logic
      is exercised the same way against either
"""

import logging
from collections.abc import Mapping, Sequence

from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased

from secret_santa.core.domain_types import (
    DrawId, DrawRecord, ExternalUserId, MatchPair, MatchRecord, NewParticipant,
    ParticipantId, ParticipantRecord, UserId,
)
from secret_santa.core.errors import (
    DrawNotFoundError, MatchesAlreadyExistError, PersistenceError,
)
from secret_santa.infrastructure.database import DatabaseSessionManager
from secret_santa.models.draw import Draw
from secret_santa.models.match import Match
from secret_santa.models.participant import Participant

logger = logging.getLogger(__name__)


class SqlAlchemyStorage:
    """Draw/participant/match persistence backed by the application database."""

    def __init__(self, db: DatabaseSessionManager):
        self.db = db

    # ─── Writes ──────────────────────────────────────────────────

    async def insert_draw(self, name: str, author_id: UserId) -> DrawRecord:
        async with self.db.session() as session:
            draw = Draw(name=name, author_id=author_id)
            session.add(draw)
            await session.commit()
            return _draw_record(draw)

    async def delete_draw(self, draw_id: DrawId) -> None:
        async with self.db.session() as session:
            await session.execute(
                delete(Participant).where(Participant.draw_id == draw_id),
            )
            await session.execute(delete(Draw).where(Draw.id == draw_id))
            await session.commit()

    async def insert_participants(
        self, draw_id: DrawId, records: Sequence[NewParticipant],
    ) -> list[ParticipantRecord]:
        async with self.db.session() as session:
            rows = [
                Participant(
                    draw_id=draw_id,
                    name=r.name,
                    surname=r.surname,
                    email=r.email,
                    gift_preferences=r.gift_preferences,
                )
                for r in records
            ]
            session.add_all(rows)
            await session.commit()
            return [_participant_record(p) for p in rows]

    async def insert_matches(
        self, draw_id: DrawId, pairs: Sequence[MatchPair],
    ) -> None:
        if not pairs:
            raise PersistenceError("No matches to save", "insert_matches")
        async with self.db.session() as session:
            session.add_all([
                Match(
                    draw_id=draw_id,
                    giver_participant_id=p.giver_id,
                    receiver_participant_id=p.receiver_id,
                )
                for p in pairs
            ])
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if "unique" not in str(e.orig).lower():
                    raise
                logger.warning(
                    f"Concurrent match generation rejected for draw {draw_id}",
                    extra={"draw_id": str(draw_id), "error_code": "MATCHES_ALREADY_EXIST"},
                )
                raise MatchesAlreadyExistError(str(draw_id))

    async def link_participant_accounts(
        self, accounts: Mapping[ParticipantId, ExternalUserId],
    ) -> None:
        if not accounts:
            return
        async with self.db.session() as session:
            for participant_id, user_id in accounts.items():
                await session.execute(
                    update(Participant)
                    .where(Participant.id == participant_id)
                    .values(user_id=user_id),
                )
            await session.commit()

    # ─── Reads ───────────────────────────────────────────────────

    async def get_participant_ids(self, draw_id: DrawId) -> list[ParticipantId]:
        async with self.db.session() as session:
            if await session.get(Draw, draw_id) is None:
                raise DrawNotFoundError(str(draw_id))
            result = await session.execute(
                select(Participant.id)
                .where(Participant.draw_id == draw_id)
                .order_by(Participant.created_at),
            )
            return [ParticipantId(pid) for pid in result.scalars().all()]

    async def matches_exist(self, draw_id: DrawId) -> bool:
        async with self.db.session() as session:
            result = await session.execute(
                select(exists().where(Match.draw_id == draw_id)),
            )
            return bool(result.scalar())

    async def get_draw(self, draw_id: DrawId) -> DrawRecord | None:
        async with self.db.session() as session:
            draw = await session.get(Draw, draw_id)
            return _draw_record(draw) if draw else None

    async def list_draws_by_author(self, author_id: UserId) -> list[DrawRecord]:
        async with self.db.session() as session:
            result = await session.execute(
                select(Draw)
                .where(Draw.author_id == author_id)
                .order_by(Draw.created_at.desc()),
            )
            return [_draw_record(d) for d in result.scalars().all()]

    async def list_participants(self, draw_id: DrawId) -> list[ParticipantRecord]:
        async with self.db.session() as session:
            result = await session.execute(
                select(Participant)
                .where(Participant.draw_id == draw_id)
                .order_by(Participant.created_at),
            )
            return [_participant_record(p) for p in result.scalars().all()]

    async def list_participants_without_account(
        self, draw_id: DrawId,
    ) -> list[ParticipantRecord]:
        async with self.db.session() as session:
            result = await session.execute(
                select(Participant)
                .where(Participant.draw_id == draw_id)
                .where(Participant.user_id.is_(None))
                .order_by(Participant.created_at),
            )
            return [_participant_record(p) for p in result.scalars().all()]

    async def get_match_for_user(
        self, draw_id: DrawId, user_id: ExternalUserId,
    ) -> tuple[MatchRecord, ParticipantRecord] | None:
        giver = aliased(Participant)
        receiver = aliased(Participant)
        async with self.db.session() as session:
            result = await session.execute(
                select(Match, receiver)
                .join(giver, Match.giver_participant_id == giver.id)
                .join(receiver, Match.receiver_participant_id == receiver.id)
                .where(Match.draw_id == draw_id)
                .where(giver.user_id == user_id),
            )
            row = result.first()
            if row is None:
                return None
            match, recipient = row
            return _match_record(match), _participant_record(recipient)


def _draw_record(draw: Draw) -> DrawRecord:
    return DrawRecord(
        id=DrawId(draw.id),
        name=draw.name,
        author_id=UserId(draw.author_id),
        created_at=draw.created_at,
    )


def _participant_record(p: Participant) -> ParticipantRecord:
    return ParticipantRecord(
        id=ParticipantId(p.id),
        draw_id=DrawId(p.draw_id),
        name=p.name,
        surname=p.surname,
        email=p.email,
        gift_preferences=p.gift_preferences,
        created_at=p.created_at,
        user_id=ExternalUserId(p.user_id) if p.user_id else None,
    )


def _match_record(m: Match) -> MatchRecord:
    return MatchRecord(
        draw_id=DrawId(m.draw_id),
        giver_participant_id=ParticipantId(m.giver_participant_id),
        receiver_participant_id=ParticipantId(m.receiver_participant_id),
        created_at=m.created_at,
    )
