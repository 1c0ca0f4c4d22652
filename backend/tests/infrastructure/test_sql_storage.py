"""SQL Storage - StoragePort over async SQLAlchemy (in-memory SQLite).

Invariants:
    - Returned values are domain records with generated ids
    - Missing draw -> DrawNotFoundError from get_participant_ids
    - Second match set for a draw -> MatchesAlreadyExistError, rows unchanged
    - get_match_for_user resolves the caller through the giver's user_id
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from secret_santa.core.domain_types import MatchPair, NewParticipant
from secret_santa.core.errors import (
    DrawNotFoundError, MatchesAlreadyExistError, PersistenceError,
)
from secret_santa.models.match import Match


PEOPLE = [
    NewParticipant("Alice", "Anders", "alice@example.com", "Books"),
    NewParticipant("Bob", "Brown", "bob@example.com"),
    NewParticipant("Carol", "Clark", "carol@example.com"),
]


async def _populated_draw(storage, author_id=None):
    draw = await storage.insert_draw("Office Party", author_id or uuid4())
    participants = await storage.insert_participants(draw.id, PEOPLE)
    return draw, participants


def _cycle(participants):
    ids = [p.id for p in participants]
    return [MatchPair(ids[i], ids[(i + 1) % len(ids)]) for i in range(len(ids))]


async def test_insert_draw_returns_record(sql_storage):
    author = uuid4()
    draw = await sql_storage.insert_draw("Office Party", author)

    assert draw.name == "Office Party"
    assert draw.author_id == author
    assert (await sql_storage.get_draw(draw.id)).id == draw.id


async def test_insert_participants_returns_all_rows(sql_storage):
    draw, participants = await _populated_draw(sql_storage)

    assert len(participants) == 3
    assert {p.draw_id for p in participants} == {draw.id}
    assert all(p.user_id is None for p in participants)
    assert sorted(await sql_storage.get_participant_ids(draw.id)) == sorted(
        p.id for p in participants
    )


async def test_get_participant_ids_unknown_draw(sql_storage):
    with pytest.raises(DrawNotFoundError):
        await sql_storage.get_participant_ids(uuid4())


async def test_get_participant_ids_empty_draw(sql_storage):
    draw = await sql_storage.insert_draw("Empty", uuid4())
    assert await sql_storage.get_participant_ids(draw.id) == []


async def test_delete_draw_removes_participants(sql_storage):
    draw, _ = await _populated_draw(sql_storage)

    await sql_storage.delete_draw(draw.id)

    assert await sql_storage.get_draw(draw.id) is None
    assert await sql_storage.list_participants(draw.id) == []


async def test_insert_matches_and_exists(sql_storage):
    draw, participants = await _populated_draw(sql_storage)
    assert await sql_storage.matches_exist(draw.id) is False

    await sql_storage.insert_matches(draw.id, _cycle(participants))

    assert await sql_storage.matches_exist(draw.id) is True


async def test_duplicate_match_set_conflicts(sql_storage, test_session_factory):
    draw, participants = await _populated_draw(sql_storage)
    await sql_storage.insert_matches(draw.id, _cycle(participants))

    with pytest.raises(MatchesAlreadyExistError):
        await sql_storage.insert_matches(draw.id, _cycle(participants))

    async with test_session_factory() as session:
        count = await session.scalar(
            select(func.count()).select_from(Match).where(Match.draw_id == draw.id),
        )
    assert count == 3


async def test_insert_empty_matches_rejected(sql_storage):
    draw, _ = await _populated_draw(sql_storage)
    with pytest.raises(PersistenceError, match="No matches"):
        await sql_storage.insert_matches(draw.id, [])


async def test_list_draws_by_author(sql_storage):
    author = uuid4()
    await sql_storage.insert_draw("First", author)
    await sql_storage.insert_draw("Second", author)
    await sql_storage.insert_draw("Someone else's", uuid4())

    draws = await sql_storage.list_draws_by_author(author)

    assert {d.name for d in draws} == {"First", "Second"}


async def test_link_accounts_and_list_without_account(sql_storage):
    draw, (alice, bob, carol) = await _populated_draw(sql_storage)

    await sql_storage.link_participant_accounts({alice.id: "ext-alice", carol.id: "ext-carol"})

    remaining = await sql_storage.list_participants_without_account(draw.id)
    assert [p.id for p in remaining] == [bob.id]


async def test_get_match_for_user(sql_storage):
    draw, participants = await _populated_draw(sql_storage)
    alice = participants[0]
    await sql_storage.link_participant_accounts({alice.id: "ext-alice"})
    await sql_storage.insert_matches(draw.id, _cycle(participants))

    match, recipient = await sql_storage.get_match_for_user(draw.id, "ext-alice")

    assert match.giver_participant_id == alice.id
    assert recipient.id == participants[1].id
    assert recipient.email == "bob@example.com"


async def test_get_match_for_user_without_match(sql_storage):
    draw, _ = await _populated_draw(sql_storage)
    assert await sql_storage.get_match_for_user(draw.id, "ext-nobody") is None
