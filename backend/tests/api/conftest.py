"""API test fixtures - the real app with its adapters swapped for test doubles.

Invariants:
    - The database is the in-memory SQLite from the root conftest
    - The identity provider is FakeIdentity; no HTTP leaves the process
    - dependency_overrides are cleared after every test
"""

from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from secret_santa.infrastructure.database import get_db_manager
from secret_santa.infrastructure.identity_client import get_identity_client
from secret_santa.main import app

from tests.services.fake_ports import FakeIdentity


@pytest.fixture
def fake_identity():
    return FakeIdentity()


@pytest.fixture
async def client(test_db_manager, fake_identity):
    app.dependency_overrides[get_db_manager] = lambda: test_db_manager
    app.dependency_overrides[get_identity_client] = lambda: fake_identity
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def author_headers():
    return {"X-User-Id": str(uuid4())}


@pytest.fixture
def draw_payload():
    return {
        "name": "Office Party",
        "participants": [
            {"name": "A", "surname": "Adams", "email": "a@example.com",
             "gift_preferences": "Books"},
            {"name": "B", "surname": "Baker", "email": "b@example.com"},
            {"name": "C", "surname": "Cole", "email": "c@example.com"},
        ],
    }
