"""Error envelope - every failure leaves the API as {"error": {...}}."""

from httpx import ASGITransport, AsyncClient

from secret_santa.api.dependencies import get_draw_orchestrator
from secret_santa.core.errors import ParticipantCreationFailedError
from secret_santa.main import app


class _ExplodingOrchestrator:
    def __init__(self, exc: Exception):
        self.exc = exc

    async def list_draws(self, author_id):
        raise self.exc


async def _get_draws(exc: Exception):
    app.dependency_overrides[get_draw_orchestrator] = lambda: _ExplodingOrchestrator(exc)
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        ) as client:
            return await client.get("/api/v1/draws")
    finally:
        app.dependency_overrides.clear()


async def test_unexpected_error_hides_details():
    response = await _get_draws(RuntimeError("connection string postgres://secret"))

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "INTERNAL_ERROR"
    assert "secret" not in response.text


async def test_domain_error_uses_its_status():
    response = await _get_draws(ParticipantCreationFailedError("insert failed"))

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "PARTICIPANT_CREATION_FAILED"
    assert error["category"] == "database"
