"""Resilient Identity Client - retry policy, error mapping, paging, invite payload.

Invariants:
    - 429 and 5xx are retried up to max_retries, then IdentityServiceError
    - Other 4xx fail on the first attempt
    - Timeouts are not retried
    - Email lookup is case-insensitive across pages
"""

import json

import httpx
import pytest

from secret_santa.core.errors import IdentityServiceError, ProvisioningError
from secret_santa.infrastructure import identity_client as identity_module
from secret_santa.infrastructure.identity_client import ResilientIdentityClient


@pytest.fixture
def sleeps(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(identity_module.asyncio, "sleep", fake_sleep)
    return delays


def make_client(handler, **kwargs) -> ResilientIdentityClient:
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://identity.test",
    )
    return ResilientIdentityClient(
        "http://identity.test", "key", client=http, base_delay_ms=10, **kwargs,
    )


# ─── Retry policy ────────────────────────────────────────────────

async def test_retries_server_errors_then_succeeds(sleeps):
    statuses = iter([503, 502, 200])

    def handler(request):
        code = next(statuses)
        if code == 200:
            return httpx.Response(200, json={"users": [{"id": "u-1", "email": "a@example.com"}]})
        return httpx.Response(code, json={"msg": "unavailable"})

    client = make_client(handler)

    account = await client.find_account_by_email("a@example.com")

    assert account.external_user_id == "u-1"
    assert len(sleeps) == 2


async def test_server_errors_exhaust_retries(sleeps):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, json={"message": "boom"})

    client = make_client(handler, max_retries=2)

    with pytest.raises(IdentityServiceError) as exc:
        await client.find_account_by_email("a@example.com")

    assert len(calls) == 3
    assert exc.value.api_error_type == "server_error"
    assert exc.value.status_code == 500
    assert isinstance(exc.value, ProvisioningError)


async def test_rate_limit_honours_retry_after(sleeps):
    responses = iter([
        httpx.Response(429, headers={"Retry-After": "2"}),
        httpx.Response(200, json={"id": "u-2"}),
    ])
    client = make_client(lambda request: next(responses))

    assert await client.invite_by_email("a@example.com", {}) == "u-2"
    assert sleeps == [2.0]


async def test_rate_limit_exhausted(sleeps):
    client = make_client(lambda request: httpx.Response(429), max_retries=1)

    with pytest.raises(IdentityServiceError) as exc:
        await client.invite_by_email("a@example.com", {})

    assert exc.value.api_error_type == "rate_limit"


async def test_client_error_is_not_retried(sleeps):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(422, json={"msg": "Email address is invalid"})

    client = make_client(handler)

    with pytest.raises(IdentityServiceError, match="Email address is invalid") as exc:
        await client.invite_by_email("bad", {})

    assert len(calls) == 1
    assert sleeps == []
    assert exc.value.api_error_type == "client_error"
    assert exc.value.status_code == 422


async def test_timeout_is_not_retried(sleeps):
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ReadTimeout("slow", request=request)

    client = make_client(handler)

    with pytest.raises(IdentityServiceError) as exc:
        await client.find_account_by_email("a@example.com")

    assert len(calls) == 1
    assert exc.value.api_error_type == "timeout"


async def test_connection_errors_are_retried(sleeps):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = make_client(handler, max_retries=2)

    with pytest.raises(IdentityServiceError) as exc:
        await client.find_account_by_email("a@example.com")

    assert exc.value.api_error_type == "connection_error"
    assert len(sleeps) == 2


def test_backoff_is_capped():
    client = make_client(lambda request: httpx.Response(200), max_delay_ms=1000)
    assert all(client._backoff(attempt) <= 1250 for attempt in range(10))


# ─── Invite retries ─────────────────────────────────────────────

async def test_invite_is_not_retried_after_server_error(sleeps):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, json={"msg": "unavailable"})

    client = make_client(handler)

    with pytest.raises(IdentityServiceError) as exc:
        await client.invite_by_email("a@example.com", {})

    assert len(calls) == 1
    assert sleeps == []
    assert exc.value.api_error_type == "server_error"


async def test_invite_is_not_retried_after_dropped_connection(sleeps):
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.RemoteProtocolError("peer closed connection", request=request)

    client = make_client(handler)

    with pytest.raises(IdentityServiceError) as exc:
        await client.invite_by_email("a@example.com", {})

    assert len(calls) == 1
    assert exc.value.api_error_type == "connection_error"


async def test_invite_is_retried_after_failed_connect(sleeps):
    attempts = iter([False, True])

    def handler(request):
        if not next(attempts):
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={"id": "u-5"})

    client = make_client(handler)

    assert await client.invite_by_email("a@example.com", {}) == "u-5"
    assert len(sleeps) == 1


# ─── Lookup ──────────────────────────────────────────────────────

async def test_find_account_is_case_insensitive_and_pages(sleeps):
    pages = {
        "1": [{"id": "u-1", "email": "one@example.com"},
              {"id": "u-2", "email": "two@example.com"}],
        "2": [{"id": "u-3", "email": "Carol@Example.com"}],
    }
    seen_pages = []

    def handler(request):
        page = request.url.params["page"]
        seen_pages.append(page)
        assert request.url.params["per_page"] == "2"
        return httpx.Response(200, json={"users": pages.get(page, [])})

    client = make_client(handler, page_size=2)

    account = await client.find_account_by_email("carol@EXAMPLE.com")

    assert account.external_user_id == "u-3"
    assert seen_pages == ["1", "2"]


async def test_find_account_missing_returns_none(sleeps):
    client = make_client(lambda request: httpx.Response(200, json={"users": []}))
    assert await client.find_account_by_email("nobody@example.com") is None


# ─── Invite ──────────────────────────────────────────────────────

async def test_invite_sends_metadata_and_redirect(sleeps):
    captured = {}

    def handler(request):
        captured["path"] = request.url.path
        captured["redirect_to"] = request.url.params.get("redirect_to")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "u-9"})

    client = make_client(handler, redirect_to="http://app.test/set-password")

    await client.invite_by_email(
        "a@example.com", {"role": "participant", "draw_id": "d-1"},
    )

    assert captured == {
        "path": "/invite",
        "redirect_to": "http://app.test/set-password",
        "body": {
            "email": "a@example.com",
            "data": {"role": "participant", "draw_id": "d-1"},
        },
    }


async def test_invite_without_user_id_is_malformed(sleeps):
    client = make_client(lambda request: httpx.Response(200, json={"user": {}}))

    with pytest.raises(IdentityServiceError) as exc:
        await client.invite_by_email("a@example.com", {})

    assert exc.value.api_error_type == "malformed_response"


# ─── Availability ────────────────────────────────────────────────

async def test_ensure_available_ok():
    client = make_client(lambda request: httpx.Response(200, json={}))
    await client.ensure_available()


async def test_ensure_available_fails_on_error_status():
    client = make_client(lambda request: httpx.Response(503))

    with pytest.raises(IdentityServiceError) as exc:
        await client.ensure_available()

    assert exc.value.api_error_type == "unavailable"


async def test_ensure_available_fails_on_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(IdentityServiceError):
        await make_client(handler).ensure_available()
