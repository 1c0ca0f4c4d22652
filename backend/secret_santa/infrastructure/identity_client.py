"""Resilient Identity Client - IdentityPort over the auth server's admin HTTP API.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, connection): max_retries retries with exponential backoff
    - Client errors (4xx except 429) and timeouts: immediate failure, no retry
    - Invites are not idempotent: retried only on 429 or a failed connect
    - All failures mapped to IdentityServiceError (core/errors.py)
    - Email lookup is case-insensitive and pages through the full user list

Design Decisions:
    - Wrapper over raw httpx.AsyncClient: retry and error mapping stay out of the
      provisioner, which only sees IdentityPort
    - Service-role key sent as both apikey and bearer token (admin endpoints)
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
"""

import asyncio
import logging
import random
from collections.abc import Mapping
from typing import Any

import httpx

from secret_santa.core.domain_types import ExternalUserId, IdentityAccount
from secret_santa.core.errors import IdentityServiceError

logger = logging.getLogger(__name__)

_RATE_LIMITED = 429


class _RetryableStatus(Exception):
    """Internal signal: response status warrants another attempt."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class ResilientIdentityClient:
    """Wraps the auth admin API with retry logic, timeouts, and error mapping."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        redirect_to: str | None = None,
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 10_000,
        timeout_seconds: float = 30.0,
        page_size: int = 1000,
        client: httpx.AsyncClient | None = None,
    ):
        self.client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
            },
        )
        self.redirect_to = redirect_to
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.page_size = page_size

    async def ensure_available(self) -> None:
        """Single health probe, no retry: the batch is abandoned if it fails."""
        try:
            response = await self.client.get("/health")
        except httpx.HTTPError as e:
            raise IdentityServiceError(
                f"Identity provider unreachable: {e}", "unavailable",
            )
        if response.status_code >= 400:
            raise IdentityServiceError(
                "Identity provider health check failed", "unavailable",
                status_code=response.status_code,
            )

    async def find_account_by_email(self, email: str) -> IdentityAccount | None:
        wanted = email.strip().lower()
        page = 1
        while True:
            body = await self._request(
                "GET", "/admin/users",
                params={"page": page, "per_page": self.page_size},
            )
            users = body.get("users") or []
            for user in users:
                if (user.get("email") or "").lower() == wanted:
                    return IdentityAccount(
                        external_user_id=ExternalUserId(str(user["id"])),
                        email=user["email"],
                    )
            if len(users) < self.page_size:
                return None
            page += 1

    async def invite_by_email(
        self, email: str, metadata: Mapping[str, Any],
    ) -> ExternalUserId:
        params = {"redirect_to": self.redirect_to} if self.redirect_to else None
        body = await self._request(
            "POST", "/invite",
            idempotent=False,
            params=params,
            json={"email": email, "data": dict(metadata)},
        )
        user = body.get("user", body)
        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            raise IdentityServiceError(
                "User invitation succeeded but no user data returned",
                "malformed_response",
            )
        return ExternalUserId(str(user_id))

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(
        self, method: str, url: str, idempotent: bool = True, **kwargs,
    ) -> dict:
        """Send with automatic retry on transient failures; returns decoded JSON.

        Non-idempotent calls are retried only when the server certainly did
        not act: 429 or a failed connect. A 5xx or a dropped connection may
        follow a completed write, so those fail at once.
        """
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(method, url, **kwargs)
                if response.status_code == _RATE_LIMITED or response.status_code >= 500:
                    raise _RetryableStatus(response)
                if response.status_code >= 400:
                    raise IdentityServiceError(
                        _error_message(response), "client_error",
                        status_code=response.status_code,
                    )
                logger.debug(
                    f"Identity API {method} {url} ok",
                    extra={"attempt": attempt + 1, "status_code": response.status_code},
                )
                return response.json() if response.content else {}

            except _RetryableStatus as e:
                if not idempotent and e.response.status_code != _RATE_LIMITED:
                    raise IdentityServiceError(
                        _error_message(e.response), "server_error",
                        status_code=e.response.status_code,
                    )
                await self._handle_retryable_status(e.response, attempt)

            except httpx.TimeoutException:
                raise IdentityServiceError("Identity API timeout", "timeout")

            except httpx.TransportError as e:
                if not idempotent and not isinstance(e, httpx.ConnectError):
                    raise IdentityServiceError(
                        f"Connection lost after request was sent: {e}",
                        "connection_error",
                    )
                await self._handle_transient_error(e, attempt)

            except ValueError as e:
                raise IdentityServiceError(
                    f"Invalid JSON from identity API: {e}", "malformed_response",
                )

        raise IdentityServiceError("Retries exhausted", "connection_error")

    async def _handle_retryable_status(
        self, response: httpx.Response, attempt: int,
    ) -> None:
        """Handle 429/5xx with retry or raise."""
        rate_limited = response.status_code == _RATE_LIMITED
        if attempt >= self.max_retries:
            raise IdentityServiceError(
                f"{_error_message(response)} after {self.max_retries} retries",
                "rate_limit" if rate_limited else "server_error",
                status_code=response.status_code,
            )
        retry_after_ms = self._extract_retry_after(response) if rate_limited else None
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Identity API HTTP {response.status_code}, retry after {delay}ms "
            f"(attempt {attempt + 1})",
            extra={"attempt": attempt + 1, "status_code": response.status_code},
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(self, e: Exception, attempt: int) -> None:
        """Handle connection errors with retry or raise."""
        if attempt >= self.max_retries:
            raise IdentityServiceError(
                f"Transient failure after {self.max_retries} retries: {e}",
                "connection_error",
            )
        delay = self._backoff(attempt)
        logger.warning(f"Transient identity API error, retry after {delay}ms: {e}")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, response: httpx.Response) -> int | None:
        """Extract Retry-After header (returns milliseconds)."""
        val = response.headers.get("retry-after")
        if val and val.isdigit():
            return int(val) * 1000
        return None


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from an auth server error body."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


# Singleton (initialized on startup)
identity_client: ResilientIdentityClient | None = None


def init_identity(base_url: str, service_key: str, **kwargs) -> ResilientIdentityClient:
    global identity_client
    identity_client = ResilientIdentityClient(base_url, service_key, **kwargs)
    return identity_client


def get_identity_client() -> ResilientIdentityClient:
    """FastAPI dependency for the identity provider client."""
    if not identity_client:
        raise RuntimeError("Identity client not initialized")
    return identity_client
