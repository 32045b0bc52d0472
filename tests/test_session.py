"""Session creation and teardown against an in-process service."""

from __future__ import annotations

import httpx
import pytest

from memoria.circuit_breaker import CircuitBreaker
from memoria.config import resolve_config
from memoria.memory_errors import (
    AuthenticationFailed,
    InvalidInput,
    NetworkError,
    OrganizationRequired,
)
from memoria.outcome import Failure, Success
from memoria.session import create_session, end_session
from memoria.types import Credentials, OrganizationScope
from tests.helpers import BASE_URL, USER_ID, FakeService

pytestmark = pytest.mark.unit

CREDS = Credentials(username="ada@example.com", password="s3cret")


def _service() -> FakeService:
    service = FakeService()
    service.route("POST", "/api/v1/auth/login", {"access_token": "jwt-1"})
    service.route("GET", "/api/v1/auth/me", {"id": USER_ID, "email": "ada@example.com"})
    service.route("POST", "/api/v1/auth/logout", lambda _r: httpx.Response(200))
    return service


def _config(**overrides):
    return resolve_config({"retry_enabled": False, **overrides})


@pytest.mark.asyncio
async def test_create_session_logs_in_and_fetches_user() -> None:
    service = _service()

    outcome = await create_session(
        BASE_URL,
        CREDS,
        "acme",
        OrganizationScope("acme"),
        config=_config(),
        transport=service.transport(),
    )

    assert isinstance(outcome, Success)
    session = outcome.value
    assert session.user_id == USER_ID
    assert session.user_name == "ada@example.com"
    assert session.organization_id == "acme"
    assert session.client.auth_token == "jwt-1"
    assert isinstance(session.breaker, CircuitBreaker)
    me = service.calls_to("GET", "/api/v1/auth/me")[0]
    assert me.headers["authorization"] == "Bearer jwt-1"
    await session.client.aclose()


@pytest.mark.asyncio
async def test_missing_organization_fails_before_any_request() -> None:
    service = _service()

    outcome = await create_session(
        BASE_URL, CREDS, "  ", OrganizationScope("acme"), transport=service.transport()
    )

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, OrganizationRequired)
    assert service.requests == []


@pytest.mark.asyncio
async def test_invalid_service_url_is_rejected() -> None:
    outcome = await create_session(
        "memory.test", CREDS, "acme", OrganizationScope("acme"), config=_config()
    )
    assert isinstance(outcome, Failure)
    assert outcome.error == InvalidInput(field="url", message="Invalid URL format")


@pytest.mark.asyncio
async def test_rejected_login_is_authentication_failed() -> None:
    service = FakeService()
    service.route(
        "POST",
        "/api/v1/auth/login",
        lambda _r: httpx.Response(401, json={"detail": "LOGIN_BAD_CREDENTIALS"}),
    )

    outcome = await create_session(
        BASE_URL,
        CREDS,
        "acme",
        OrganizationScope("acme"),
        config=_config(),
        transport=service.transport(),
    )

    assert outcome == Failure(AuthenticationFailed(message="LOGIN_BAD_CREDENTIALS"))
    assert service.calls_to("GET", "/api/v1/auth/me") == []


@pytest.mark.asyncio
async def test_transient_login_failures_are_retried() -> None:
    service = _service()
    responses = iter([httpx.Response(503), httpx.Response(200, json={"access_token": "t"})])
    service.route("POST", "/api/v1/auth/login", lambda _r: next(responses))
    cfg = resolve_config({"initial_delay_s": 0.0, "max_delay_s": 0.0})

    outcome = await create_session(
        BASE_URL,
        CREDS,
        "acme",
        OrganizationScope("acme"),
        config=cfg,
        transport=service.transport(),
    )

    assert isinstance(outcome, Success)
    assert len(service.calls_to("POST", "/api/v1/auth/login")) == 2
    await outcome.value.client.aclose()


@pytest.mark.asyncio
async def test_end_session_logs_out_and_closes_client() -> None:
    service = _service()
    created = await create_session(
        BASE_URL,
        CREDS,
        "acme",
        OrganizationScope("acme"),
        config=_config(),
        transport=service.transport(),
    )
    assert isinstance(created, Success)
    session = created.value

    outcome = await end_session(session)

    assert outcome == Success(None)
    assert len(service.calls_to("POST", "/api/v1/auth/logout")) == 1
    assert session.client.is_closed


@pytest.mark.asyncio
async def test_end_session_closes_client_even_when_logout_fails() -> None:
    service = _service()
    service.route("POST", "/api/v1/auth/logout", lambda _r: httpx.Response(500))
    created = await create_session(
        BASE_URL,
        CREDS,
        "acme",
        OrganizationScope("acme"),
        config=_config(breaker_enabled=False),
        transport=service.transport(),
    )
    assert isinstance(created, Success)

    outcome = await end_session(created.value)

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, NetworkError)
    assert created.value.client.is_closed


def test_credentials_repr_hides_password() -> None:
    assert "s3cret" not in repr(CREDS)
