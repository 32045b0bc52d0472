"""Session lifecycle: authenticate, bind an organization, and sign out."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from memoria._calls import call_service, guarded_call
from memoria.client import ServiceClient
from memoria.config import resolve_config
from memoria.outcome import Failure, Outcome, Success
from memoria.types import Session
from memoria.validate import validate_organization_id, validate_url

if TYPE_CHECKING:
    import httpx

    from memoria.config import FrozenConfig
    from memoria.types import Credentials, DatasetStrategy

logger = logging.getLogger(__name__)


async def create_session(
    service_url: str,
    credentials: Credentials,
    organization_id: str,
    dataset_strategy: DatasetStrategy,
    *,
    config: FrozenConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Outcome[Session]:
    """Log in and return a session bound to *organization_id*.

    Args:
        service_url: Base URL of the memory service.
        credentials: Username and password for the login form.
        organization_id: Organization every dataset of this session belongs to.
        dataset_strategy: Naming strategy for the session's default dataset.
        config: Resolved configuration. Resolved from the environment when *None*.
        transport: Optional httpx transport, mainly for tests.

    Returns:
        ``Success(Session)``, or a Failure from validation, login, or the
        current-user lookup. The HTTP client is closed on failure.

    Raises:
        ConfigurationError: If *config* is None and resolution fails.
    """
    org = validate_organization_id(organization_id)
    if isinstance(org, Failure):
        return org
    url = validate_url(service_url)
    if isinstance(url, Failure):
        return url

    cfg = config if config is not None else resolve_config()
    retry = cfg.retry_strategy()
    breaker = cfg.circuit_breaker(name=service_url)
    client = ServiceClient(service_url, timeout_s=cfg.timeout_s, transport=transport)

    try:
        token = await guarded_call(
            "login",
            lambda: client.login(credentials.username, credentials.password),
            retry=retry,
            breaker=breaker,
        )
        if isinstance(token, Failure):
            await client.aclose()
            return token
        client.auth_token = token.value

        user = await guarded_call(
            "get_current_user", client.get_current_user, retry=retry, breaker=breaker
        )
        if isinstance(user, Failure):
            await client.aclose()
            return user
    except BaseException:
        await client.aclose()
        raise

    info: dict[str, Any] = user.value or {}
    session = Session(
        service_url=client.base_url,
        organization_id=organization_id,
        user_id=str(info.get("id", "")),
        user_name=str(info.get("email", credentials.username)),
        dataset_strategy=dataset_strategy,
        client=client,
        retry=retry,
        breaker=breaker,
    )
    logger.info(
        "Session created for user %s in organization %s",
        session.user_id,
        organization_id,
    )
    return Success(session)


async def end_session(session: Session) -> Outcome[None]:
    """Log out and close the session's HTTP client.

    The client is closed even when logout fails.
    """
    try:
        result = await call_service(session, "logout", session.client.logout)
    finally:
        await session.client.aclose()
    logger.info("Session ended for user %s", session.user_id)
    return result
