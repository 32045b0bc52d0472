"""Route SDK service calls through the session's breaker and retry policy."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from memoria.error_mapping import map_service_error
from memoria.outcome import Failure, Outcome, Success
from memoria.retry import NO_RETRY, with_retry
from memoria.telemetry import default_telemetry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from memoria.circuit_breaker import CircuitBreaker
    from memoria.retry import RetryStrategy
    from memoria.types import Session

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def call_service(
    session: Session,
    name: str,
    request: Callable[[], Awaitable[T]],
) -> Outcome[T]:
    """Run *request* with the session's breaker and retry policy."""
    return await guarded_call(
        name, request, retry=session.retry, breaker=session.breaker
    )


async def guarded_call(
    name: str,
    request: Callable[[], Awaitable[T]],
    *,
    retry: RetryStrategy | None = None,
    breaker: CircuitBreaker | None = None,
) -> Outcome[T]:
    """Run *request* and convert its result or exception into an Outcome.

    Each attempt passes through *breaker* (when set); attempts are repeated
    according to *retry*. Cancellation propagates.
    """

    async def attempt() -> Outcome[T]:
        with default_telemetry(f"service.{name}"):
            try:
                return Success(await request())
            except Exception as e:
                error = map_service_error(e)
                logger.debug("Service call %s failed: %s", name, error)
                return Failure(error)

    if breaker is None:
        guarded = attempt
    else:

        async def guarded() -> Outcome[T]:
            return await breaker.execute(attempt)

    return await with_retry(guarded, retry or NO_RETRY)
