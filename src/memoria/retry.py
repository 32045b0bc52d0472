"""Bounded async retry over Outcome-returning operations.

Design goals:
- Small API surface: one policy value, one executor
- No cross-call state; the strategy is a frozen, shareable value
- Retry decisions use error kinds, never message matching
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import random
from typing import TYPE_CHECKING, TypeVar

from memoria.memory_errors import ErrorKind
from memoria.outcome import Outcome, Success
from memoria.telemetry import TelemetryContextProtocol, default_telemetry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _freeze_kinds(kinds: Iterable[ErrorKind | str]) -> frozenset[ErrorKind]:
    return frozenset(ErrorKind(k) for k in kinds)


@dataclass(frozen=True)
class RetryStrategy:
    """Retry policy with exponential backoff and a delay ceiling."""

    max_attempts: int = 3
    initial_delay_s: float = 1.0
    max_delay_s: float = 10.0
    backoff_factor: float = 2.0
    retryable_errors: frozenset[ErrorKind] = field(
        default_factory=lambda: frozenset(
            {ErrorKind.NETWORK_ERROR, ErrorKind.PROCESSING_FAILED}
        )
    )
    #: "Full jitter" when enabled; off by default so delays stay deterministic.
    jitter: bool = False

    def __post_init__(self) -> None:
        """Validate invariants to keep retry behavior predictable."""
        if self.max_attempts < 1:
            raise ValueError("RetryStrategy.max_attempts must be >= 1")
        if self.initial_delay_s < 0:
            raise ValueError("RetryStrategy.initial_delay_s must be >= 0")
        if self.max_delay_s < self.initial_delay_s:
            raise ValueError("RetryStrategy.max_delay_s must be >= initial_delay_s")
        if self.backoff_factor < 1:
            raise ValueError("RetryStrategy.backoff_factor must be >= 1")
        # Accept any iterable of kinds or tag strings; store a frozenset of enums.
        object.__setattr__(
            self, "retryable_errors", _freeze_kinds(self.retryable_errors)
        )

    def is_retryable(self, kind: ErrorKind | str) -> bool:
        """Return True when failures of *kind* should be re-attempted."""
        return kind in self.retryable_errors


DEFAULT_RETRY_STRATEGY = RetryStrategy()

# A single pass-through call with no retries.
NO_RETRY = RetryStrategy(max_attempts=1)


def compute_backoff_delay(strategy: RetryStrategy, attempt: int) -> float:
    """Return the delay in seconds to wait after failed attempt number *attempt*.

    ``attempt`` starts at 1, so the first retry waits ``initial_delay_s``.
    """
    base = strategy.initial_delay_s * (
        strategy.backoff_factor ** max(0, attempt - 1)
    )
    base = min(strategy.max_delay_s, base)
    if base <= 0:
        return 0.0
    if not strategy.jitter:
        return base
    return random.random() * base  # noqa: S311


async def with_retry(
    operation: Callable[[], Awaitable[Outcome[T]]],
    strategy: RetryStrategy = DEFAULT_RETRY_STRATEGY,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    telemetry: TelemetryContextProtocol = default_telemetry,
) -> Outcome[T]:
    """Invoke *operation* until it succeeds, runs out of attempts, or fails permanently.

    The operation is a zero-argument coroutine factory returning an Outcome.
    Failures whose kind is outside ``strategy.retryable_errors`` are returned
    on first sight. Attempts are strictly sequential.
    """
    attempt = 1
    while True:
        outcome = await operation()
        if isinstance(outcome, Success):
            return outcome

        if attempt >= strategy.max_attempts:
            if strategy.max_attempts > 1:
                logger.debug(
                    "Giving up after %d attempts: %s", attempt, outcome.error.kind
                )
            return outcome
        if not strategy.is_retryable(outcome.error.kind):
            return outcome

        delay = compute_backoff_delay(strategy, attempt)
        logger.debug(
            "Attempt %d/%d failed with %s; retrying in %.3fs",
            attempt,
            strategy.max_attempts,
            outcome.error.kind,
            delay,
        )
        telemetry.count("retry.attempt", kind=str(outcome.error.kind))
        await sleep(delay)
        attempt += 1