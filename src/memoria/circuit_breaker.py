"""Circuit breaker over Outcome-returning operations.

State lives in an immutable ``BreakerSnapshot``. The pure functions
``admit`` and ``record`` compute the next snapshot; ``CircuitBreaker`` only
holds the current one and applies them around each call.

Concurrency: the snapshot is read and replaced under a ``threading.Lock``
that is never held across an ``await``. Admission happens before the
operation runs and recording after it resolves. While a half-open trial is
in flight every other call is rejected, so exactly one trial gets through.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
import logging
import threading
import time
from typing import TYPE_CHECKING, TypeVar

from memoria.memory_errors import circuit_open_error
from memoria.outcome import Failure, Outcome, Success
from memoria.telemetry import TelemetryContextProtocol, default_telemetry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)


class CircuitState(StrEnum):
    """Breaker position: forwarding, rejecting, or probing with one trial."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


@dataclass(frozen=True, slots=True)
class BreakerSnapshot:
    """Point-in-time breaker state."""

    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    last_failure_time: float | None = None


CLOSED_SNAPSHOT = BreakerSnapshot()


def admit(
    snapshot: BreakerSnapshot, *, now: float, timeout_s: float
) -> tuple[BreakerSnapshot, bool]:
    """Decide whether a call may proceed, returning the next snapshot.

    An open breaker whose cooldown has elapsed moves to half-open and admits
    the call as its trial.
    """
    if snapshot.state is not CircuitState.OPEN:
        return snapshot, True
    last = snapshot.last_failure_time
    if last is not None and now - last >= timeout_s:
        return replace(snapshot, state=CircuitState.HALF_OPEN), True
    return snapshot, False


def record(
    snapshot: BreakerSnapshot, *, succeeded: bool, now: float, threshold: int
) -> BreakerSnapshot:
    """Fold one call result into the snapshot.

    Only a success seen while closed or half-open closes the breaker. A call
    admitted before the breaker opened may still succeed afterwards; that
    clears the failure count but keeps the circuit open until its trial.
    """
    if succeeded:
        if snapshot.state is CircuitState.OPEN:
            return replace(snapshot, failure_count=0)
        return CLOSED_SNAPSHOT
    failures = snapshot.failure_count + 1
    if snapshot.state is CircuitState.HALF_OPEN or failures >= threshold:
        return BreakerSnapshot(
            state=CircuitState.OPEN, failure_count=failures, last_failure_time=now
        )
    return replace(snapshot, failure_count=failures, last_failure_time=now)


class CircuitBreaker:
    """Stop calling a failing dependency for a cooldown window.

    Build one breaker per downstream dependency and share it; a breaker per
    call never accumulates failures.

    Example:
        breaker = CircuitBreaker(threshold=5, timeout_s=60.0, name="memory-api")
        outcome = await breaker.execute(lambda: fetch_datasets())
    """

    def __init__(
        self,
        threshold: int = 5,
        timeout_s: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        name: str | None = None,
        telemetry: TelemetryContextProtocol = default_telemetry,
    ) -> None:
        if threshold < 1:
            raise ValueError("CircuitBreaker.threshold must be >= 1")
        if timeout_s < 0:
            raise ValueError("CircuitBreaker.timeout_s must be >= 0")
        self.threshold = threshold
        self.timeout_s = timeout_s
        self.name = name or "default"
        self._clock = clock
        self._telemetry = telemetry
        self._lock = threading.Lock()
        self._snapshot = CLOSED_SNAPSHOT
        self._trial_in_flight = False

    def __repr__(self) -> str:
        snap = self._snapshot
        return (
            f"CircuitBreaker(name={self.name!r}, state={snap.state.value!r}, "
            f"failure_count={snap.failure_count}, threshold={self.threshold})"
        )

    @property
    def snapshot(self) -> BreakerSnapshot:
        """The current immutable state."""
        return self._snapshot

    @property
    def state(self) -> CircuitState:
        """The current circuit state."""
        return self._snapshot.state

    @property
    def failure_count(self) -> int:
        """Consecutive failures counted since the last close."""
        return self._snapshot.failure_count

    @property
    def last_failure_time(self) -> float | None:
        """Clock reading of the most recent failure, if any."""
        return self._snapshot.last_failure_time

    def get_state(self) -> CircuitState:
        """Return the current state (read-only)."""
        return self._snapshot.state

    def reset(self) -> None:
        """Force the breaker closed with a zero failure count."""
        with self._lock:
            previous = self._snapshot.state
            self._snapshot = CLOSED_SNAPSHOT
            self._trial_in_flight = False
        if previous is not CircuitState.CLOSED:
            logger.info("Circuit breaker %r reset from %s", self.name, previous)

    async def execute(self, operation: Callable[[], Awaitable[Outcome[T]]]) -> Outcome[T]:
        """Run *operation* unless the circuit is open.

        Rejected calls return ``Failure(NetworkError(503, ...))`` without
        invoking the operation.
        """
        trial = self._enter()
        if trial is None:
            self._telemetry.count("circuit_breaker.rejected", breaker=self.name)
            return Failure(circuit_open_error())

        try:
            outcome = await operation()
        except BaseException:
            # Free the trial slot; the exception itself propagates.
            if trial:
                with self._lock:
                    self._trial_in_flight = False
            raise

        self._leave(succeeded=isinstance(outcome, Success), trial=trial)
        return outcome

    def _enter(self) -> bool | None:
        """Admit a call; return whether it is the half-open trial, or None if rejected."""
        with self._lock:
            before = self._snapshot
            if before.state is CircuitState.HALF_OPEN and self._trial_in_flight:
                return None
            after, admitted = admit(
                before, now=self._clock(), timeout_s=self.timeout_s
            )
            if not admitted:
                return None
            self._snapshot = after
            trial = after.state is CircuitState.HALF_OPEN
            if trial:
                self._trial_in_flight = True
        self._log_transition(before.state, after.state)
        return trial

    def _leave(self, *, succeeded: bool, trial: bool) -> None:
        with self._lock:
            before = self._snapshot
            after = record(
                before,
                succeeded=succeeded,
                now=self._clock(),
                threshold=self.threshold,
            )
            self._snapshot = after
            if trial:
                self._trial_in_flight = False
        self._log_transition(before.state, after.state)

    def _log_transition(self, before: CircuitState, after: CircuitState) -> None:
        if before is after:
            return
        logger.info(
            "Circuit breaker %r: %s -> %s", self.name, before.value, after.value
        )
        self._telemetry.count(
            f"circuit_breaker.{after.value.replace('-', '_')}", breaker=self.name
        )
