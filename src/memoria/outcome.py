"""Outcome type for explicit, exception-free error handling.

Every SDK operation returns ``Success`` or ``Failure`` instead of raising, so
callers branch before they can touch a value.
"""

from __future__ import annotations

import dataclasses
import typing

from memoria.memory_errors import MemoryErrorDetail  # noqa: TC001 - dataclass field

T = typing.TypeVar("T")


@dataclasses.dataclass(frozen=True, slots=True)
class Success[T]:
    """A successful operation carrying its value."""

    value: T


@dataclasses.dataclass(frozen=True, slots=True)
class Failure:
    """A failed operation carrying a domain error."""

    error: MemoryErrorDetail


type Outcome[T] = Success[T] | Failure


def is_success(outcome: Outcome[typing.Any]) -> typing.TypeIs[Success[typing.Any]]:
    """Return True when *outcome* is the Success variant."""
    return isinstance(outcome, Success)


def is_failure(outcome: Outcome[typing.Any]) -> typing.TypeIs[Failure]:
    """Return True when *outcome* is the Failure variant."""
    return isinstance(outcome, Failure)
