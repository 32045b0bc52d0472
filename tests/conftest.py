"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration and the time doubles
used by retry and circuit breaker tests. Fixtures marked autouse apply to
every test.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass, field
import logging
import os

import pytest

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class FakeClock:
    """Manually advanced monotonic clock for circuit breaker tests."""

    now: float = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class RecordingSleep:
    """Async ``sleep`` replacement that records requested delays and returns at once."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_memoria_env(request, monkeypatch, tmp_path):
    """Ensure a clean configuration environment for each test.

    Clears MEMORIA_* env vars and points the pyproject lookup at an empty
    temp directory so the repository's own pyproject.toml never leaks in.
    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("MEMORIA_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("MEMORIA_PYPROJECT_PATH", str(tmp_path / "pyproject.toml"))


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
