"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: scripted Outcome operations for the
resilience tests, and an in-process memory service for the SDK tests.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import json
from typing import Any

import httpx

from memoria.client import ServiceClient
from memoria.outcome import Outcome, Success
from memoria.types import DatasetStrategy, Session, UserScope

BASE_URL = "https://memory.test"
ORG_ID = "acme"
USER_ID = "3f1c2a9e-0b7d-4e61-9a55-2c8f4d1e7b30"


@dataclass
class ScriptedOperation:
    """Zero-argument Outcome operation that replays a script.

    Each item is returned in turn (or raised, for exceptions); the last item
    repeats once the script is exhausted.
    """

    script: list[Outcome[Any] | BaseException] = field(default_factory=list)
    calls: int = 0

    async def __call__(self) -> Outcome[Any]:
        self.calls += 1
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, BaseException):
            raise item
        return item


def always(value: Any = "ok") -> ScriptedOperation:
    return ScriptedOperation([Success(value)])


Handler = Callable[[httpx.Request], httpx.Response]


@dataclass
class FakeService:
    """In-process stand-in for the memory service behind ``httpx.MockTransport``.

    Routes are keyed by ``(method, path)``; a route value is either a
    handler or a JSON payload answered with 200. Unrouted requests get 404.
    """

    routes: dict[tuple[str, str], Handler | Any] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def route(self, method: str, path: str, response: Handler | Any) -> None:
        self.routes[(method, path)] = response

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._dispatch)

    def _dispatch(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        target = self.routes.get((request.method, request.url.path))
        if target is None:
            return httpx.Response(404, json={"detail": f"No route for {request.url.path}"})
        if callable(target):
            return target(request)
        return httpx.Response(200, json=target)

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests if r.method == method and r.url.path == path
        ]


def json_body(request: httpx.Request) -> Any:
    return json.loads(request.content)


def make_session(
    service: FakeService,
    *,
    organization_id: str = ORG_ID,
    strategy: DatasetStrategy | None = None,
    **kwargs: Any,
) -> Session:
    """Build an authenticated session wired to *service*."""
    client = ServiceClient(BASE_URL, auth_token="token-123", transport=service.transport())
    return Session(
        service_url=BASE_URL,
        organization_id=organization_id,
        user_id=USER_ID,
        user_name="ada@example.com",
        dataset_strategy=strategy or UserScope(organization_id=organization_id, user_id="ada"),
        client=client,
        **kwargs,
    )
