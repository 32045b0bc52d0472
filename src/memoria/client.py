"""Low-level async client for the memory service HTTP API.

One method per endpoint. Methods return the decoded JSON payload and raise
``ServiceError`` on non-2xx responses; transport failures surface as
``httpx.RequestError``. Converting either into an Outcome is the caller's
job (see ``memoria._calls``).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence  # noqa: TC003 - used in signatures at runtime
import logging
from typing import Any, Self

import httpx

from memoria.errors import ServiceError
from memoria.types import PipelineRunStatus, SearchType

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# (filename, content, mime type) as accepted by httpx multipart uploads.
type UploadFile = tuple[str, bytes, str]

__all__ = [
    "API_PREFIX",
    "PipelineRunStatus",
    "ServiceClient",
    "UploadFile",
]


def _error_message(response: httpx.Response) -> tuple[str, Any]:
    """Return ``(message, detail)`` for an error response."""
    detail: Any = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and "detail" in body:
        detail = body["detail"]
    elif body is not None:
        detail = body

    if isinstance(detail, str) and detail:
        return detail, detail
    if detail is not None:
        return str(detail), detail
    text = response.text.strip()
    if text:
        return text, None
    return f"Request failed with status {response.status_code}", None


class ServiceClient:
    """Thin wrapper over ``httpx.AsyncClient`` bound to one service URL.

    Example:
        async with ServiceClient("https://memory.example.com") as client:
            client.auth_token = await client.login("ada@example.com", "...")
            datasets = await client.get_datasets()
    """

    def __init__(
        self,
        base_url: str,
        *,
        auth_token: str | None = None,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self._http = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout_s, transport=transport
        )

    def __repr__(self) -> str:
        authed = self.auth_token is not None
        return f"ServiceClient(base_url={self.base_url!r}, authenticated={authed})"

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def is_closed(self) -> bool:
        """True once the underlying HTTP client is closed."""
        return self._http.is_closed

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    # --- Transport ---

    def _headers(self) -> dict[str, str]:
        if self.auth_token:
            return {"Authorization": f"Bearer {self.auth_token}"}
        return {}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{API_PREFIX}{path}"
        logger.debug("%s %s", method, url)
        response = await self._http.request(
            method, url, headers=self._headers(), **kwargs
        )
        if response.is_error:
            message, detail = _error_message(response)
            logger.debug(
                "%s %s failed with status %d: %s",
                method,
                url,
                response.status_code,
                message,
            )
            raise ServiceError(
                message,
                status_code=response.status_code,
                detail=detail,
                method=method,
                path=url,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    # --- Auth ---

    async def login(self, username: str, password: str) -> str:
        """Exchange credentials for a bearer token."""
        payload = await self._request(
            "POST",
            "/auth/login",
            data={"username": username, "password": password},
        )
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise ServiceError(
                "Login response did not include an access token",
                status_code=502,
                method="POST",
                path=f"{API_PREFIX}/auth/login",
            )
        return token

    async def logout(self) -> None:
        """Invalidate the current token on the service."""
        await self._request("POST", "/auth/logout")

    async def get_current_user(self) -> dict[str, Any]:
        """Return the authenticated user record."""
        return await self._request("GET", "/auth/me")

    # --- Datasets ---

    async def get_datasets(self) -> list[dict[str, Any]]:
        """List every dataset visible to the user."""
        return await self._request("GET", "/datasets") or []

    async def create_dataset(self, name: str) -> dict[str, Any]:
        """Create a dataset and return its record."""
        return await self._request("POST", "/datasets", json={"name": name})

    async def delete_dataset(self, dataset_id: str) -> None:
        """Delete a dataset."""
        await self._request("DELETE", f"/datasets/{dataset_id}")

    async def get_dataset_graph(self, dataset_id: str) -> dict[str, Any]:
        """Return the nodes and edges built for a dataset."""
        return await self._request("GET", f"/datasets/{dataset_id}/graph") or {}

    async def get_dataset_data(self, dataset_id: str) -> list[dict[str, Any]]:
        """List the data items stored in a dataset."""
        return await self._request("GET", f"/datasets/{dataset_id}/data") or []

    async def delete_data(
        self, dataset_id: str, data_id: str, *, mode: str = "soft"
    ) -> None:
        """Delete one data item; *mode* is ``soft`` or ``hard``."""
        await self._request(
            "DELETE", f"/datasets/{dataset_id}/data/{data_id}", params={"mode": mode}
        )

    async def get_dataset_status(
        self, dataset_ids: Iterable[str]
    ) -> dict[str, PipelineRunStatus | str]:
        """Return the pipeline status per dataset id.

        Unknown status strings are passed through unchanged.
        """
        payload = await self._request(
            "GET", "/datasets/status", params={"dataset": list(dataset_ids)}
        )
        statuses: dict[str, PipelineRunStatus | str] = {}
        for key, value in (payload or {}).items():
            try:
                statuses[key] = PipelineRunStatus(value)
            except ValueError:
                statuses[key] = value
        return statuses

    # --- Ingestion and processing ---

    async def add_data(
        self,
        files: Sequence[UploadFile],
        *,
        dataset_name: str | None = None,
        dataset_id: str | None = None,
        node_set: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        """Upload files into a dataset; returns the pipeline run info."""
        form: dict[str, Any] = {}
        if dataset_name is not None:
            form["datasetName"] = dataset_name
        if dataset_id is not None:
            form["datasetId"] = dataset_id
        if node_set:
            form["node_set"] = list(node_set)
        return await self._request(
            "POST",
            "/add",
            data=form,
            files=[("data", f) for f in files],
        )

    async def cognify(
        self, datasets: Sequence[str], *, run_in_background: bool = False
    ) -> dict[str, dict[str, Any]]:
        """Start graph construction; returns run info keyed by dataset id."""
        return await self._request(
            "POST",
            "/cognify",
            json={"datasets": list(datasets), "run_in_background": run_in_background},
        )

    # --- Search ---

    async def search(
        self,
        query: str,
        *,
        search_type: SearchType = SearchType.GRAPH_COMPLETION,
        datasets: Sequence[str] | None = None,
        node_name: Sequence[str] | None = None,
        top_k: int = 10,
        system_prompt: str | None = None,
        only_context: bool = False,
        use_combined_context: bool = False,
    ) -> list[dict[str, Any]]:
        """Run a search and return the raw result list."""
        body: dict[str, Any] = {
            "query": query,
            "search_type": str(search_type),
            "top_k": top_k,
            "only_context": only_context,
            "use_combined_context": use_combined_context,
        }
        if datasets is not None:
            body["datasets"] = list(datasets)
        if node_name:
            body["node_name"] = list(node_name)
        if system_prompt is not None:
            body["system_prompt"] = system_prompt
        return await self._request("POST", "/search", json=body) or []

    async def get_search_history(self) -> list[dict[str, Any]]:
        """Return the raw search history of the user."""
        return await self._request("GET", "/search") or []

    # --- Permissions ---

    async def grant_dataset_permissions(
        self, principal_id: str, permission: str, dataset_ids: Sequence[str]
    ) -> None:
        """Grant *permission* on *dataset_ids* to a user or role."""
        await self._request(
            "POST",
            f"/permissions/datasets/{principal_id}",
            params={"permission_name": permission},
            json=list(dataset_ids),
        )

    async def create_role(self, role_name: str) -> Any:
        """Create a role in the tenant of the authenticated user."""
        return await self._request(
            "POST", "/permissions/roles", params={"role_name": role_name}
        )

    async def add_user_to_role(self, user_id: str, role_id: str) -> None:
        """Add a user to a role."""
        await self._request(
            "POST",
            f"/permissions/users/{user_id}/roles",
            params={"role_id": role_id},
        )
