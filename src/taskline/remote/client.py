# src/taskline/remote/client.py

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class RemoteApiError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteAuthError(RemoteApiError):
    pass


def _error_message(response: httpx.Response) -> str:
    """Best human-readable message: JSON "message", the JSON itself, the body text."""
    fallback = f"Request failed with status {response.status_code}"
    try:
        data = response.json()
    except ValueError:
        text = (response.text or "").strip()
        return text or fallback
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return json.dumps(data, ensure_ascii=False)


class HttpTaskApi:
    """
    Remote task API over HTTP (httpx, async).

    Endpoints:
      GET    /api/tasks
      POST   /api/tasks
      PUT    /api/tasks/{id}
      DELETE /api/tasks/{id}

    Raises RemoteApiError for non-2xx responses; transport errors surface as
    httpx.HTTPError. No retries: the caller treats a failure as terminal.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds, connect=min(5.0, timeout_seconds)),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {token}"}
        response = await self._client.request(method, path, json=payload, headers=headers)

        if response.status_code in (401, 403):
            raise RemoteAuthError(_error_message(response), response.status_code)
        if response.is_error:
            raise RemoteApiError(_error_message(response), response.status_code)

        logger.debug("%s %s -> %s", method, path, response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        if "application/json" in response.headers.get("content-type", ""):
            try:
                return response.json()
            except ValueError:
                # Some backends claim JSON but send plain text.
                return response.text
        return response.text

    async def list_tasks(self, token: str) -> list[dict[str, Any]]:
        data = await self._request("GET", "/api/tasks", token)
        if not isinstance(data, list):
            raise RemoteApiError(f"Unexpected task list payload: {type(data).__name__}")
        return data

    async def create_task(self, payload: dict[str, Any], token: str) -> dict[str, Any]:
        data = await self._request("POST", "/api/tasks", token, payload)
        if not isinstance(data, dict):
            raise RemoteApiError("Create returned no task entity")
        return data

    async def update_task(
        self, task_id: str, payload: dict[str, Any], token: str
    ) -> dict[str, Any]:
        data = await self._request("PUT", f"/api/tasks/{task_id}", token, payload)
        if not isinstance(data, dict):
            raise RemoteApiError("Update returned no task entity")
        return data

    async def delete_task(self, task_id: str, token: str) -> None:
        await self._request("DELETE", f"/api/tasks/{task_id}", token)
