# tests/test_remote_client.py

from __future__ import annotations

import json

import httpx
import pytest

from taskline.remote.client import HttpTaskApi, RemoteApiError, RemoteAuthError


def _api(handler) -> HttpTaskApi:
    return HttpTaskApi("https://tasks.example.test/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_requests_carry_bearer_token_and_wire_payload() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "GET":
            return httpx.Response(200, json=[{"id": 1, "title": "a"}])
        if request.method == "POST":
            body = json.loads(request.content)
            return httpx.Response(201, json={**body, "id": 2})
        if request.method == "PUT":
            return httpx.Response(200, json={"id": 2, "title": "renamed"})
        return httpx.Response(204)

    api = _api(handler)
    try:
        assert await api.list_tasks("tok") == [{"id": 1, "title": "a"}]
        created = await api.create_task({"title": "b", "startTime": "2024-06-10 09:00"}, "tok")
        updated = await api.update_task("2", {"title": "renamed"}, "tok")
        assert await api.delete_task("2", "tok") is None
    finally:
        await api.aclose()

    assert created == {"title": "b", "startTime": "2024-06-10 09:00", "id": 2}
    assert updated["title"] == "renamed"
    assert [(r.method, r.url.path) for r in seen] == [
        ("GET", "/api/tasks"),
        ("POST", "/api/tasks"),
        ("PUT", "/api/tasks/2"),
        ("DELETE", "/api/tasks/2"),
    ]
    assert all(r.headers["Authorization"] == "Bearer tok" for r in seen)


@pytest.mark.asyncio
async def test_auth_failures_raise_auth_error() -> None:
    api = _api(lambda request: httpx.Response(401, json={"message": "token expired"}))
    try:
        with pytest.raises(RemoteAuthError) as exc:
            await api.list_tasks("old")
    finally:
        await api.aclose()

    assert exc.value.status_code == 401
    assert str(exc.value) == "token expired"


@pytest.mark.asyncio
async def test_server_errors_use_body_text() -> None:
    api = _api(lambda request: httpx.Response(500, text="database down"))
    try:
        with pytest.raises(RemoteApiError) as exc:
            await api.update_task("1", {}, "tok")
    finally:
        await api.aclose()

    assert exc.value.status_code == 500
    assert "database down" in str(exc.value)


@pytest.mark.asyncio
async def test_unexpected_payload_shapes_are_errors() -> None:
    api = _api(lambda request: httpx.Response(200, json={"items": []}))
    try:
        with pytest.raises(RemoteApiError):
            await api.list_tasks("tok")
    finally:
        await api.aclose()

    api = _api(lambda request: httpx.Response(204))
    try:
        with pytest.raises(RemoteApiError):
            await api.create_task({"title": "x"}, "tok")
    finally:
        await api.aclose()
