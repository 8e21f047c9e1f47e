# tests/conftest.py

from __future__ import annotations

import pytest

from taskline.config import Settings
from taskline.core.identity import SessionIdentity
from taskline.core.state import AppState
from taskline.tasks.task_store import TaskStore

from .fakes import NOW, FakeClock, FakeRemoteApi, MemoryKeyValueStore


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture()
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def api() -> FakeRemoteApi:
    return FakeRemoteApi()


@pytest.fixture()
def guest_identity() -> SessionIdentity:
    return SessionIdentity()


@pytest.fixture()
def remote_identity() -> SessionIdentity:
    return SessionIdentity("token-a")


@pytest.fixture()
def guest_store(guest_identity, api, kv, clock) -> TaskStore:
    """
    Guest-mode store over an empty (but present) task list, so tests start
    from a known collection instead of the demo seed.
    """
    kv.set("tasks", [])
    return TaskStore(identity=guest_identity, api=api, local=kv, clock=clock)


@pytest.fixture()
def remote_store(remote_identity, api, kv, clock) -> TaskStore:
    return TaskStore(identity=remote_identity, api=api, local=kv, clock=clock)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        app_name="taskline-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path,
        guest_store_path=tmp_path / "guest_tasks.json",
        api_base_url="http://localhost:9",
        api_token=None,
        request_timeout_seconds=1.0,
        sweep_interval_seconds=30.0,
        trend_weeks=6,
    )


@pytest.fixture()
def state(settings, guest_identity, guest_store) -> AppState:
    return AppState(settings=settings, identity=guest_identity, store=guest_store)
