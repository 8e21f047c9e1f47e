# tests/test_task_scheduler.py

from __future__ import annotations

import asyncio

import pytest

from taskline.tasks.task_models import TaskDraft, TaskStatus
from taskline.tasks.task_scheduler import run_status_sweep
from taskline.tasks.task_store import TaskStore

from .fakes import NOW, FakeClock, MemoryKeyValueStore


class FlakyRefresher:
    """StatusRefresher that fails on its first call, then reports one change."""

    def __init__(self) -> None:
        self.calls = 0

    def refresh_statuses(self) -> list[str]:
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("sweep exploded")
        return ["t1"]


@pytest.mark.asyncio
async def test_sweep_keeps_running_after_a_failure() -> None:
    refresher = FlakyRefresher()
    runner = asyncio.create_task(run_status_sweep(refresher, interval_seconds=0.01))

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert refresher.calls >= 2


@pytest.mark.asyncio
async def test_store_sweep_moves_tasks_as_time_passes(guest_identity) -> None:
    clock = FakeClock(NOW)
    store = TaskStore(
        identity=guest_identity,
        local=MemoryKeyValueStore({"tasks": []}),
        clock=clock,
        sweep_interval_seconds=0.01,
    )
    await store.start()
    try:
        task = await store.add_task(
            TaskDraft(title="Lunch", start_date="2024-06-10T12:30", due_date="2024-06-10T13:00")
        )
        assert task.status == TaskStatus.TODO

        clock.advance(minutes=40)
        await asyncio.sleep(0.05)
        assert store.get_task(task.id).status == TaskStatus.IN_PROGRESS

        clock.advance(hours=1)
        await asyncio.sleep(0.05)
        assert store.get_task(task.id).status == TaskStatus.ARCHIVED
    finally:
        await store.aclose()
