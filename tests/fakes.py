# tests/fakes.py

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from taskline.tasks.task_models import SubTask, Task, TaskId, TaskPriority, TaskStatus

NOW = datetime(2024, 6, 10, 12, 0)  # a Monday


def make_task(
    task_id: str,
    start: str,
    due: str,
    *,
    status: TaskStatus = TaskStatus.TODO,
    title: str | None = None,
    priority: TaskPriority = TaskPriority.MEDIUM,
    sub_tasks: tuple[SubTask, ...] = (),
    created_at: datetime | None = None,
    updated_at: datetime | None = None,
) -> Task:
    return Task(
        id=TaskId(task_id),
        title=title or f"task {task_id}",
        description="",
        priority=priority,
        status=status,
        start_date=start,
        due_date=due,
        sub_tasks=sub_tasks,
        created_at=created_at,
        updated_at=updated_at,
    )


class FakeClock:
    """Settable clock; pass the instance as TaskStore(clock=...)."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class MemoryKeyValueStore:
    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = dict(data or {})
        self.writes = 0

    def get(self, key: str) -> Any | None:
        return copy.deepcopy(self.data.get(key))

    def set(self, key: str, value: Any) -> None:
        self.writes += 1
        self.data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class FakeRemoteError(RuntimeError):
    pass


@dataclass(slots=True)
class ApiCall:
    op: str
    token: str
    task_id: str | None = None
    payload: dict[str, Any] | None = None


@dataclass
class FakeRemoteApi:
    """
    In-memory RemoteTaskApi.

    - `lists[token]`: what list_tasks() returns for that token
    - `fail`: set of op names ("list", "create", "update", "delete") that raise
    - `gates[op]`: an asyncio.Event the op waits on before answering
    - `echo_patch`: dict merged into every update echo (simulates stale server data)
    """

    lists: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    fail: set[str] = field(default_factory=set)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    echo_patch: dict[str, Any] = field(default_factory=dict)
    calls: list[ApiCall] = field(default_factory=list)
    next_id: int = 100

    async def _enter(self, op: str) -> None:
        gate = self.gates.get(op)
        if gate is not None:
            await gate.wait()
        if op in self.fail:
            raise FakeRemoteError(f"{op} failed")

    async def list_tasks(self, token: str) -> list[dict[str, Any]]:
        self.calls.append(ApiCall("list", token))
        await self._enter("list")
        return copy.deepcopy(self.lists.get(token, []))

    async def create_task(self, payload: dict[str, Any], token: str) -> dict[str, Any]:
        self.calls.append(ApiCall("create", token, payload=copy.deepcopy(payload)))
        await self._enter("create")
        self.next_id += 1
        return {**copy.deepcopy(payload), "id": self.next_id}

    async def update_task(self, task_id: str, payload: dict[str, Any], token: str) -> dict[str, Any]:
        self.calls.append(ApiCall("update", token, task_id=task_id, payload=copy.deepcopy(payload)))
        await self._enter("update")
        echo = {**copy.deepcopy(payload), "id": int(task_id) if task_id.isdigit() else task_id}
        echo.update(copy.deepcopy(self.echo_patch))
        return echo

    async def delete_task(self, task_id: str, token: str) -> None:
        self.calls.append(ApiCall("delete", token, task_id=task_id))
        await self._enter("delete")

    def ops(self) -> list[str]:
        return [c.op for c in self.calls]
