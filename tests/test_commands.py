# tests/test_commands.py

from __future__ import annotations

import pytest

from taskline.cli.commands import CommandRegistry, registry


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2 " + " ".join(args)

    async def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    assert await reg.handle(state, '/a "two words" x') == "h2 two words x"
    assert await reg.handle(state, "/bee y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_add_list_and_complete(state) -> None:
    await state.store.reload()

    reply = await registry.handle(state, '/add 2024-06-10T14:00 30 "Team sync" --priority=high')
    assert reply.startswith("Added:")
    task = state.store.tasks[0]
    assert task.title == "Team sync"
    assert task.due_date == "2024-06-10T14:30"

    listing = await registry.handle(state, "/ls")
    assert "today (1)" in listing
    assert "Team sync" in listing

    assert await registry.handle(state, f"/done {task.id}") == "COMPLETED: Team sync"
    assert "completed (1)" in await registry.handle(state, "/list")


@pytest.mark.asyncio
async def test_add_reports_conflicts_and_validation_errors(state) -> None:
    await state.store.reload()
    await registry.handle(state, "/add 2024-06-10T14:00 60 Planning")

    held = await registry.handle(state, "/add 2024-06-10T14:15 60 Review")
    assert held.startswith("Conflict:")
    assert len(state.store.tasks) == 1

    forced = await registry.handle(state, "/add 2024-06-10T14:15 60 Review --force")
    assert forced.startswith("Added:")
    assert "saved despite conflict" in forced

    rejected = await registry.handle(state, "/add 2024-06-10T14:00 0 Nothing")
    assert rejected == "Rejected: Due date must be after the start date."


@pytest.mark.asyncio
async def test_filter_and_view_commands(state) -> None:
    await state.store.reload()
    await registry.handle(state, "/add 2024-06-12T09:00 30 Later")

    assert await registry.handle(state, "/view today") == "View: TODAY"
    assert await registry.handle(state, "/list") == "No tasks."

    await registry.handle(state, "/view upcoming")
    assert "Later" in await registry.handle(state, "/list")

    assert "Unknown status" in await registry.handle(state, "/filter status=someday")
    reply = await registry.handle(state, "/filter priority=urgent")
    assert "priority=URGENT" in reply
    assert await registry.handle(state, "/list") == "No tasks."

    assert await registry.handle(state, "/filter clear") == "Filter cleared."
