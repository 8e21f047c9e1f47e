# src/taskline/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task store depends on Protocols instead of concrete implementations.
This keeps the remote API, identity source and local storage swappable and
makes testing easier.
"""

from collections.abc import Callable
from typing import Any, Protocol

ApiEntity = dict[str, Any]
# One task as the remote API encodes it (startTime/endTime, DONE, ...).


class RemoteTaskApi(Protocol):
    """
    Remote task API. Every call carries the caller's bearer token.

    Implementations raise on transport errors and non-2xx responses; the store
    decides what a failure means.
    """

    async def list_tasks(self, token: str) -> list[ApiEntity]: ...

    async def create_task(self, payload: ApiEntity, token: str) -> ApiEntity: ...

    async def update_task(self, task_id: str, payload: ApiEntity, token: str) -> ApiEntity: ...

    async def delete_task(self, task_id: str, token: str) -> None: ...


IdentityListener = Callable[[str | None], None]


class IdentityProvider(Protocol):
    """Current bearer credential (None means guest/local mode)."""

    @property
    def token(self) -> str | None: ...

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a login/logout listener. Returns an unsubscribe callable."""
        ...


class StatusRefresher(Protocol):
    """What the status sweep needs from the store."""

    def refresh_statuses(self) -> list[str]: ...


class KeyValueStore(Protocol):
    """Durable key-value storage for guest mode (best-effort, UX only)."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...
