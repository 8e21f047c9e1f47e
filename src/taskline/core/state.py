# src/taskline/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..config import Settings
from ..remote.client import HttpTaskApi
from ..tasks.task_store import TaskStore
from .identity import SessionIdentity


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Settings

    identity: SessionIdentity
    store: TaskStore
    api: HttpTaskApi | None = None
