# src/taskline/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (identity/API/local store/task store).
"""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..core.identity import SessionIdentity
from ..core.state import AppState
from ..remote.client import HttpTaskApi
from ..storage.local_store import JsonFileStore
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.guest_store_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings: Settings | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    The store is not started here; call `await state.store.start()` inside the event loop.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    identity = SessionIdentity(settings.api_token)
    api = HttpTaskApi(settings.api_base_url, timeout_seconds=settings.request_timeout_seconds)
    store = TaskStore(
        identity=identity,
        api=api,
        local=JsonFileStore(settings.guest_store_path),
        sweep_interval_seconds=settings.sweep_interval_seconds,
        trend_weeks=settings.trend_weeks,
    )
    return AppState(settings=settings, identity=identity, store=store, api=api)


async def shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await state.store.aclose()
    except Exception:
        logger.exception("Task store close failed.")

    if state.api is not None:
        try:
            await state.api.aclose()
        except Exception:
            logger.debug("HTTP client close failed.", exc_info=True)
