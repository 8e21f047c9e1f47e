# src/taskline/tasks/task_scheduler.py

"""
Status sweep.

A small polling loop that re-derives every task's status against the current
time, so tasks move to IN_PROGRESS or ARCHIVED without any user action.

The store owns the loop: it starts it in start() and cancels it in aclose().
"""

from __future__ import annotations

import asyncio
import logging

from ..core.ports import StatusRefresher

logger = logging.getLogger(__name__)


async def run_status_sweep(
        target: StatusRefresher,
        *,
        interval_seconds: float = 30.0,
) -> None:
    """
    Every interval_seconds:
    - call target.refresh_statuses()
    - log the ids whose status changed

    A failing sweep is logged and the loop keeps going.
    To stop the sweep, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            changed = target.refresh_statuses()
        except Exception:
            logger.exception("refresh_statuses failed")
            changed = []

        if changed:
            logger.info("Status sweep updated %d task(s): %s", len(changed), ", ".join(changed))
        else:
            logger.debug("Status sweep: no changes")

        await asyncio.sleep(sleep_s)
