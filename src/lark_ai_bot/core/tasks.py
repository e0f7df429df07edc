"""Detached background task runner.

Webhook handlers must acknowledge before the workflow runs, so each workflow
is spawned as an independent asyncio task. The runner keeps strong
references until tasks finish, reports how each one ended, and drains the
in-flight set on shutdown.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

import structlog

from lark_ai_bot.utils.logging import LogEventNames

log = structlog.get_logger()


class BackgroundTaskRunner:
    """Spawns fire-and-forget tasks while keeping them observable.

    Example:
        runner = BackgroundTaskRunner()
        runner.spawn(orchestrator.run(query), name="workflow_om_123")
        ...
        await runner.drain(timeout=30)
    """

    def __init__(self) -> None:
        self._active_tasks: set[asyncio.Task[Any]] = set()
        self._spawned = 0
        self._completed = 0
        self._failed = 0
        self._cancelled = 0

    @property
    def active_count(self) -> int:
        """Return the number of tasks still running."""
        return len(self._active_tasks)

    @property
    def stats(self) -> dict[str, int]:
        """Return task statistics."""
        return {
            "spawned": self._spawned,
            "completed": self._completed,
            "failed": self._failed,
            "cancelled": self._cancelled,
            "active": len(self._active_tasks),
        }

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        """Schedule ``coro`` without awaiting it.

        Must be called from within a running event loop.
        """
        task = asyncio.create_task(coro, name=name)
        self._active_tasks.add(task)
        self._spawned += 1
        task.add_done_callback(self._on_done)
        log.debug(LogEventNames.TASK_SPAWNED, task=task.get_name(), active=len(self._active_tasks))
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._active_tasks.discard(task)

        if task.cancelled():
            self._cancelled += 1
            log.warning(LogEventNames.TASK_CANCELLED, task=task.get_name())
            return

        exc = task.exception()
        if exc is not None:
            self._failed += 1
            log.error(
                LogEventNames.TASK_CRASHED,
                task=task.get_name(),
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=exc,
            )
            return

        self._completed += 1
        result = task.result()
        log.debug(
            LogEventNames.TASK_FINISHED,
            task=task.get_name(),
            result=getattr(result, "value", result),
        )

    async def drain(self, timeout: float) -> None:
        """Wait for active tasks, cancelling whatever outlives ``timeout``."""
        if not self._active_tasks:
            return

        log.info("waiting_for_active_tasks", count=len(self._active_tasks))

        done, pending = await asyncio.wait(set(self._active_tasks), timeout=timeout)

        if pending:
            log.warning("cancelling_pending_tasks", count=len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        log.info("tasks_drained", completed=len(done), cancelled=len(pending))
