# FILE: app/query/background.py
"""
Fire-and-forget task submission.

Submitted work runs on the event loop independently of the request that
submitted it: the caller never awaits it, its result is dropped and its
failure is logged, not raised. Tasks are held by name until they finish
so the loop does not lose them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class BackgroundRunner:
    """Named background tasks; one live task per name."""

    def __init__(self):
        self._tasks: Dict[str, "asyncio.Future[Any]"] = {}

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def is_running(self, name: str) -> bool:
        return name in self._tasks

    def submit(self, name: str, factory: Callable[[], Awaitable[Any]]) -> Optional["asyncio.Task[None]"]:
        """Start ``factory()`` unless a task with the same name is still running."""
        if name in self._tasks:
            logger.debug("[background] %s already running", name)
            return None
        task = asyncio.get_running_loop().create_task(self._run(name, factory), name=name)
        self._tasks[name] = task
        task.add_done_callback(lambda _t, n=name: self._tasks.pop(n, None))
        logger.info("[background] Submitted %s", name)
        return task

    def track(self, name: str, task: "asyncio.Future[Any]") -> None:
        """Adopt an already running task that its caller stopped waiting for."""
        self._tasks[name] = task
        task.add_done_callback(lambda t, n=name: self._finish_tracked(n, t))

    def _finish_tracked(self, name: str, task: "asyncio.Future[Any]") -> None:
        if self._tasks.get(name) is task:
            del self._tasks[name]
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.warning("[background] %s failed after being abandoned: %s", name, task.exception())
        else:
            logger.debug("[background] %s finished after being abandoned", name)

    async def _run(self, name: str, factory: Callable[[], Awaitable[Any]]) -> None:
        try:
            await factory()
            logger.info("[background] %s finished", name)
        except Exception as e:
            logger.error("[background] %s failed: %s", name, e)

    async def drain(self) -> None:
        """Wait for everything submitted so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        for task in list(self._tasks.values()):
            task.cancel()
        await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
        self._tasks.clear()
