from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable

from utils.time_utils import utc_now


log = logging.getLogger("yippie.runtime")

Callback = Callable[[], Awaitable[None]]


class SingletonTaskRegistry:
    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    def start_once(self, name: str, factory: Callable[[], Awaitable[None]]) -> asyncio.Task:
        task = self._tasks.get(name)
        if task and not task.done():
            return task
        return self.start(name, factory)

    def start(self, name: str, factory: Callable[[], Awaitable[None]]) -> asyncio.Task:
        task = asyncio.create_task(factory(), name=name)
        self._tasks[name] = task
        return task

    def get(self, name: str) -> asyncio.Task | None:
        return self._tasks.get(name)

    def cancel(self, name: str) -> bool:
        task = self._tasks.pop(name, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def cancel_all(self) -> None:
        tasks = [task for task in self._tasks.values() if not task.done()]
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


@dataclass(slots=True)
class PeriodicHandle:
    name: str
    period_seconds: float
    task: asyncio.Task | None = None
    stopped: bool = False

    @property
    def active(self) -> bool:
        return not self.stopped and self.task is not None and not self.task.done()

    def cancel(self) -> None:
        self.stopped = True
        task = self.task
        if task is None or task.done():
            return
        # Stopping from inside the own tick must not interrupt that tick.
        if task is _current_task():
            return
        task.cancel()


class Scheduler:
    """Fixed-period and one-shot callbacks on the running event loop."""

    def __init__(self, registry: SingletonTaskRegistry | None = None, *, clock: Callable[[], datetime] = utc_now) -> None:
        self.registry = registry or SingletonTaskRegistry()
        self._clock = clock
        self._handles: dict[str, PeriodicHandle] = {}

    def run_every(self, name: str, period_seconds: float, callback: Callback) -> PeriodicHandle:
        existing = self._handles.get(name)
        if existing is not None and existing.active:
            return existing

        handle = PeriodicHandle(name=name, period_seconds=max(0.01, float(period_seconds)))
        handle.task = self.registry.start(name, lambda: self._run_periodic(handle, callback))
        self._handles[name] = handle
        log.debug("Started periodic task '%s' every %ss", name, handle.period_seconds)
        return handle

    async def _run_periodic(self, handle: PeriodicHandle, callback: Callback) -> None:
        while not handle.stopped:
            await asyncio.sleep(handle.period_seconds)
            if handle.stopped:
                break
            try:
                await callback()
            except Exception:
                log.exception("Periodic task '%s' failed", handle.name)

    def run_once_at(self, name: str, when: datetime, callback: Callback) -> asyncio.Task:
        async def _runner() -> None:
            delay = (when - self._clock()).total_seconds()
            if delay > 0:
                await asyncio.sleep(delay)
            try:
                await callback()
            except Exception:
                log.exception("Scheduled task '%s' failed", name)

        return self.registry.start(name, _runner)

    def is_running(self, name: str) -> bool:
        handle = self._handles.get(name)
        return handle is not None and handle.active

    def cancel(self, name: str) -> bool:
        handle = self._handles.pop(name, None)
        if handle is None:
            return self.registry.cancel(name)
        was_active = handle.active
        handle.cancel()
        log.debug("Stopped periodic task '%s'", name)
        return was_active

    async def close(self) -> None:
        for handle in self._handles.values():
            handle.stopped = True
        self._handles.clear()
        await self.registry.cancel_all()
