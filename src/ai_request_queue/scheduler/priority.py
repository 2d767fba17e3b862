# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Priority scheduler with bounded concurrency and a sliding dispatch cap.

Waiting jobs are kept in a heap ordered by (-priority weight, submission
sequence): the highest priority is dispatched first and equal priorities
keep FIFO order. A job is dispatched only when fewer than ``concurrency``
jobs are running and, if ``interval_cap`` is set, fewer than
``interval_cap`` jobs were dispatched during the last ``interval`` seconds.
When the cap is the only obstacle a timer re-runs dispatch at the moment
the oldest dispatch leaves the window.
"""

import asyncio
import heapq
import itertools
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from ..exceptions import QueueClearedError
from ..types.request import Priority

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(order=True)
class _Job:
    sort_key: tuple[int, int]
    func: Callable[[], Awaitable[Any]] = field(compare=False)
    future: "asyncio.Future[Any]" = field(compare=False)
    priority: Priority = field(compare=False)
    waiting: bool = field(default=True, compare=False)


class PriorityScheduler:
    """
    Dispatches submitted coroutine factories in priority order.

    Args:
        concurrency: Maximum number of jobs running at once
        interval_cap: Maximum dispatches per sliding ``interval`` (None disables)
        interval: Window length in seconds for ``interval_cap``
        clock: Monotonic time source in seconds

    Example:
        scheduler = PriorityScheduler(concurrency=5, interval_cap=60)
        result = await scheduler.submit(lambda: call_upstream(), Priority.HIGH)
    """

    def __init__(
        self,
        concurrency: int,
        interval_cap: int | None = None,
        interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if concurrency <= 0:
            raise ValueError("concurrency must be greater than 0")
        if interval_cap is not None and interval_cap <= 0:
            raise ValueError("interval_cap must be greater than 0 or None")
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.concurrency = concurrency
        self.interval_cap = interval_cap
        self.interval = interval
        self._clock = clock

        self._heap: list[_Job] = []
        self._waiting = 0
        self._sequence = itertools.count()
        self._active = 0
        self._dispatch_times: deque[float] = deque()
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._idle_waiters: list[asyncio.Future[None]] = []

    @property
    def size(self) -> int:
        """Number of jobs waiting for dispatch."""
        return self._waiting

    @property
    def active(self) -> int:
        """Number of jobs currently running."""
        return self._active

    def is_idle(self) -> bool:
        return self._active == 0 and self._waiting == 0

    async def submit(
        self,
        func: Callable[[], Awaitable[T]],
        priority: Priority | str = Priority.NORMAL,
    ) -> T:
        """
        Queue ``func`` and wait for its result.

        ``func`` is called at most once, when the job is dispatched. If the
        caller is cancelled before dispatch the job is dropped and ``func``
        is never called.

        Raises:
            QueueClearedError: The job was dropped by clear() before dispatch
            Exception: Whatever ``func`` raised
        """
        level = Priority.coerce(priority)
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()
        job = _Job(
            sort_key=(-level.weight, next(self._sequence)),
            func=func,
            future=future,
            priority=level,
        )
        heapq.heappush(self._heap, job)
        self._waiting += 1
        self._dispatch()
        try:
            return await future
        except asyncio.CancelledError:
            if job.waiting:
                self._retire(job)
                self._notify_idle()
            raise

    def _retire(self, job: _Job) -> None:
        if job.waiting:
            job.waiting = False
            self._waiting -= 1

    def _window_full(self, now: float) -> bool:
        if self.interval_cap is None:
            return False
        while self._dispatch_times and now - self._dispatch_times[0] >= self.interval:
            self._dispatch_times.popleft()
        return len(self._dispatch_times) >= self.interval_cap

    def _schedule_wakeup(self, now: float) -> None:
        if self._timer is not None:
            return
        delay = max(0.0, self._dispatch_times[0] + self.interval - now)
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._on_timer)
        logger.debug(f"Dispatch cap reached, resuming in {delay:.2f}s")

    def _on_timer(self) -> None:
        self._timer = None
        self._dispatch()

    def _dispatch(self) -> None:
        while self._heap and self._active < self.concurrency:
            if self._heap[0].future.done():
                self._retire(heapq.heappop(self._heap))
                continue

            now = self._clock()
            if self._window_full(now):
                self._schedule_wakeup(now)
                break

            job = heapq.heappop(self._heap)
            self._retire(job)
            self._active += 1
            if self.interval_cap is not None:
                self._dispatch_times.append(now)

            task = asyncio.get_running_loop().create_task(self._run(job))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        self._notify_idle()

    async def _run(self, job: _Job) -> None:
        try:
            if job.future.done():
                return
            try:
                result = await job.func()
            except asyncio.CancelledError:
                if not job.future.done():
                    job.future.cancel()
                raise
            except Exception as e:
                if not job.future.done():
                    job.future.set_exception(e)
            else:
                if not job.future.done():
                    job.future.set_result(result)
        finally:
            self._active -= 1
            self._dispatch()

    def _notify_idle(self) -> None:
        if not self.is_idle():
            return
        waiters, self._idle_waiters = self._idle_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    async def on_idle(self) -> None:
        """Wait until nothing is waiting and nothing is running."""
        if self.is_idle():
            return
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._idle_waiters.append(waiter)
        await waiter

    def clear(self) -> int:
        """
        Drop every waiting job. Running jobs are not affected.

        Callers of dropped jobs receive QueueClearedError.

        Returns:
            Number of jobs dropped
        """
        dropped = 0
        jobs, self._heap = self._heap, []
        for job in jobs:
            self._retire(job)
            if not job.future.done():
                job.future.set_exception(QueueClearedError("Request dropped by clear_queue()"))
                dropped += 1

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        if dropped:
            logger.info(f"Cleared {dropped} waiting requests")
        self._notify_idle()
        return dropped


__all__ = ["PriorityScheduler"]
