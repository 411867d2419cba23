"""Deferred callback scheduler with cancellable timer handles."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from heapq import heappop, heappush

TaskCallback = Callable[[], None]


@dataclass(slots=True)
class _Task:
    task_id: int
    due_seconds: float
    callback: TaskCallback
    cancelled: bool = False


class TimerHandle:
    """Handle returned by ``Scheduler.call_later``."""

    __slots__ = ("_scheduler", "_task")

    def __init__(self, scheduler: Scheduler, task: _Task) -> None:
        self._scheduler = scheduler
        self._task = task

    @property
    def task_id(self) -> int:
        return self._task.task_id

    @property
    def due_seconds(self) -> float:
        return self._task.due_seconds

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled

    @property
    def pending(self) -> bool:
        """Whether the callback is still waiting to run."""
        return not self._task.cancelled and self._scheduler.is_queued(self._task.task_id)

    def cancel(self) -> None:
        """Cancel the callback. Cancelling a finished task is a no-op."""
        self._scheduler.cancel(self._task.task_id)


class Scheduler:
    """Manual-clock scheduler; the host advances time explicitly."""

    def __init__(self) -> None:
        self._now_seconds = 0.0
        self._next_task_id = 1
        self._tasks: dict[int, _Task] = {}
        self._queue: list[tuple[float, int]] = []

    @property
    def now_seconds(self) -> float:
        return self._now_seconds

    @property
    def queued_task_count(self) -> int:
        """Return count of active queued tasks."""
        return sum(1 for task in self._tasks.values() if not task.cancelled)

    def is_queued(self, task_id: int) -> bool:
        return task_id in self._tasks

    def call_later(self, delay_seconds: float, callback: TaskCallback) -> TimerHandle:
        """Schedule a one-shot callback after delay."""
        if delay_seconds < 0.0:
            raise ValueError("delay_seconds must be >= 0")
        task = _Task(
            task_id=self._next_task_id,
            due_seconds=self._now_seconds + delay_seconds,
            callback=callback,
        )
        self._next_task_id += 1
        self._tasks[task.task_id] = task
        heappush(self._queue, (task.due_seconds, task.task_id))
        return TimerHandle(self, task)

    def cancel(self, task_id: int) -> None:
        """Cancel a scheduled task if it exists."""
        task = self._tasks.get(task_id)
        if task is not None:
            task.cancelled = True

    def advance(self, delta_seconds: float) -> int:
        """Advance scheduler clock and run due callbacks."""
        if delta_seconds < 0.0:
            raise ValueError("delta_seconds must be >= 0")
        return self.run_due(self._now_seconds + delta_seconds)

    def run_due(self, now_seconds: float) -> int:
        """Run callbacks due at or before ``now_seconds``.

        Callbacks scheduled with zero delay from inside a running callback run
        in the same pass.
        """
        if now_seconds < self._now_seconds:
            raise ValueError("now_seconds cannot move backwards")
        self._now_seconds = now_seconds
        executed = 0
        while self._queue and self._queue[0][0] <= self._now_seconds:
            _, task_id = heappop(self._queue)
            task = self._tasks.pop(task_id, None)
            if task is None or task.cancelled:
                continue
            task.callback()
            executed += 1
        return executed

    def run_until_idle(self, *, max_steps: int = 10_000) -> int:
        """Jump the clock forward task by task until nothing is queued."""
        executed = 0
        for _ in range(max_steps):
            live = [due for due, task_id in self._queue if not self._tasks[task_id].cancelled]
            if not live:
                break
            executed += self.run_due(max(self._now_seconds, min(live)))
        return executed
