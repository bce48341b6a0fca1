"""Deterministic scheduler driven by explicitly advanced time."""

from __future__ import annotations

from collections.abc import Callable

from .interfaces import PeriodicTask, Scheduler


class _ManualTask(PeriodicTask):
    def __init__(self, interval_sec: float, callback: Callable[[], None], start: float) -> None:
        self.interval_sec = float(interval_sec)
        self.callback = callback
        self.next_due = start + self.interval_sec
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def stop(self) -> None:
        self._active = False


class ManualScheduler(Scheduler):
    """
    Scheduler for headless runs and tests.

    ``advance(seconds)`` moves the clock forward and fires every due task in
    timestamp order, as many times as its interval fits.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)
        self._tasks: list[_ManualTask] = []

    def every(self, interval_sec: float, callback: Callable[[], None]) -> PeriodicTask:
        if interval_sec <= 0.0:
            raise ValueError(f"interval_sec must be positive, got {interval_sec}")
        task = _ManualTask(interval_sec, callback, self.now)
        self._tasks.append(task)
        return task

    def clock(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        end = self.now + float(seconds)
        while True:
            self._tasks = [t for t in self._tasks if t.active]
            due = [t for t in self._tasks if t.next_due <= end + 1e-12]
            if not due:
                break
            task = min(due, key=lambda t: t.next_due)
            self.now = max(self.now, task.next_due)
            task.next_due += task.interval_sec
            task.callback()
        self.now = end

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks if t.active)
