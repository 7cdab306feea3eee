"""Cancellable delayed tasks used for automatic capture finalization."""

from __future__ import annotations

import threading
from typing import Callable, Protocol


class ScheduledTask(Protocol):
    def cancel(self) -> None: ...


class FinalizeScheduler(Protocol):
    def schedule(self, delay_s: float, callback: Callable[[], None]) -> ScheduledTask: ...


class TimerScheduler:
    """Run callbacks on daemon ``threading.Timer`` threads."""

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> ScheduledTask:
        timer = threading.Timer(max(delay_s, 0.0), callback)
        timer.daemon = True
        timer.start()
        return timer


__all__ = ["FinalizeScheduler", "ScheduledTask", "TimerScheduler"]
