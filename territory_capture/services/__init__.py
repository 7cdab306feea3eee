"""Service layer package.

Exports the capture orchestrator and the event types it publishes.
"""

from .capture_service import CaptureConfiguration, CaptureService
from .events import (
    CaptureEvent,
    CaptureFailure,
    CaptureObserver,
    CaptureSucceeded,
    EventQueue,
    LoopDetected,
    PathUpdate,
)
from .scheduling import FinalizeScheduler, ScheduledTask, TimerScheduler

__all__ = [
    "CaptureConfiguration",
    "CaptureEvent",
    "CaptureFailure",
    "CaptureObserver",
    "CaptureService",
    "CaptureSucceeded",
    "EventQueue",
    "FinalizeScheduler",
    "LoopDetected",
    "PathUpdate",
    "ScheduledTask",
    "TimerScheduler",
]
