"""Typed capture events and the observer interface that receives them."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import queue
from typing import Any, List, Tuple, Union

from ..models import CaptureStats, GeoPoint, Territory


@dataclass(frozen=True, slots=True)
class PathUpdate:
    path: Tuple[GeoPoint, ...]
    is_capturing: bool
    stats: CaptureStats


@dataclass(frozen=True, slots=True)
class LoopDetected:
    path: Tuple[GeoPoint, ...]


@dataclass(frozen=True, slots=True)
class CaptureSucceeded:
    territory: Territory


@dataclass(frozen=True, slots=True)
class CaptureFailure:
    """Why a finalized ring was rejected, with the unsimplified trail."""

    reason: str
    area: float
    path: Tuple[GeoPoint, ...]


CaptureEvent = Union[PathUpdate, LoopDetected, CaptureSucceeded, CaptureFailure]


class CaptureObserver:
    """Receiver for capture lifecycle events; override the hooks you need.

    Events are delivered synchronously, in order, on the thread that caused
    them (the auto-finalize timer thread for automatic completion).
    """

    def on_path_update(self, update: PathUpdate) -> None:
        pass

    def on_loop_detected(self, path: Tuple[GeoPoint, ...]) -> None:
        pass

    def on_capture_success(self, territory: Territory) -> None:
        pass

    def on_capture_failure(self, failure: CaptureFailure) -> None:
        pass


class EventQueue(CaptureObserver):
    """Observer that buffers events in a queue for a polling consumer."""

    def __init__(self) -> None:
        self.events: "queue.Queue[CaptureEvent]" = queue.Queue()

    def on_path_update(self, update: PathUpdate) -> None:
        self.events.put(update)

    def on_loop_detected(self, path: Tuple[GeoPoint, ...]) -> None:
        self.events.put(LoopDetected(path))

    def on_capture_success(self, territory: Territory) -> None:
        self.events.put(CaptureSucceeded(territory))

    def on_capture_failure(self, failure: CaptureFailure) -> None:
        self.events.put(failure)

    def drain(self) -> List[CaptureEvent]:
        """Return and remove every buffered event."""

        drained: List[CaptureEvent] = []
        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                return drained


class ObserverRegistry:
    """Ordered set of observers with fault-isolated dispatch."""

    def __init__(self, logger: logging.Logger) -> None:
        self._observers: List[CaptureObserver] = []
        self._log = logger

    def __len__(self) -> int:
        return len(self._observers)

    def add(self, observer: CaptureObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove(self, observer: CaptureObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def emit(self, hook: str, payload: Any) -> None:
        for observer in list(self._observers):
            try:
                getattr(observer, hook)(payload)
            except Exception as exc:  # noqa: BLE001 - one observer must not starve others
                self._log.error(
                    "Observer %s failed in %s: %s",
                    type(observer).__name__,
                    hook,
                    exc,
                    exc_info=True,
                )


__all__ = [
    "CaptureEvent",
    "CaptureFailure",
    "CaptureObserver",
    "CaptureSucceeded",
    "EventQueue",
    "LoopDetected",
    "ObserverRegistry",
    "PathUpdate",
]
