"""Territory capture service.

Owns the active trail, runs incoming fixes through the signal conditioner,
asks the geometry kernel for loop closure and finalizes closed loops into
validated territories. Every public operation takes the service lock, so
operations run to completion one at a time even when the auto-finalize
timer fires on its own thread.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import threading
import time
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union, cast
import uuid

from ..config import (
    CAPTURE_AUTO_FINALIZE_DELAY_S,
    CAPTURE_DEFAULT_USER_ID,
    CAPTURE_GPS_ACCURACY_THRESHOLD_M,
    CAPTURE_KALMAN_PREFILTER,
    CAPTURE_LOOP_CLOSURE_THRESHOLD_M,
    CAPTURE_MAX_AREA_SQ_M,
    CAPTURE_MIN_AREA_SQ_M,
    CAPTURE_MIN_LOOP_DISTANCE_M,
    CAPTURE_MIN_POINT_DISTANCE_M,
    CAPTURE_SIMPLIFICATION_TOLERANCE_M,
    CAPTURE_SMOOTHING_WINDOW,
    OUTLIER_MAX_SPEED_MPS,
)
from ..conditioning import (
    ActivityState,
    ConditionedFix,
    GpsKalmanFilter,
    GpsProcessor,
    TrackingConfig,
    adaptive_window_size,
    weighted_window_smooth,
)
from ..conditioning.processor import REJECTED_AS_OUTLIER
from ..errors import ConfigurationError
from ..geometry import (
    centroid,
    close_ring,
    detect_loop_closure,
    distance,
    polygons_overlap,
    simplify,
    validate_area,
)
from ..models import (
    AddPointResult,
    CaptureResult,
    CaptureState,
    CaptureStats,
    CaptureStatus,
    GeoPoint,
    GpsFix,
    Territory,
)
from .events import CaptureFailure, CaptureObserver, ObserverRegistry, PathUpdate
from .scheduling import FinalizeScheduler, ScheduledTask, TimerScheduler

FixInput = Union[GpsFix, Mapping[str, Any], None]

REASON_NOT_CAPTURING = "Not capturing"
REASON_LOW_ACCURACY = "Low GPS accuracy"
REASON_TOO_CLOSE = "Point too close"
REASON_OUTLIER = "Outlier"
REASON_FILTERED = "Filtered"
REASON_POINT_ADDED = "Point added"
REASON_LOOP_DETECTED = "Loop detected"
REASON_CAPTURED = "Captured"


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class CaptureConfiguration:
    """Tunables fixed for the lifetime of a :class:`CaptureService`."""

    min_point_distance_m: float = CAPTURE_MIN_POINT_DISTANCE_M
    gps_accuracy_threshold_m: float = CAPTURE_GPS_ACCURACY_THRESHOLD_M
    smoothing_window: int = CAPTURE_SMOOTHING_WINDOW
    simplification_tolerance_m: float = CAPTURE_SIMPLIFICATION_TOLERANCE_M
    min_loop_distance_m: float = CAPTURE_MIN_LOOP_DISTANCE_M
    loop_closure_threshold_m: float = CAPTURE_LOOP_CLOSURE_THRESHOLD_M
    min_capture_area_sq_m: float = CAPTURE_MIN_AREA_SQ_M
    max_capture_area_sq_m: float = CAPTURE_MAX_AREA_SQ_M
    max_speed_mps: float = OUTLIER_MAX_SPEED_MPS
    auto_finalize_delay_s: float = CAPTURE_AUTO_FINALIZE_DELAY_S
    kalman_prefilter: bool = CAPTURE_KALMAN_PREFILTER

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` for inconsistent settings."""

        problems: List[str] = []
        if self.smoothing_window < 1:
            problems.append("smoothing_window must be >= 1")
        for name in (
            "min_point_distance_m",
            "simplification_tolerance_m",
            "min_loop_distance_m",
            "min_capture_area_sq_m",
            "auto_finalize_delay_s",
        ):
            if getattr(self, name) < 0:
                problems.append(f"{name} must be >= 0")
        for name in (
            "gps_accuracy_threshold_m",
            "loop_closure_threshold_m",
            "max_speed_mps",
        ):
            if getattr(self, name) <= 0:
                problems.append(f"{name} must be > 0")
        if self.min_capture_area_sq_m > self.max_capture_area_sq_m:
            problems.append("min_capture_area_sq_m exceeds max_capture_area_sq_m")
        if problems:
            raise ConfigurationError("; ".join(problems))


class CaptureService:
    """Capture state machine: ``IDLE -> CAPTURING -> {COMPLETED, CANCELLED, FAILED} -> IDLE``.

    A single trail is active at a time. Misuse (adding points while idle,
    starting twice) and poor input are reported through reason strings, never
    raised, so UI races cannot break the service.
    """

    def __init__(
        self,
        config: Optional[CaptureConfiguration] = None,
        *,
        scheduler: Optional[FinalizeScheduler] = None,
        clock: Optional[Callable[[], int]] = None,
        user_id: str = CAPTURE_DEFAULT_USER_ID,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or CaptureConfiguration()
        self.config.validate()
        self.user_id = user_id
        self._scheduler: FinalizeScheduler = scheduler or TimerScheduler()
        self._clock = clock or _wall_clock_ms
        self._log = logger or logging.getLogger(self.__class__.__name__)
        self._lock = threading.RLock()
        self._observers = ObserverRegistry(self._log)

        self._status = CaptureStatus.IDLE
        self._last_outcome: Optional[CaptureStatus] = None
        self._path: List[GeoPoint] = []
        self._raw_path: List[GpsFix] = []
        self._accepted: List[GeoPoint] = []
        self._accuracies: List[Optional[float]] = []
        self._windows: List[int] = []
        self._territories: List[Territory] = []
        self._stats = CaptureStats()
        self._capture_started_ms: Optional[int] = None
        self._generation = 0
        self._pending_finalize: Optional[ScheduledTask] = None

        self._kalman = GpsKalmanFilter()
        self._processor = GpsProcessor(self.config.max_speed_mps)
        self._live_position: Optional[ConditionedFix] = None

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def subscribe(self, observer: CaptureObserver) -> None:
        with self._lock:
            self._observers.add(observer)

    def unsubscribe(self, observer: CaptureObserver) -> None:
        with self._lock:
            self._observers.remove(observer)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    @property
    def is_capturing(self) -> bool:
        return self._status is CaptureStatus.CAPTURING

    @property
    def finalize_pending(self) -> bool:
        return self._pending_finalize is not None

    def start_capture(self, fix: FixInput) -> bool:
        """Begin a new trail at ``fix``; returns False when nothing started."""

        with self._lock:
            if self.is_capturing:
                self._log.warning("Already capturing; start request ignored")
                return False
            gps = self._coerce(fix)
            if gps is None or not self._is_acceptable(gps):
                self._log.warning("Invalid starting position: %s", fix)
                return False

            self._generation += 1
            self._status = CaptureStatus.CAPTURING
            self._capture_started_ms = self._clock()
            self._kalman.reset()
            self._processor.reset()
            self._live_position = self._processor.process_point(gps, True)

            point = self._condition_position(gps)
            self._raw_path = [gps]
            self._accepted = [point]
            self._accuracies = [gps.accuracy]
            self._windows = [self._window_for(gps, None)]
            self._path = [point]

            self._log.info(
                "Capture started at %.6f, %.6f (accuracy=%s)",
                gps.latitude,
                gps.longitude,
                gps.accuracy,
            )
            self._notify_path_update()
            return True

    def add_point(self, fix: FixInput) -> AddPointResult:
        """Append a fix to the active trail and check for loop closure."""

        with self._lock:
            if not self.is_capturing:
                return AddPointResult(False, False, REASON_NOT_CAPTURING)
            gps = self._coerce(fix)
            if gps is None or not self._is_acceptable(gps):
                return AddPointResult(False, False, REASON_LOW_ACCURACY)

            step_m = distance(self._path[-1], gps)
            if step_m < self.config.min_point_distance_m:
                return AddPointResult(False, False, REASON_TOO_CLOSE)

            previous = self._raw_path[-1]
            self._raw_path.append(gps)
            point = self._condition_position(gps)
            self._accepted.append(point)
            self._accuracies.append(gps.accuracy)
            self._windows.append(self._window_for(gps, previous))

            if len(self._accepted) >= self.config.smoothing_window:
                # Recomputed over the whole trail; trails stay in the hundreds.
                self._path = weighted_window_smooth(
                    self._accepted, self._accuracies, self._windows
                )
            else:
                self._path = list(self._accepted)

            self._stats.total_distance_m += step_m
            loop_detected = detect_loop_closure(
                self._path,
                self.config.min_loop_distance_m,
                self.config.loop_closure_threshold_m,
            )
            self._notify_path_update()

            if not loop_detected:
                return AddPointResult(True, False, REASON_POINT_ADDED)
            if self._pending_finalize is None:
                self._handle_loop_detected()
            return AddPointResult(True, True, REASON_LOOP_DETECTED)

    def submit_fix(self, fix: FixInput) -> AddPointResult:
        """Device entry point: condition a raw fix, then feed the active trail.

        Fixes dropped by the update gate or the outlier detector never reach
        the trail, and during a capture neither do fixes above the accuracy
        threshold. The smoothed live position is kept in :attr:`live_position`
        whether or not a capture is running.
        """

        with self._lock:
            gps = self._coerce(fix)
            if gps is None:
                return AddPointResult(False, False, REASON_LOW_ACCURACY)
            # Fixes the trail would refuse must not become the outlier reference.
            if self.is_capturing and not self._is_acceptable(gps):
                return AddPointResult(False, False, REASON_LOW_ACCURACY)
            conditioned = self._processor.process_point(gps, self.is_capturing)
            if conditioned is None:
                if self._processor.last_rejection == REJECTED_AS_OUTLIER:
                    return AddPointResult(False, False, REASON_OUTLIER)
                return AddPointResult(False, False, REASON_FILTERED)
            self._live_position = conditioned
            if not self.is_capturing:
                return AddPointResult(False, False, REASON_NOT_CAPTURING)
            return self.add_point(gps)

    def complete_capture(self) -> CaptureResult:
        """Finalize the active trail now instead of waiting for loop closure."""

        with self._lock:
            if not self.is_capturing:
                return CaptureResult(False, REASON_NOT_CAPTURING)
            self._cancel_pending_finalize()
            return self._finalize()

    def cancel_capture(self) -> None:
        """Discard the active trail; a no-op when idle."""

        with self._lock:
            if not self.is_capturing:
                return
            self._cancel_pending_finalize()
            self._end_capture(CaptureStatus.CANCELLED)
            self._log.info("Capture cancelled")
            self._notify_path_update()

    def clear_territories(self) -> None:
        """Forget every captured territory and reset statistics."""

        with self._lock:
            self._territories.clear()
            self._stats = CaptureStats()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_state(self) -> CaptureState:
        with self._lock:
            duration = 0
            if self._capture_started_ms is not None:
                duration = max(0, self._clock() - self._capture_started_ms)
            return CaptureState(
                is_capturing=self.is_capturing,
                status=self._status,
                path_length=len(self._path),
                distance_m=self._stats.total_distance_m,
                duration_ms=duration,
                captured_count=len(self._territories),
                last_outcome=self._last_outcome,
            )

    def get_captured_territories(self) -> Tuple[Territory, ...]:
        with self._lock:
            return tuple(self._territories)

    def get_active_path(self) -> Tuple[GeoPoint, ...]:
        with self._lock:
            return tuple(self._path)

    @property
    def raw_point_count(self) -> int:
        with self._lock:
            return len(self._raw_path)

    @property
    def stats(self) -> CaptureStats:
        with self._lock:
            return self._stats.snapshot()

    @property
    def live_position(self) -> Optional[ConditionedFix]:
        return self._live_position

    def tracking_config(self, battery_level: float = 100.0) -> TrackingConfig:
        """Duty-cycle advice for the position source in the current state."""

        state = ActivityState.CAPTURING if self.is_capturing else ActivityState.IDLE
        return self._processor.tracking_config(state, battery_level)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @staticmethod
    def _coerce(fix: FixInput) -> Optional[GpsFix]:
        if fix is None or isinstance(fix, GpsFix):
            return fix
        return GpsFix.from_mapping(fix)

    def _is_acceptable(self, fix: GpsFix) -> bool:
        return fix.accuracy is None or fix.accuracy <= self.config.gps_accuracy_threshold_m

    def _condition_position(self, fix: GpsFix) -> GeoPoint:
        if self.config.kalman_prefilter:
            return self._kalman.filter(fix.latitude, fix.longitude, fix.accuracy)
        return fix.point

    def _window_for(self, fix: GpsFix, previous: Optional[GpsFix]) -> int:
        """Smoothing window for a point, narrowed when the user moves fast."""

        speed = fix.speed
        if speed is None and previous is not None:
            elapsed_s = (fix.timestamp - previous.timestamp) / 1000.0
            if elapsed_s > 0:
                speed = distance(previous, fix) / elapsed_s
        if speed is None:
            return self.config.smoothing_window
        return min(self.config.smoothing_window, adaptive_window_size(speed))

    def _handle_loop_detected(self) -> None:
        self._log.info("Loop detected after %d points", len(self._path))
        self._observers.emit("on_loop_detected", tuple(self._path))
        generation = self._generation
        task = self._scheduler.schedule(
            self.config.auto_finalize_delay_s,
            lambda: self._auto_finalize(generation),
        )
        # A scheduler may run the callback inline; only track live tasks.
        if self.is_capturing and self._generation == generation:
            self._pending_finalize = task

    def _auto_finalize(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or not self.is_capturing:
                self._log.debug("Skipping stale auto-finalize for capture %d", generation)
                return
            self._pending_finalize = None
            self._finalize()

    def _cancel_pending_finalize(self) -> None:
        if self._pending_finalize is not None:
            self._pending_finalize.cancel()
            self._pending_finalize = None

    def _finalize(self) -> CaptureResult:
        closed = close_ring(self._path)
        simplified = simplify(closed, self.config.simplification_tolerance_m)
        validation = validate_area(
            simplified,
            self.config.min_capture_area_sq_m,
            self.config.max_capture_area_sq_m,
        )

        if not validation.valid:
            failure = CaptureFailure(
                reason=validation.reason,
                area=validation.area,
                path=tuple(self._path),
            )
            self._log.info(
                "Capture failed: %s (area=%.1f m², %d points)",
                validation.reason,
                validation.area,
                len(self._path),
            )
            self._end_capture(CaptureStatus.FAILED)
            self._notify_path_update()
            self._observers.emit("on_capture_failure", failure)
            return CaptureResult(False, validation.reason, validation.area)

        overlaps = tuple(
            existing.id
            for existing in self._territories
            if polygons_overlap(simplified, existing.polygon)
        )
        if overlaps:
            self._log.warning(
                "Territory overlaps %d existing capture(s): %s",
                len(overlaps),
                ", ".join(overlaps),
            )

        now_ms = self._clock()
        started_ms = self._capture_started_ms if self._capture_started_ms is not None else now_ms
        center = cast(GeoPoint, centroid(simplified))
        territory = Territory(
            id=f"territory-{now_ms}-{uuid.uuid4().hex[:9]}",
            user_id=self.user_id,
            polygon=tuple(simplified),
            center=center,
            area_sq_m=validation.area,
            captured_at_ms=now_ms,
            duration_ms=max(0, now_ms - started_ms),
            distance_m=self._stats.total_distance_m,
            raw_point_count=len(self._raw_path),
            simplified_point_count=len(simplified),
            overlaps=overlaps,
        )
        self._territories.append(territory)
        self._stats.capture_count += 1
        self._stats.total_area_sq_m += validation.area
        self._log.info(
            "Territory captured: %.0f m² from %d raw / %d simplified points",
            territory.area_sq_m,
            territory.raw_point_count,
            territory.simplified_point_count,
        )

        self._end_capture(CaptureStatus.COMPLETED)
        self._notify_path_update()
        self._observers.emit("on_capture_success", territory)
        return CaptureResult(True, REASON_CAPTURED, validation.area, territory)

    def _end_capture(self, outcome: CaptureStatus) -> None:
        self._cancel_pending_finalize()
        self._status = CaptureStatus.IDLE
        self._last_outcome = outcome
        self._path = []
        self._raw_path = []
        self._accepted = []
        self._accuracies = []
        self._windows = []
        self._capture_started_ms = None
        self._stats.total_distance_m = 0.0
        self._kalman.reset()
        self._processor.reset()

    def _notify_path_update(self) -> None:
        self._observers.emit(
            "on_path_update",
            PathUpdate(
                path=tuple(self._path),
                is_capturing=self.is_capturing,
                stats=self._stats.snapshot(),
            ),
        )


__all__ = [
    "CaptureConfiguration",
    "CaptureService",
    "REASON_CAPTURED",
    "REASON_FILTERED",
    "REASON_LOOP_DETECTED",
    "REASON_LOW_ACCURACY",
    "REASON_NOT_CAPTURING",
    "REASON_OUTLIER",
    "REASON_POINT_ADDED",
    "REASON_TOO_CLOSE",
]
