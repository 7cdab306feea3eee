"""Duty-cycle advice for the position source and idle update gating."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Optional, Union

from ..config import (
    GATE_CAPTURE_MAX_ACCURACY_M,
    GATE_IDLE_MIN_MOVEMENT_M,
    LOW_BATTERY_THRESHOLD,
    TRACKING_BALANCED_DISTANCE_M,
    TRACKING_BALANCED_INTERVAL_MS,
    TRACKING_CAPTURE_DISTANCE_M,
    TRACKING_CAPTURE_INTERVAL_MS,
    TRACKING_LOW_POWER_DISTANCE_M,
    TRACKING_LOW_POWER_INTERVAL_MS,
)
from ..geometry import distance
from ..models import GeoPoint, GpsFix

LOGGER = logging.getLogger(__name__)


class ActivityState(str, Enum):
    CAPTURING = "capturing"
    IDLE = "idle"
    BACKGROUND = "background"


class AccuracyTier(str, Enum):
    HIGH = "high"
    BALANCED = "balanced"
    LOW_POWER = "low_power"


@dataclass(frozen=True, slots=True)
class TrackingConfig:
    """Recommended position-source settings for the current activity."""

    accuracy_tier: AccuracyTier
    time_interval_ms: int
    distance_interval_m: float
    show_background_indicator: bool


def tracking_config(
    activity_state: Union[ActivityState, str] = ActivityState.IDLE,
    battery_level: float = 100.0,
) -> TrackingConfig:
    """Map activity and battery level to recommended tracking settings.

    Capturing always gets the high-accuracy tier regardless of battery. This
    is advice only; throttling the position source is the caller's job.

    Raises:
        ValueError: For an unknown activity state or a battery level outside
            0-100.
    """

    state = ActivityState(activity_state)
    if not 0.0 <= battery_level <= 100.0:
        raise ValueError(f"battery_level must be within 0-100, got {battery_level}")

    if state is ActivityState.CAPTURING:
        return TrackingConfig(
            accuracy_tier=AccuracyTier.HIGH,
            time_interval_ms=TRACKING_CAPTURE_INTERVAL_MS,
            distance_interval_m=TRACKING_CAPTURE_DISTANCE_M,
            show_background_indicator=True,
        )
    if battery_level < LOW_BATTERY_THRESHOLD:
        return TrackingConfig(
            accuracy_tier=AccuracyTier.LOW_POWER,
            time_interval_ms=TRACKING_LOW_POWER_INTERVAL_MS,
            distance_interval_m=TRACKING_LOW_POWER_DISTANCE_M,
            show_background_indicator=False,
        )
    return TrackingConfig(
        accuracy_tier=AccuracyTier.BALANCED,
        time_interval_ms=TRACKING_BALANCED_INTERVAL_MS,
        distance_interval_m=TRACKING_BALANCED_DISTANCE_M,
        show_background_indicator=False,
    )


class UpdateGate:
    """Decide whether a fix is worth processing at all."""

    def __init__(
        self,
        idle_min_movement_m: float = GATE_IDLE_MIN_MOVEMENT_M,
        capture_max_accuracy_m: float = GATE_CAPTURE_MAX_ACCURACY_M,
    ) -> None:
        self.idle_min_movement_m = idle_min_movement_m
        self.capture_max_accuracy_m = capture_max_accuracy_m
        self._last_position: Optional[GeoPoint] = None

    def should_process(self, fix: GpsFix, is_capturing: bool = False) -> bool:
        if is_capturing:
            if fix.accuracy is not None and fix.accuracy > self.capture_max_accuracy_m:
                LOGGER.debug("Skipping update: poor accuracy %.1f m", fix.accuracy)
                return False
            return True

        if self._last_position is None:
            self._last_position = fix.point
            return True

        if distance(self._last_position, fix) < self.idle_min_movement_m:
            return False

        self._last_position = fix.point
        return True

    def reset(self) -> None:
        self._last_position = None


__all__ = [
    "AccuracyTier",
    "ActivityState",
    "TrackingConfig",
    "UpdateGate",
    "tracking_config",
]
