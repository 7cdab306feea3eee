"""Complete GPS conditioning pipeline: gate, outlier rejection, smoothing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..config import OUTLIER_MAX_SPEED_MPS
from ..models import GpsFix
from .outliers import OutlierDetector
from .smoothing import AdaptivePathSmoother
from .tracking import ActivityState, TrackingConfig, UpdateGate, tracking_config

REJECTED_BY_GATE = "gated"
REJECTED_AS_OUTLIER = "outlier"


@dataclass(frozen=True, slots=True)
class ConditionedFix:
    """Smoothed position derived from one accepted raw fix."""

    latitude: float
    longitude: float
    timestamp: int
    original_accuracy: Optional[float]


class GpsProcessor:
    """Run raw fixes through the update gate, outlier detector and smoother."""

    def __init__(
        self,
        max_speed_mps: float = OUTLIER_MAX_SPEED_MPS,
        *,
        gate: Optional[UpdateGate] = None,
        smoother: Optional[AdaptivePathSmoother] = None,
    ) -> None:
        self.gate = gate or UpdateGate()
        self.outlier_detector = OutlierDetector(max_speed_mps)
        self.smoother = smoother or AdaptivePathSmoother()
        self.last_rejection: Optional[str] = None

    def process_point(
        self, fix: GpsFix, is_capturing: bool = False
    ) -> Optional[ConditionedFix]:
        """Return the conditioned position, or ``None`` if the fix was dropped."""

        self.last_rejection = None
        if not self.gate.should_process(fix, is_capturing):
            self.last_rejection = REJECTED_BY_GATE
            return None
        if self.outlier_detector.is_outlier(fix, fix.timestamp):
            self.last_rejection = REJECTED_AS_OUTLIER
            return None
        smoothed = self.smoother.add_point(fix, fix.accuracy, fix.speed)
        return ConditionedFix(
            latitude=smoothed.latitude,
            longitude=smoothed.longitude,
            timestamp=fix.timestamp,
            original_accuracy=fix.accuracy,
        )

    def reset(self) -> None:
        self.smoother.reset()
        self.outlier_detector.reset()
        self.gate.reset()
        self.last_rejection = None

    def tracking_config(
        self,
        activity_state: Union[ActivityState, str] = ActivityState.IDLE,
        battery_level: float = 100.0,
    ) -> TrackingConfig:
        return tracking_config(activity_state, battery_level)


__all__ = [
    "ConditionedFix",
    "GpsProcessor",
    "REJECTED_AS_OUTLIER",
    "REJECTED_BY_GATE",
]
