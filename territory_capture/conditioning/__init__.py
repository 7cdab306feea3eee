"""Per-trail GPS signal conditioning.

Filters here hold mutable state for a single trail and are reset whenever a
capture starts or ends.
"""

from .kalman import GpsKalmanFilter
from .outliers import OutlierDetector
from .processor import ConditionedFix, GpsProcessor
from .smoothing import AdaptivePathSmoother, adaptive_window_size, weighted_window_smooth
from .tracking import (
    AccuracyTier,
    ActivityState,
    TrackingConfig,
    UpdateGate,
    tracking_config,
)

__all__ = [
    "AccuracyTier",
    "ActivityState",
    "AdaptivePathSmoother",
    "ConditionedFix",
    "GpsKalmanFilter",
    "GpsProcessor",
    "OutlierDetector",
    "TrackingConfig",
    "UpdateGate",
    "adaptive_window_size",
    "tracking_config",
    "weighted_window_smooth",
]
