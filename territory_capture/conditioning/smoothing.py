"""Accuracy- and recency-weighted smoothing of GPS positions."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Sequence

import numpy as np

from ..config import (
    DEFAULT_FIX_ACCURACY_M,
    SMOOTHER_BUFFER_SIZE,
    SMOOTHER_FAST_WINDOW,
    SMOOTHER_SPEED_BANDS,
)
from ..models import GeoPoint
from .kalman import GpsKalmanFilter


def adaptive_window_size(speed_mps: Optional[float]) -> int:
    """Return the averaging window for a movement speed.

    Slow or stationary users get heavier smoothing; fast movement keeps the
    trail responsive. An unknown speed is treated as stationary.
    """

    speed = speed_mps or 0.0
    for upper_bound, window in SMOOTHER_SPEED_BANDS:
        if speed < upper_bound:
            return window
    return SMOOTHER_FAST_WINDOW


def _weighted_mean(
    latitudes: Sequence[float],
    longitudes: Sequence[float],
    accuracies: Sequence[Optional[float]],
) -> GeoPoint:
    """Weighted mean where the k-th point weighs ``(k + 1) / max(accuracy, 1)``."""

    acc = np.asarray(
        [DEFAULT_FIX_ACCURACY_M if a is None else a for a in accuracies], dtype=float
    )
    weights = np.arange(1, len(acc) + 1, dtype=float) / np.maximum(acc, 1.0)
    total = float(np.sum(weights))
    latitude = float(np.dot(weights, np.asarray(latitudes, dtype=float)) / total)
    longitude = float(np.dot(weights, np.asarray(longitudes, dtype=float)) / total)
    return GeoPoint(latitude, longitude)


def weighted_window_smooth(
    points: Sequence[GeoPoint],
    accuracies: Sequence[Optional[float]],
    windows: Sequence[int],
) -> List[GeoPoint]:
    """Smooth a whole trail with trailing weighted windows.

    Point ``i`` becomes the weighted mean of the ``windows[i]`` points ending
    at ``i`` (fewer at the start of the trail).
    """

    if not (len(points) == len(accuracies) == len(windows)):
        raise ValueError("points, accuracies and windows must be the same length")
    latitudes = [p.latitude for p in points]
    longitudes = [p.longitude for p in points]
    smoothed: List[GeoPoint] = []
    for index, window in enumerate(windows):
        start = max(0, index - max(int(window), 1) + 1)
        stop = index + 1
        smoothed.append(
            _weighted_mean(
                latitudes[start:stop], longitudes[start:stop], accuracies[start:stop]
            )
        )
    return smoothed


@dataclass(slots=True)
class _Sample:
    latitude: float
    longitude: float
    accuracy: float
    speed: float


class AdaptivePathSmoother:
    """Kalman-filtered ring buffer averaged over a speed-dependent window."""

    def __init__(
        self,
        max_points: int = SMOOTHER_BUFFER_SIZE,
        kalman_filter: Optional[GpsKalmanFilter] = None,
    ) -> None:
        self.kalman_filter = kalman_filter or GpsKalmanFilter()
        self._samples: Deque[_Sample] = deque(maxlen=max(1, max_points))

    def __len__(self) -> int:
        return len(self._samples)

    def add_point(
        self,
        point: GeoPoint,
        accuracy: Optional[float] = None,
        speed: Optional[float] = None,
    ) -> GeoPoint:
        """Filter one position and return the smoothed estimate."""

        accuracy_m = DEFAULT_FIX_ACCURACY_M if accuracy is None else accuracy
        filtered = self.kalman_filter.filter(
            point.latitude, point.longitude, accuracy_m
        )
        self._samples.append(
            _Sample(
                latitude=filtered.latitude,
                longitude=filtered.longitude,
                accuracy=accuracy_m,
                speed=speed or 0.0,
            )
        )
        window = adaptive_window_size(speed)
        recent = list(self._samples)[-window:]
        return _weighted_mean(
            [s.latitude for s in recent],
            [s.longitude for s in recent],
            [s.accuracy for s in recent],
        )

    def reset(self) -> None:
        self._samples.clear()
        self.kalman_filter.reset()


__all__ = ["AdaptivePathSmoother", "adaptive_window_size", "weighted_window_smooth"]
