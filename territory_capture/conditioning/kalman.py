"""Kalman smoothing of raw GPS coordinates."""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..config import (
    DEFAULT_FIX_ACCURACY_M,
    KALMAN_MEASUREMENT_NOISE,
    KALMAN_PROCESS_NOISE,
)
from ..models import GeoPoint


class GpsKalmanFilter:
    """Independent 1-D Kalman filters for latitude and longitude.

    Both axes share the same process noise (Q) and measurement noise (R); the
    state is kept as two-element vectors ``[latitude, longitude]``.
    """

    def __init__(
        self,
        process_noise: float = KALMAN_PROCESS_NOISE,
        measurement_noise: float = KALMAN_MEASUREMENT_NOISE,
    ) -> None:
        self.process_noise = process_noise
        self.measurement_noise = measurement_noise
        self._estimate: Optional[np.ndarray] = None
        self._error = np.ones(2, dtype=float)

    @property
    def initialized(self) -> bool:
        return self._estimate is not None

    def reset(self) -> None:
        self._estimate = None
        self._error = np.ones(2, dtype=float)

    def filter(
        self, latitude: float, longitude: float, accuracy: Optional[float] = None
    ) -> GeoPoint:
        """Fold one reading into the estimate and return the filtered point."""

        reading = np.array([latitude, longitude], dtype=float)
        if self._estimate is None:
            seed = DEFAULT_FIX_ACCURACY_M if accuracy is None else accuracy
            self._estimate = reading
            self._error = np.full(2, float(seed))
            return GeoPoint(latitude, longitude)

        predicted_error = self._error + self.process_noise
        gain = predicted_error / (predicted_error + self.measurement_noise)
        self._estimate = self._estimate + gain * (reading - self._estimate)
        self._error = (1.0 - gain) * predicted_error
        return GeoPoint(float(self._estimate[0]), float(self._estimate[1]))


__all__ = ["GpsKalmanFilter"]
