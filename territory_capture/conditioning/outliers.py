"""Rejection of physically implausible GPS spikes."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import OUTLIER_MAX_SPEED_MPS
from ..geometry import distance
from ..models import GeoPoint

LOGGER = logging.getLogger(__name__)


class OutlierDetector:
    """Flag fixes whose implied speed from the last accepted fix is too high."""

    def __init__(self, max_speed_mps: float = OUTLIER_MAX_SPEED_MPS) -> None:
        self.max_speed_mps = max_speed_mps
        self._last_point: Optional[GeoPoint] = None
        self._last_time_ms: Optional[int] = None

    def is_outlier(self, point: GeoPoint, timestamp_ms: int) -> bool:
        """Return True for an outlier; accepted fixes become the new reference."""

        if self._last_point is None or self._last_time_ms is None:
            self._accept(point, timestamp_ms)
            return False

        elapsed_s = (timestamp_ms - self._last_time_ms) / 1000.0
        if elapsed_s == 0:
            return False

        speed = distance(self._last_point, point) / elapsed_s
        if speed > self.max_speed_mps:
            LOGGER.info("Outlier detected: %.2f m/s", speed)
            return True

        self._accept(point, timestamp_ms)
        return False

    def _accept(self, point: GeoPoint, timestamp_ms: int) -> None:
        self._last_point = GeoPoint(point.latitude, point.longitude)
        self._last_time_ms = timestamp_ms

    def reset(self) -> None:
        self._last_point = None
        self._last_time_ms = None


__all__ = ["OutlierDetector"]
