"""Dataclasses describing GPS inputs, capture progress and captured territories."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
import time
from typing import Any, Dict, List, Mapping, Optional, Tuple

from polyline import encode as polyline_encode

from .errors import InvalidCoordinateError

LatLon = Tuple[float, float]


def _check_coordinates(latitude: float, longitude: float) -> None:
    if math.isnan(latitude) or math.isnan(longitude):
        raise InvalidCoordinateError("Coordinates must not be NaN")
    if not -90.0 <= latitude <= 90.0:
        raise InvalidCoordinateError(f"Latitude {latitude} outside [-90, 90]")
    if not -180.0 <= longitude <= 180.0:
        raise InvalidCoordinateError(f"Longitude {longitude} outside [-180, 180]")


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """Immutable WGS84 coordinate pair."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        _check_coordinates(self.latitude, self.longitude)

    def as_tuple(self) -> LatLon:
        return (self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class GpsFix(GeoPoint):
    """Single reading emitted by the device position source.

    ``accuracy`` is the reported horizontal accuracy radius in metres (``None``
    when the provider omits it), ``timestamp`` is epoch milliseconds and
    ``speed`` the optional provider speed in m/s.
    """

    accuracy: Optional[float]
    timestamp: int
    speed: Optional[float] = None

    def __post_init__(self) -> None:
        _check_coordinates(self.latitude, self.longitude)
        if self.accuracy is not None and self.accuracy < 0:
            raise InvalidCoordinateError("Accuracy must be non-negative")

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> Optional["GpsFix"]:
        """Build a fix from a provider payload, or ``None`` if it is unusable.

        Missing, non-numeric or out-of-range coordinates yield ``None``; a
        missing timestamp falls back to the current wall clock.
        """

        latitude = _optional_float(payload.get("latitude"))
        longitude = _optional_float(payload.get("longitude"))
        if latitude is None or longitude is None:
            return None
        accuracy = _optional_float(payload.get("accuracy"))
        speed = _optional_float(payload.get("speed"))
        raw_timestamp = _optional_float(payload.get("timestamp"))
        timestamp = (
            int(raw_timestamp) if raw_timestamp is not None else int(time.time() * 1000)
        )
        try:
            return cls(
                latitude=latitude,
                longitude=longitude,
                accuracy=accuracy,
                timestamp=timestamp,
                speed=speed,
            )
        except InvalidCoordinateError:
            return None


class CaptureStatus(str, Enum):
    """States of the capture state machine."""

    IDLE = "idle"
    CAPTURING = "capturing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(slots=True)
class CaptureStats:
    """Aggregate statistics accumulated across captures."""

    total_distance_m: float = 0.0
    total_area_sq_m: float = 0.0
    capture_count: int = 0

    def snapshot(self) -> "CaptureStats":
        return CaptureStats(
            total_distance_m=self.total_distance_m,
            total_area_sq_m=self.total_area_sq_m,
            capture_count=self.capture_count,
        )


@dataclass(frozen=True, slots=True)
class Territory:
    """A finalized, validated closed polygon produced by a capture."""

    id: str
    user_id: str
    polygon: Tuple[GeoPoint, ...]
    center: GeoPoint
    area_sq_m: float
    captured_at_ms: int
    duration_ms: int
    distance_m: float
    raw_point_count: int
    simplified_point_count: int
    overlaps: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-friendly mapping for the presentation layer."""

        coords = [point.as_tuple() for point in self.polygon]
        return {
            "id": self.id,
            "user_id": self.user_id,
            "polygon": [list(pair) for pair in coords],
            "encoded_polygon": polyline_encode(coords, 6),
            "center": list(self.center.as_tuple()),
            "area_sq_m": self.area_sq_m,
            "captured_at_ms": self.captured_at_ms,
            "duration_ms": self.duration_ms,
            "distance_m": self.distance_m,
            "raw_point_count": self.raw_point_count,
            "simplified_point_count": self.simplified_point_count,
            "overlaps": list(self.overlaps),
        }


@dataclass(frozen=True, slots=True)
class AddPointResult:
    """Outcome of offering one fix to an active capture."""

    added: bool
    loop_detected: bool
    reason: str


@dataclass(frozen=True, slots=True)
class CaptureResult:
    """Outcome of finalizing a capture."""

    success: bool
    reason: str
    area_sq_m: Optional[float] = None
    territory: Optional[Territory] = None


@dataclass(frozen=True, slots=True)
class CaptureState:
    """Read-only projection of the orchestrator for the presentation layer."""

    is_capturing: bool
    status: CaptureStatus
    path_length: int
    distance_m: float
    duration_ms: int
    captured_count: int
    last_outcome: Optional[CaptureStatus] = None


@dataclass(slots=True)
class ReplaySummary:
    """Aggregate outcome of replaying a recorded fix log."""

    fixes_read: int = 0
    fixes_added: int = 0
    rejections: Dict[str, int] = field(default_factory=dict)
    territories: List[Territory] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)
