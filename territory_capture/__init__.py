"""Territory capture package.

Turns a stream of GPS fixes into validated, closed territory polygons.
"""

from .errors import ConfigurationError, InvalidCoordinateError, TerritoryCaptureError
from .models import (
    AddPointResult,
    CaptureResult,
    CaptureState,
    CaptureStats,
    CaptureStatus,
    GeoPoint,
    GpsFix,
    Territory,
)
from .services import CaptureConfiguration, CaptureObserver, CaptureService, EventQueue

__all__ = [
    "AddPointResult",
    "CaptureConfiguration",
    "CaptureObserver",
    "CaptureResult",
    "CaptureService",
    "CaptureState",
    "CaptureStats",
    "CaptureStatus",
    "ConfigurationError",
    "EventQueue",
    "GeoPoint",
    "GpsFix",
    "InvalidCoordinateError",
    "Territory",
    "TerritoryCaptureError",
]
