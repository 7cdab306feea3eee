"""Central error types used across the package."""

from __future__ import annotations


class TerritoryCaptureError(RuntimeError):
    """Base error for territory capture failures."""


class ConfigurationError(TerritoryCaptureError):
    """Raised when a capture configuration holds inconsistent values."""


class InvalidCoordinateError(ValueError):
    """Raised when a coordinate falls outside the valid latitude/longitude range."""


__all__ = [
    "TerritoryCaptureError",
    "ConfigurationError",
    "InvalidCoordinateError",
]
