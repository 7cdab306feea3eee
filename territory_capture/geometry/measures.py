"""Distance, projection and area measures over WGS84 points."""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from ..config import EARTH_RADIUS_M, METERS_PER_DEGREE_LAT, METERS_PER_DEGREE_LON
from ..models import GeoPoint

MetricArray = NDArray[np.float64]


def distance(a: GeoPoint, b: GeoPoint) -> float:
    """Return the Haversine great-circle distance between two points in metres."""

    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    delta_lat = math.radians(b.latitude - a.latitude)
    delta_lng = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(delta_lng / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def path_length(path: Sequence[GeoPoint]) -> float:
    """Return the summed Haversine length of consecutive path segments."""

    if len(path) < 2:
        return 0.0
    lats = np.radians([p.latitude for p in path])
    lngs = np.radians([p.longitude for p in path])
    delta_lat = np.diff(lats)
    delta_lng = np.diff(lngs)
    h = (
        np.sin(delta_lat / 2) ** 2
        + np.cos(lats[:-1]) * np.cos(lats[1:]) * np.sin(delta_lng / 2) ** 2
    )
    arcs = 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))
    return float(EARTH_RADIUS_M * np.sum(arcs))


def local_projection(latitude: float, longitude: float) -> Tuple[float, float]:
    """Project a coordinate onto a local equirectangular plane (metres).

    This is an approximation that only holds for extents of a few kilometres.
    """

    x = longitude * METERS_PER_DEGREE_LON * math.cos(math.radians(latitude))
    y = latitude * METERS_PER_DEGREE_LAT
    return x, y


def project_points(points: Sequence[GeoPoint]) -> MetricArray:
    """Project a sequence of points into an ``(n, 2)`` array of metres."""

    if not points:
        return np.empty((0, 2), dtype=float)
    lats = np.asarray([p.latitude for p in points], dtype=float)
    lngs = np.asarray([p.longitude for p in points], dtype=float)
    xs = lngs * METERS_PER_DEGREE_LON * np.cos(np.radians(lats))
    ys = lats * METERS_PER_DEGREE_LAT
    return np.column_stack((xs, ys))


def polygon_area(ring: Sequence[GeoPoint]) -> float:
    """Return the unsigned Shoelace area of a ring in square metres."""

    if len(ring) < 3:
        return 0.0
    metric = project_points(ring)
    # Shift to the first vertex to keep the cross products small.
    metric = metric - metric[0]
    xs = metric[:, 0]
    ys = metric[:, 1]
    signed = np.sum(xs * np.roll(ys, -1) - np.roll(xs, -1) * ys) / 2.0
    return float(abs(signed))


def centroid(ring: Sequence[GeoPoint]) -> Optional[GeoPoint]:
    """Return the vertex mean of a ring, or ``None`` for an empty ring."""

    if not ring:
        return None
    latitude = sum(p.latitude for p in ring) / len(ring)
    longitude = sum(p.longitude for p in ring) / len(ring)
    return GeoPoint(latitude, longitude)


__all__ = [
    "MetricArray",
    "centroid",
    "distance",
    "local_projection",
    "path_length",
    "polygon_area",
    "project_points",
]
