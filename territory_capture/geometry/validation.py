"""Validation helpers for captured rings: crossings, area bounds, loops, overlap."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..config import RING_CLOSURE_TOLERANCE_M
from ..models import GeoPoint
from .measures import distance, path_length, polygon_area

REASON_TOO_FEW_POINTS = "too few points"
REASON_SELF_INTERSECTING = "self-intersecting"
REASON_TOO_SMALL = "too small"
REASON_TOO_LARGE = "too large"
REASON_VALID = "valid"


@dataclass(frozen=True, slots=True)
class AreaValidation:
    """Outcome of validating a closed ring against the capture rules."""

    valid: bool
    area: float
    reason: str


def _ccw(a: GeoPoint, b: GeoPoint, c: GeoPoint) -> bool:
    return (c.longitude - a.longitude) * (b.latitude - a.latitude) > (
        b.longitude - a.longitude
    ) * (c.latitude - a.latitude)


def segments_intersect(
    p1: GeoPoint, p2: GeoPoint, p3: GeoPoint, p4: GeoPoint
) -> bool:
    """Return True when segment p1-p2 properly crosses segment p3-p4."""

    return _ccw(p1, p3, p4) != _ccw(p2, p3, p4) and _ccw(p1, p2, p3) != _ccw(
        p1, p2, p4
    )


def has_self_intersection(ring: Sequence[GeoPoint]) -> bool:
    """Return True if any two non-adjacent edges of the ring cross.

    On a closed ring the first and last edges share the closing vertex and
    count as adjacent.
    """

    if len(ring) < 4:
        return False
    edge_count = len(ring) - 1
    closed = distance(ring[0], ring[-1]) < RING_CLOSURE_TOLERANCE_M
    for i in range(edge_count):
        for j in range(i + 2, edge_count):
            if closed and i == 0 and j == edge_count - 1:
                continue
            if segments_intersect(ring[i], ring[i + 1], ring[j], ring[j + 1]):
                return True
    return False


def validate_area(
    ring: Sequence[GeoPoint], min_area: float, max_area: float
) -> AreaValidation:
    """Check a closed ring for point count, crossings and area bounds."""

    if len(ring) < 3:
        return AreaValidation(False, 0.0, REASON_TOO_FEW_POINTS)
    if has_self_intersection(ring):
        return AreaValidation(False, 0.0, REASON_SELF_INTERSECTING)
    area = polygon_area(ring)
    if area < min_area:
        return AreaValidation(False, area, REASON_TOO_SMALL)
    if area > max_area:
        return AreaValidation(False, area, REASON_TOO_LARGE)
    return AreaValidation(True, area, REASON_VALID)


def detect_loop_closure(
    path: Sequence[GeoPoint], min_path_length: float, closure_threshold: float
) -> bool:
    """Return True once a long enough path ends back near its start."""

    if len(path) < 4:
        return False
    if path_length(path) < min_path_length:
        return False
    return distance(path[-1], path[0]) < closure_threshold


def point_in_polygon(point: GeoPoint, ring: Sequence[GeoPoint]) -> bool:
    """Even-odd ray casting test on the longitude/latitude axes."""

    inside = False
    x = point.longitude
    y = point.latitude
    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i].longitude, ring[i].latitude
        xj, yj = ring[j].longitude, ring[j].latitude
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def polygons_overlap(ring_a: Sequence[GeoPoint], ring_b: Sequence[GeoPoint]) -> bool:
    """Cheap conservative overlap test: any vertex of one ring inside the other."""

    if any(point_in_polygon(point, ring_b) for point in ring_a):
        return True
    return any(point_in_polygon(point, ring_a) for point in ring_b)


__all__ = [
    "AreaValidation",
    "REASON_SELF_INTERSECTING",
    "REASON_TOO_FEW_POINTS",
    "REASON_TOO_LARGE",
    "REASON_TOO_SMALL",
    "REASON_VALID",
    "detect_loop_closure",
    "has_self_intersection",
    "point_in_polygon",
    "polygons_overlap",
    "segments_intersect",
    "validate_area",
]
