"""Path simplification and ring closing."""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from ..config import RING_CLOSURE_TOLERANCE_M
from ..models import GeoPoint
from .measures import MetricArray, distance, project_points


def perpendicular_distances(
    points: MetricArray, start: MetricArray, end: MetricArray
) -> MetricArray:
    """Return distances from metric points to the line through ``start``/``end``.

    A zero-length chord degrades to the plain distance from ``start``.
    """

    chord = end - start
    magnitude = float(np.hypot(chord[0], chord[1]))
    offsets = points - start
    if magnitude == 0.0:
        return np.linalg.norm(offsets, axis=1)
    cross = chord[0] * offsets[:, 1] - chord[1] * offsets[:, 0]
    return np.abs(cross) / magnitude


def _douglas_peucker(
    metric: MetricArray, first: int, last: int, tolerance_m: float
) -> List[int]:
    if last - first < 2:
        return [first, last]
    distances = perpendicular_distances(
        metric[first + 1 : last], metric[first], metric[last]
    )
    # argmax returns the first index on ties, scanning left to right.
    offset = int(np.argmax(distances))
    if float(distances[offset]) > tolerance_m:
        split = first + 1 + offset
        left = _douglas_peucker(metric, first, split, tolerance_m)
        right = _douglas_peucker(metric, split, last, tolerance_m)
        return left[:-1] + right
    return [first, last]


def simplify(path: Sequence[GeoPoint], tolerance_m: float) -> List[GeoPoint]:
    """Simplify a path with Douglas-Peucker on locally projected coordinates."""

    points = list(path)
    if len(points) <= 2:
        return points
    metric = project_points(points)
    keep = _douglas_peucker(metric, 0, len(points) - 1, tolerance_m)
    return [points[index] for index in keep]


def close_ring(path: Sequence[GeoPoint]) -> List[GeoPoint]:
    """Return the path with its first point appended unless it is already closed."""

    points = list(path)
    if len(points) < 3:
        return points
    if distance(points[0], points[-1]) < RING_CLOSURE_TOLERANCE_M:
        return points
    return points + [points[0]]


__all__ = ["close_ring", "perpendicular_distances", "simplify"]
