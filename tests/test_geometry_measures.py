"""Tests for distance, projection and area measures."""

from __future__ import annotations

import pytest
from shapely.geometry import Polygon

from territory_capture.geometry import (
    centroid,
    distance,
    local_projection,
    path_length,
    polygon_area,
    project_points,
)
from territory_capture.models import GeoPoint

from conftest import SQUARE_42M, offset_point, ring


def test_distance_is_zero_for_identical_points() -> None:
    point = GeoPoint(21.1458, 79.0882)
    assert distance(point, point) == 0.0


def test_distance_is_symmetric() -> None:
    a = GeoPoint(51.4800, -3.1800)
    b = GeoPoint(51.4810, -3.1790)
    assert distance(a, b) == pytest.approx(distance(b, a))


def test_one_degree_of_latitude_matches_haversine_radius() -> None:
    d = distance(GeoPoint(0.0, 0.0), GeoPoint(1.0, 0.0))
    assert d == pytest.approx(111_195.0, rel=1e-3)


def test_distance_respects_triangle_inequality() -> None:
    a = offset_point(0, 0)
    b = offset_point(30, 40)
    c = offset_point(80, 10)
    assert distance(a, c) <= distance(a, b) + distance(b, c) + 1e-6


def test_path_length_sums_segments() -> None:
    path = [offset_point(0, 0), offset_point(30, 0), offset_point(30, 40)]
    expected = distance(path[0], path[1]) + distance(path[1], path[2])
    assert path_length(path) == pytest.approx(expected, rel=1e-9)
    assert path_length(path[:1]) == 0.0
    assert path_length([]) == 0.0


def test_local_projection_scales_by_latitude() -> None:
    assert local_projection(0.0, 0.0) == (0.0, 0.0)
    x, y = local_projection(0.0, 1.0)
    assert x == pytest.approx(111_320.0)
    assert y == 0.0
    x60, _ = local_projection(60.0, 1.0)
    assert x60 == pytest.approx(111_320.0 * 0.5, rel=1e-9)


def test_project_points_returns_metric_array() -> None:
    metric = project_points(ring(SQUARE_42M))
    assert metric.shape == (len(SQUARE_42M), 2)
    assert project_points([]).shape == (0, 2)


def test_hundred_metre_square_near_equator() -> None:
    origin = (0.0005, 0.0005)
    square = [
        offset_point(0, 0, origin),
        offset_point(100, 0, origin),
        offset_point(100, 100, origin),
        offset_point(0, 100, origin),
        offset_point(0, 0, origin),
    ]
    assert polygon_area(square) == pytest.approx(10_000.0, rel=0.03)


def test_area_is_orientation_independent() -> None:
    square = ring([(0, 0), (50, 0), (50, 50), (0, 50)])
    assert polygon_area(square) == pytest.approx(polygon_area(list(reversed(square))))


def test_shoelace_matches_shapely_on_projected_ring() -> None:
    points = ring(SQUARE_42M)
    oracle = Polygon([tuple(row) for row in project_points(points)]).area
    assert polygon_area(points) == pytest.approx(oracle, rel=1e-6)


def test_degenerate_rings_have_no_area() -> None:
    assert polygon_area([]) == 0.0
    assert polygon_area(ring([(0, 0), (10, 0)])) == 0.0


def test_centroid_is_vertex_mean() -> None:
    square = [GeoPoint(0.0, 0.0), GeoPoint(0.0, 2.0), GeoPoint(2.0, 2.0), GeoPoint(2.0, 0.0)]
    center = centroid(square)
    assert center is not None
    assert center.as_tuple() == pytest.approx((1.0, 1.0))
    assert centroid([]) is None
