"""Render captured territories and rejected trails on an interactive map."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import folium  # Using folium to build an interactive Leaflet map.

from ..config import MAP_ZOOM_START
from ..geometry import centroid
from ..models import GeoPoint, Territory

LatLon = Tuple[float, float]
PathLike = Union[str, Path]

_TERRITORY_COLOR = "#1a9641"
_OVERLAP_COLOR = "#fdae61"
_FAILED_COLOR = "#d73027"
_ACTIVE_COLOR = "#2c7bb6"


def _latlon(points: Sequence[GeoPoint]) -> List[LatLon]:
    return [point.as_tuple() for point in points]


def _map_center(
    territories: Sequence[Territory],
    failed_paths: Sequence[Sequence[GeoPoint]],
    active_path: Optional[Sequence[GeoPoint]],
) -> LatLon:
    if territories:
        return territories[0].center.as_tuple()
    for path in list(failed_paths) + [active_path or ()]:
        center = centroid(path)
        if center is not None:
            return center.as_tuple()
    raise ValueError("Nothing to draw: no territories or paths supplied")


def create_territory_map(
    territories: Sequence[Territory],
    *,
    failed_paths: Sequence[Sequence[GeoPoint]] = (),
    active_path: Optional[Sequence[GeoPoint]] = None,
    output_html_path: Optional[PathLike] = None,
) -> folium.Map:
    """Create a map with captured polygons, rejected trails and the live trail.

    Args:
        territories: Captured territories drawn as filled polygons. Territories
            overlapping an earlier capture use a warning colour.
        failed_paths: Unsimplified trails of rejected captures.
        active_path: Trail of a capture still in progress.
        output_html_path: Optional path to persist the map as an HTML file.

    Returns:
        A :class:`folium.Map` instance containing the overlays.

    Raises:
        ValueError: If there is nothing to draw.
    """

    center = _map_center(territories, failed_paths, active_path)
    folium_map = folium.Map(location=center, zoom_start=MAP_ZOOM_START, control_scale=True)

    for territory in territories:
        color = _OVERLAP_COLOR if territory.overlaps else _TERRITORY_COLOR
        folium.Polygon(
            _latlon(territory.polygon),
            color=color,
            weight=3,
            fill=True,
            fill_color=color,
            fill_opacity=0.35,
            tooltip=f"{territory.id}: {territory.area_sq_m:.0f} m²",
        ).add_to(folium_map)

    for path in failed_paths:
        if len(path) < 2:
            continue
        folium.PolyLine(
            _latlon(path),
            color=_FAILED_COLOR,
            weight=4,
            opacity=0.8,
            dash_array="6 6",
            tooltip="Rejected capture",
        ).add_to(folium_map)

    if active_path:
        if len(active_path) >= 2:
            folium.PolyLine(
                _latlon(active_path),
                color=_ACTIVE_COLOR,
                weight=4,
                opacity=0.8,
                tooltip="Active trail",
            ).add_to(folium_map)
        folium.CircleMarker(
            location=active_path[0].as_tuple(),
            radius=6,
            color=_ACTIVE_COLOR,
            fill=True,
            fill_color=_ACTIVE_COLOR,
            tooltip="Trail start",
        ).add_to(folium_map)

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        folium_map.save(str(output_path))

    return folium_map


__all__ = ["create_territory_map"]
