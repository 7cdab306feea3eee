"""Pure geometry kernel used by the capture pipeline.

Every function here is stateless and deterministic; coordinates are WGS84
points and metric work happens on a local equirectangular projection.
"""

from .measures import (
    centroid,
    distance,
    local_projection,
    path_length,
    polygon_area,
    project_points,
)
from .simplification import close_ring, simplify
from .validation import (
    AreaValidation,
    detect_loop_closure,
    has_self_intersection,
    point_in_polygon,
    polygons_overlap,
    segments_intersect,
    validate_area,
)

__all__ = [
    "AreaValidation",
    "centroid",
    "close_ring",
    "detect_loop_closure",
    "distance",
    "has_self_intersection",
    "local_projection",
    "path_length",
    "point_in_polygon",
    "polygon_area",
    "polygons_overlap",
    "project_points",
    "segments_intersect",
    "simplify",
    "validate_area",
]
