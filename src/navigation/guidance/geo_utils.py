# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects, no imports from other project modules except models.

import math
from typing import Sequence, Tuple

from shapely.geometry import LineString, Point

from .models import Coord


EARTH_RADIUS_M = 6_371_000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def coord_distance(a: Coord, b: Coord) -> float:
    """haversine_distance() for two Coord objects."""
    return haversine_distance(a.lat, a.lon, b.lat, b.lon)


def project_local(origin: Coord, coord: Coord) -> Tuple[float, float]:
    """
    Equirectangular projection of coord into metres around origin.

    Accurate to well under a metre over the few hundred metres a single
    route step spans.

    Returns:
        (x, y) in metres, x pointing east and y pointing north.
    """
    x = math.radians(coord.lon - origin.lon) * math.cos(math.radians(origin.lat)) * EARTH_RADIUS_M
    y = math.radians(coord.lat - origin.lat) * EARTH_RADIUS_M
    return x, y


def distance_to_path(position: Coord, path: Sequence[Coord]) -> float:
    """
    Shortest distance in metres from position to a polyline.

    Args:
        position: Point to measure from.
        path:     Polyline vertices; a single vertex degrades to point distance.

    Returns:
        Distance in metres, or 0.0 for an empty path.
    """
    if not path:
        return 0.0
    if len(path) == 1:
        return coord_distance(position, path[0])

    line = LineString([project_local(position, c) for c in path])
    return line.distance(Point(0.0, 0.0))


def remaining_along_path(position: Coord, path: Sequence[Coord]) -> float:
    """
    Distance in metres still to travel along a polyline.

    position is projected onto the closest point of the path, so a fix that
    has overshot the end of the path reports 0.0.
    """
    if not path:
        return 0.0
    if len(path) == 1:
        return coord_distance(position, path[0])

    line = LineString([project_local(position, c) for c in path])
    return line.length - line.project(Point(0.0, 0.0))
