"""
Great-circle distance helpers for proximity checks.

All coordinates are (longitude, latitude) tuples in degrees, matching
GeoJSON ordering. Distances are in miles.
"""

from math import radians, sin, cos, sqrt, atan2
from typing import Sequence

from .entities import Coordinate

EARTH_RADIUS_MILES = 3958.8


def haversine_miles(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two (lon, lat) points in miles."""
    lon1, lat1 = a
    lon2, lat2 = b
    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)
    h = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_MILES * 2 * atan2(sqrt(h), sqrt(1 - h))


def closest_point_on_segment(
    point: Coordinate, start: Coordinate, end: Coordinate,
) -> Coordinate:
    """
    Project ``point`` onto the segment in degree space.

    The projection parameter is clamped to [0, 1], so the result is the
    nearest point on the segment itself, not on its infinite extension.
    A zero-length segment returns ``start``.
    """
    x, y = point
    x1, y1 = start
    x2, y2 = end
    dx = x2 - x1
    dy = y2 - y1
    len_sq = dx * dx + dy * dy
    if len_sq == 0:
        return start

    t = ((x - x1) * dx + (y - y1) * dy) / len_sq
    if t <= 0:
        return start
    if t >= 1:
        return end
    return x1 + t * dx, y1 + t * dy


def distance_to_segment_miles(
    point: Coordinate, start: Coordinate, end: Coordinate,
) -> float:
    """Haversine distance from ``point`` to its closest point on the segment."""
    return haversine_miles(point, closest_point_on_segment(point, start, end))


def is_near(
    point: Coordinate,
    segment_endpoints: tuple[Coordinate, Coordinate],
    radius: float,
) -> bool:
    """Exact refinement step: is ``point`` within ``radius`` miles of the segment?"""
    start, end = segment_endpoints
    return distance_to_segment_miles(point, start, end) <= radius


def is_point_near_line(
    point: Coordinate, line: Sequence[Coordinate], radius: float,
) -> bool:
    """True as soon as any segment of ``line`` is within ``radius`` miles."""
    for i in range(len(line) - 1):
        if is_near(point, (line[i], line[i + 1]), radius):
            return True
    return False
