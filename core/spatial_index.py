"""
Bounding-box index over line segments for proximity queries.

Two phases: an STRtree search with a square window of
``radius / MILES_PER_DEGREE`` degrees returns candidate segments whose
bounding boxes intersect the window (over-inclusive, treats degrees as
locally flat), then ``is_near`` measures the true point-to-segment
distance for each candidate, stopping at the first hit.
"""

import logging
import math
from typing import Iterable, Optional, Sequence

from shapely.geometry import LineString, box
from shapely.strtree import STRtree

from .entities import Coordinate, Facility, LineGeometry, Segment
from .geo_utils import is_near, is_point_near_line

logger = logging.getLogger(__name__)

MILES_PER_DEGREE = 69.0


def _is_finite_pair(c: Coordinate) -> bool:
    return math.isfinite(c[0]) and math.isfinite(c[1])


def segments_from_lines(lines: Iterable[LineGeometry]) -> list[Segment]:
    """Split every line into consecutive-pair segments."""
    segments: list[Segment] = []
    for line in lines:
        coords = line.coordinates
        for i in range(len(coords) - 1):
            start, end = coords[i], coords[i + 1]
            if not (_is_finite_pair(start) and _is_finite_pair(end)):
                continue
            segments.append(Segment.from_endpoints(start, end, line_id=line.id))
    return segments


class LineIndex:
    """Immutable STRtree over the segments of a set of lines."""

    def __init__(self, segments: Sequence[Segment]):
        self.segments: list[Segment] = list(segments)
        self._tree: Optional[STRtree] = None
        if self.segments:
            # A segment's envelope is exactly its bounding box
            self._tree = STRtree([LineString([s.start, s.end]) for s in self.segments])

    @classmethod
    def build(cls, lines: Iterable[LineGeometry]) -> "LineIndex":
        lines = list(lines)
        index = cls(segments_from_lines(lines))
        logger.info(f"Indexed {len(index)} segments from {len(lines)} lines")
        return index

    def __len__(self) -> int:
        return len(self.segments)

    def query(self, point: Coordinate, radius: float) -> list[Segment]:
        """Coarse filter: segments whose bbox intersects the search window."""
        if self._tree is None:
            return []
        lon, lat = point
        half_width = radius / MILES_PER_DEGREE
        window = box(lon - half_width, lat - half_width, lon + half_width, lat + half_width)
        hits = self._tree.query(window)
        return [self.segments[int(i)] for i in sorted(hits)]

    def is_point_near(self, point: Coordinate, radius: float) -> bool:
        """Coarse filter then exact refinement, with early exit."""
        for segment in self.query(point, radius):
            if is_near(point, segment.endpoints, radius):
                return True
        return False


def build_line_index(lines: Iterable[LineGeometry]) -> LineIndex:
    return LineIndex.build(lines)


def query_line_index(index: LineIndex, point: Coordinate, radius: float) -> list[Segment]:
    return index.query(point, radius)


def is_point_near_any_line(
    point: Coordinate,
    lines: Iterable[LineGeometry],
    radius: float,
    index: Optional[LineIndex] = None,
) -> bool:
    """
    Top-level proximity predicate.

    Uses ``index`` when supplied; otherwise checks each line in turn.
    Returns True on the first segment within ``radius`` miles. Lines with
    fewer than 2 points never match.
    """
    if index is not None:
        return index.is_point_near(point, radius)
    for line in lines:
        if is_point_near_line(point, line.coordinates, radius):
            return True
    return False


def filter_facilities_near_lines(
    facilities: Iterable[Facility],
    lines: Iterable[LineGeometry],
    radius: float,
    index: Optional[LineIndex] = None,
) -> list[Facility]:
    """Facilities within ``radius`` miles of any line, in input order."""
    if index is None:
        index = LineIndex.build(lines)
    facilities = list(facilities)
    near = [f for f in facilities if index.is_point_near(f.coordinates, radius)]
    logger.info(
        f"{len(near)}/{len(facilities)} facilities within {radius:g} mi of {len(index)} segments"
    )
    return near
