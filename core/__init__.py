"""
Infrastructure proximity core.

Modules:
  entities - Facility, LineGeometry and Segment types
  streaming_parser - Incremental JSON array parser
  aggregation - Merge generator/duplicate records into facilities
  spatial_index - STRtree segment index and proximity predicates
  geo_utils - Haversine and point-to-segment distance
  ingestion - Multi-source plant loading pipeline
  capacity_factor - EIA plant capacity factor report
  reporting - DataFrame views for CLI output and CSV export
"""

from .entities import Facility, LineGeometry, Segment
from .aggregation import aggregate_facilities
from .spatial_index import LineIndex, build_line_index, is_point_near_any_line
