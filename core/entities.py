"""
Canonical entities shared by ingestion, proximity and caching.

Facility is the normalized power generation site; LineGeometry is a
cable, terrestrial link or transmission line polyline; Segment is one
indexed edge of a LineGeometry.
"""

import math
from dataclasses import dataclass, field
from typing import Optional

Coordinate = tuple[float, float]  # (longitude, latitude)

COUNTRY_CODES = ("CA", "US")


@dataclass
class Facility:
    """A power generation site after normalization and aggregation."""
    id: str
    name: str
    output: float                   # MW
    output_display: str             # "150.0 MW"
    source: str                     # closed energy-source vocabulary
    coordinates: Coordinate         # (lon, lat)
    country: str                    # "CA" or "US"
    net_summer_capacity: Optional[float] = None
    net_winter_capacity: Optional[float] = None
    capacity_factor: Optional[float] = None  # percent
    raw_data: dict = field(default_factory=dict)

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]

    def is_valid(self) -> bool:
        """Finite in-range coordinates and strictly positive output."""
        lon, lat = self.coordinates
        if not all(isinstance(v, (int, float)) for v in (lon, lat, self.output)):
            return False
        if not (math.isfinite(lon) and math.isfinite(lat)):
            return False
        if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
            return False
        return math.isfinite(self.output) and self.output > 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "output": self.output,
            "output_display": self.output_display,
            "source": self.source,
            "coordinates": [self.coordinates[0], self.coordinates[1]],
            "country": self.country,
            "net_summer_capacity": self.net_summer_capacity,
            "net_winter_capacity": self.net_winter_capacity,
            "capacity_factor": self.capacity_factor,
            "raw_data": self.raw_data,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Facility":
        lon, lat = data["coordinates"]
        return cls(
            id=data["id"],
            name=data["name"],
            output=float(data["output"]),
            output_display=data["output_display"],
            source=data["source"],
            coordinates=(float(lon), float(lat)),
            country=data["country"],
            net_summer_capacity=data.get("net_summer_capacity"),
            net_winter_capacity=data.get("net_winter_capacity"),
            capacity_factor=data.get("capacity_factor"),
            raw_data=dict(data.get("raw_data") or {}),
        )


@dataclass(frozen=True)
class LineGeometry:
    """An ordered polyline. Lines with fewer than 2 points have no segments."""
    id: str
    name: str
    coordinates: tuple[Coordinate, ...]
    kind: str = "cable"  # cable, terrestrial, transmission

    @classmethod
    def from_coordinates(
        cls, id: str, name: str, coordinates, kind: str = "cable",
    ) -> "LineGeometry":
        coords = []
        for c in coordinates:
            if not isinstance(c, (list, tuple)) or len(c) < 2:
                continue
            try:
                lon, lat = float(c[0]), float(c[1])
            except (TypeError, ValueError):
                continue
            if math.isfinite(lon) and math.isfinite(lat):
                coords.append((lon, lat))
        return cls(id=id, name=name, coordinates=tuple(coords), kind=kind)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "coordinates": [list(c) for c in self.coordinates],
            "kind": self.kind,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineGeometry":
        return cls.from_coordinates(
            data["id"], data["name"], data.get("coordinates", []),
            kind=data.get("kind", "cable"),
        )


@dataclass(frozen=True)
class Segment:
    """One edge of a LineGeometry, tagged with its bounding box."""
    start: Coordinate
    end: Coordinate
    min_x: float
    min_y: float
    max_x: float
    max_y: float
    line_id: Optional[str] = None

    @classmethod
    def from_endpoints(
        cls, start: Coordinate, end: Coordinate, line_id: Optional[str] = None,
    ) -> "Segment":
        return cls(
            start=start,
            end=end,
            min_x=min(start[0], end[0]),
            min_y=min(start[1], end[1]),
            max_x=max(start[0], end[0]),
            max_y=max(start[1], end[1]),
            line_id=line_id,
        )

    @property
    def endpoints(self) -> tuple[Coordinate, Coordinate]:
        return self.start, self.end
