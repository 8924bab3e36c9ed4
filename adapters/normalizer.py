"""
Normalization tables and tolerant field parsers for plant sources.

Maps source-specific energy-source descriptions to the canonical
vocabulary, collapses country strings to the CA/US code pair, parses
numbers with thousands separators, and builds validated Facility
objects.
"""

import logging
import math
from typing import Optional

from core.entities import Facility

logger = logging.getLogger(__name__)

# Canonical energy-source vocabulary
ENERGY_SOURCES = [
    "coal", "gas", "nuclear", "hydro", "wind", "solar", "oil",
    "biomass", "geothermal", "tidal", "diesel", "waste", "biofuel",
    "battery", "other",
]

# Map diverse source descriptions to canonical values
ENERGY_SOURCE_MAP = {
    "Coal": "coal",
    "Natural Gas": "gas",
    "Nuclear": "nuclear",
    "Hydroelectric": "hydro",
    "Wind": "wind",
    "Solar": "solar",
    "Petroleum": "oil",
    "Biomass": "biomass",
    "Geothermal": "geothermal",
    "Tidal": "tidal",
    "Pumped-Storage Hydroelectric": "hydro",
    # EIA / generic variants
    "Gas": "gas",
    "Diesel": "diesel",
    "Oil": "oil",
    "Hydro": "hydro",
    "Waste": "waste",
    "Biofuel": "biofuel",
    "Battery": "battery",
    "Pumped Storage": "hydro",
    "Run-of-river": "hydro",
    "Conventional Hydroelectric": "hydro",
    "Onshore Wind": "wind",
    "Offshore Wind": "wind",
    "Photovoltaic": "solar",
    "Concentrated Solar": "solar",
    "Combined Cycle": "gas",
    "Combustion Turbine": "gas",
    "Steam Turbine": "coal",
    "Internal Combustion": "diesel",
    "Landfill Gas": "biomass",
    "Municipal Solid Waste": "waste",
    "Wood": "biomass",
    "Other Biomass": "biomass",
    "Other Gases": "gas",
}

_ENERGY_SOURCE_MAP_LOWER = {k.lower(): v for k, v in ENERGY_SOURCE_MAP.items()}

CANADA = "CA"
OTHER_COUNTRY = "US"


def normalize_energy_source(value: Optional[str]) -> str:
    """Exact match, then case-insensitive trimmed match, else "other"."""
    if not value:
        return "other"
    if value in ENERGY_SOURCE_MAP:
        return ENERGY_SOURCE_MAP[value]
    return _ENERGY_SOURCE_MAP_LOWER.get(str(value).strip().lower(), "other")


def normalize_country(value: Optional[str]) -> str:
    """"Canada" maps to CA; every other value collapses to US."""
    if value and str(value).strip().lower() == "canada":
        return CANADA
    if value and str(value).strip() not in ("", "US", "USA", "United States"):
        logger.debug(f"Country {value!r} collapsed to {OTHER_COUNTRY}")
    return OTHER_COUNTRY


def _to_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        text = str(value).replace(",", "").strip()
        if not text:
            return None
        try:
            result = float(text)
        except ValueError:
            return None
    return result if math.isfinite(result) else None


def parse_number(value, default: float = 0.0) -> float:
    """Tolerant numeric parse; anything unparseable becomes ``default``."""
    result = _to_float(value)
    return default if result is None else result


def parse_optional_number(value) -> Optional[float]:
    """Tolerant numeric parse returning None when unparseable."""
    return _to_float(value)


def parse_coordinate(value) -> Optional[float]:
    """Coordinate parse; None marks the record invalid."""
    return _to_float(value)


def format_output(mw: float) -> str:
    return f"{mw:.1f} MW"


def build_facility(
    id: str,
    name: Optional[str],
    output: float,
    source: str,
    longitude: Optional[float],
    latitude: Optional[float],
    country: str,
    net_summer_capacity: Optional[float] = None,
    net_winter_capacity: Optional[float] = None,
    capacity_factor: Optional[float] = None,
    raw_data: Optional[dict] = None,
    default_name: str = "Unknown Facility",
) -> Optional[Facility]:
    """Build a Facility, or return None if it fails validation."""
    if longitude is None or latitude is None:
        return None
    facility = Facility(
        id=id,
        name=name or default_name,
        output=output,
        output_display=format_output(output),
        source=source,
        coordinates=(longitude, latitude),
        country=country,
        net_summer_capacity=net_summer_capacity,
        net_winter_capacity=net_winter_capacity,
        capacity_factor=capacity_factor,
        raw_data=raw_data or {},
    )
    if not facility.is_valid():
        return None
    return facility
