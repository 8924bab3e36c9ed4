"""
Merge partial facility records that describe the same physical site.

Generators of one plant (EIA) and overlapping inventory rows (NRCan)
arrive as separate records. Records sharing an aggregation key of
(lowercased name, coordinates at 4 decimals, country) are merged into
one Facility; output order follows first appearance of each key.
"""

import logging
from dataclasses import replace
from typing import Iterable, Optional

from .entities import Facility

logger = logging.getLogger(__name__)

COORDINATE_DECIMALS = 4
RAW_CAPACITY_FIELD = "Total Capacity (MW)"


def aggregation_key(facility: Facility) -> str:
    lon, lat = facility.coordinates
    return (
        f"{facility.name.lower()}-{lon:.{COORDINATE_DECIMALS}f}-"
        f"{lat:.{COORDINATE_DECIMALS}f}-{facility.country}"
    )


def _sum_optional(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None:
        return b
    if b is None:
        return a
    return a + b


def _merge_into(existing: Facility, incoming: Facility) -> None:
    old_output = existing.output
    existing.output = old_output + incoming.output
    existing.output_display = f"{existing.output:.1f} MW"

    existing.net_summer_capacity = _sum_optional(
        existing.net_summer_capacity, incoming.net_summer_capacity,
    )
    existing.net_winter_capacity = _sum_optional(
        existing.net_winter_capacity, incoming.net_winter_capacity,
    )

    # Capacity-weighted average using pre-merge outputs
    if existing.capacity_factor is not None and incoming.capacity_factor is not None:
        existing.capacity_factor = (
            old_output * existing.capacity_factor
            + incoming.output * incoming.capacity_factor
        ) / existing.output
    elif incoming.capacity_factor is not None:
        existing.capacity_factor = incoming.capacity_factor

    if existing.raw_data:
        existing.raw_data[RAW_CAPACITY_FIELD] = str(existing.output)


def aggregate_facilities(facilities: Iterable[Facility]) -> list[Facility]:
    """
    Group facilities by aggregation key and merge each group.

    Capacities and seasonal capacities sum; the capacity factor becomes
    the capacity-weighted average; the first record's raw_data is kept
    with its capacity field overwritten. Inputs are not mutated, and
    aggregating an already aggregated list returns an equal list.
    """
    merged: dict[str, Facility] = {}
    total = 0
    for facility in facilities:
        total += 1
        key = aggregation_key(facility)
        existing = merged.get(key)
        if existing is None:
            merged[key] = replace(facility, raw_data=dict(facility.raw_data))
        else:
            _merge_into(existing, facility)

    result = list(merged.values())
    if total != len(result):
        logger.info(f"Aggregated {total} records into {len(result)} facilities")
    return result
