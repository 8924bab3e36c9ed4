"""
Tabular (delimited text with header) plant source adapter.

Covers the Natural Resources Canada plant inventories ("Power Plants,
100 MW or more" and "Renewable Energy Power Plants, 1 MW or more").
Columns are located by header name, never by position, and rows are
split with quote awareness so facility names containing commas survive.
"""

import logging
from typing import Iterator, Optional

from app.schemas.source_schemas import TabularPlantRecord
from core.entities import Facility

from .base import PlantSourceAdapter, SourceConfig
from .normalizer import (
    build_facility,
    normalize_country,
    normalize_energy_source,
    parse_coordinate,
    parse_number,
)

logger = logging.getLogger(__name__)

# Canonical fields read from a tabular row, with the NRCan column names
DEFAULT_FIELD_MAP = {
    "name": "Facility Name",
    "latitude": "Latitude",
    "longitude": "Longitude",
    "capacity": "Total Capacity (MW)",
    "energy_source": "Primary Energy Source",
    "country": "Country",
}


def split_csv_row(line: str, delimiter: str = ",") -> list[str]:
    """
    Split one delimited line, honoring double-quoted fields.

    A delimiter inside quotes is literal; a doubled quote inside a quoted
    field is an escaped quote character.
    """
    result: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)

    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            result.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1

    result.append("".join(current))
    return result


def build_header_index(header_line: str, delimiter: str = ",") -> dict[str, int]:
    """Map header name -> column index."""
    headers = [h.strip().lstrip("\ufeff") for h in split_csv_row(header_line, delimiter)]
    return {name: idx for idx, name in enumerate(headers) if name}


def iter_tabular_records(
    text: str, config: SourceConfig,
) -> Iterator[TabularPlantRecord]:
    """Yield one TabularPlantRecord per data row with enough columns."""
    lines = text.splitlines()
    if not lines:
        return

    header_index = build_header_index(lines[0], config.delimiter)
    header_count = len(split_csv_row(lines[0], config.delimiter))
    field_map = {
        canonical: config.source_field(canonical, default)
        for canonical, default in DEFAULT_FIELD_MAP.items()
    }

    for row_number, line in enumerate(lines[1:], start=1):
        if not line.strip():
            continue
        row = split_csv_row(line.strip(" \r\n"), config.delimiter)
        if len(row) < header_count:
            logger.debug(f"{config.source_id}: row {row_number} has {len(row)} fields, skipping")
            continue

        columns = {name: row[idx].strip() for name, idx in header_index.items()}

        def lookup(canonical: str) -> Optional[str]:
            column = field_map.get(canonical)
            return columns.get(column) if column else None

        yield TabularPlantRecord(
            row_number=row_number,
            name=lookup("name"),
            latitude=lookup("latitude"),
            longitude=lookup("longitude"),
            capacity=lookup("capacity"),
            energy_source=lookup("energy_source"),
            country=lookup("country"),
            columns=columns,
        )


def transform_tabular_record(
    record: TabularPlantRecord, config: SourceConfig,
) -> Optional[Facility]:
    """Normalize one row into a Facility, or None if it is filtered/invalid."""
    country = (
        normalize_country(record.country) if record.country is not None
        else config.default_country
    )
    if config.country_filter and country != config.country_filter:
        return None

    capacity = parse_number(record.capacity)
    prefix = config.id_prefix or f"plant-{config.source_id}"
    return build_facility(
        id=f"{prefix}-{record.row_number}",
        name=record.name,
        output=capacity,
        source=normalize_energy_source(record.energy_source or "Other"),
        longitude=parse_coordinate(record.longitude),
        latitude=parse_coordinate(record.latitude),
        country=country,
        capacity_factor=config.default_capacity_factor,
        raw_data=record.original_fields(),
    )


def parse_tabular_text(text: str, config: SourceConfig) -> list[Facility]:
    """Parse a whole delimited-text payload into validated facilities."""
    facilities: list[Facility] = []
    dropped = 0
    for record in iter_tabular_records(text, config):
        facility = transform_tabular_record(record, config)
        if facility is None:
            dropped += 1
            continue
        facilities.append(facility)
    logger.info(
        f"{config.source_id}: {len(facilities)} facilities from tabular source"
        + (f" ({dropped} rows filtered or invalid)" if dropped else "")
    )
    return facilities


class TabularPlantAdapter(PlantSourceAdapter):
    """Adapter for delimited-text-with-header plant inventories."""

    def parse_payload(self, payload: str) -> list[Facility]:
        return parse_tabular_text(payload, self.config)

    def pull_facilities(self) -> list[Facility]:
        return self.parse_payload(self.fetcher.fetch_text(self.config.location))
