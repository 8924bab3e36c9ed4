"""
Feed (array of flat objects) plant source adapter for EIA data.

The EIA operating-generator feed is a JSON array of per-generator
records, optionally wrapped as {"response": {"data": [...]}}. Payloads
run to hundreds of megabytes, so the array is consumed through the
incremental parser one record at a time. If streaming fails the adapter
falls back to fetching and decoding the full payload.
"""

import logging
from typing import Any, Callable, Iterable, Optional

from pydantic import ValidationError

from app.schemas.source_schemas import FeedPlantRecord
from core.entities import Facility
from core.streaming_parser import (
    StreamError,
    StreamStats,
    iter_json_array,
    parse_json_array_text,
)

from .base import PlantSourceAdapter, SourceConfig, SourceUnavailableError
from .normalizer import (
    build_facility,
    normalize_energy_source,
    parse_coordinate,
    parse_number,
    parse_optional_number,
)

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL = 1000

# Canonical field name -> EIA key, used when a config field_map renames keys
_FEED_ALIASES = {
    "plant_id": "plantid",
    "generator_id": "generatorid",
    "name": "plantName",
    "latitude": "latitude",
    "longitude": "longitude",
    "capacity": "nameplate-capacity-mw",
    "net_summer_capacity": "net-summer-capacity-mw",
    "net_winter_capacity": "net-winter-capacity-mw",
    "energy_source": "energy-source-desc",
}


def _apply_field_map(item: dict, config: SourceConfig) -> dict:
    if not config.field_map and not config.energy_source_field:
        return item
    mapped = dict(item)
    for canonical, eia_key in _FEED_ALIASES.items():
        source_key = config.source_field(canonical)
        if source_key and source_key in item and eia_key not in item:
            mapped[eia_key] = item[source_key]
    return mapped


def transform_feed_record(
    record: FeedPlantRecord, config: SourceConfig,
) -> Optional[Facility]:
    """Normalize one feed record into a Facility, or None if invalid."""
    plant_id = (record.plant_id or "").strip()
    if not plant_id:
        logger.debug(f"{config.source_id}: feed record without plantid skipped")
        return None

    nameplate = parse_number(record.nameplate_capacity)
    summer = parse_optional_number(record.net_summer_capacity)
    winter = parse_optional_number(record.net_winter_capacity)

    # Proxy capacity factor: net summer capacity as a share of nameplate
    capacity_factor = None
    if summer is not None and nameplate > 0:
        capacity_factor = summer / nameplate * 100
    elif config.default_capacity_factor is not None:
        capacity_factor = config.default_capacity_factor

    prefix = config.id_prefix or "us"
    facility_id = f"{prefix}-{plant_id}"
    if record.generator_id:
        facility_id += f"-{record.generator_id}"

    return build_facility(
        id=facility_id,
        name=record.plant_name,
        output=nameplate,
        source=normalize_energy_source(record.energy_source or "Other"),
        longitude=parse_coordinate(record.longitude),
        latitude=parse_coordinate(record.latitude),
        country=config.default_country,
        net_summer_capacity=summer,
        net_winter_capacity=winter,
        capacity_factor=capacity_factor,
        raw_data=record.original_fields(),
        default_name="Unknown Plant",
    )


def transform_feed_item(item: Any, config: SourceConfig) -> Optional[Facility]:
    if not isinstance(item, dict):
        logger.debug(f"{config.source_id}: non-object feed item skipped")
        return None
    try:
        record = FeedPlantRecord.from_item(_apply_field_map(item, config))
    except ValidationError as e:
        logger.debug(f"{config.source_id}: invalid feed record skipped: {e}")
        return None
    return transform_feed_record(record, config)


def parse_feed_items(
    items: Iterable[Any],
    config: SourceConfig,
    on_item: Optional[Callable[[int], None]] = None,
) -> list[Facility]:
    """Transform feed items one at a time, skipping invalid ones."""
    facilities: list[Facility] = []
    seen = 0
    for item in items:
        facility = transform_feed_item(item, config)
        if facility is not None:
            facilities.append(facility)
        seen += 1
        if seen % PROGRESS_INTERVAL == 0:
            logger.info(f"  {config.source_id}: processed {seen} records...")
            if on_item:
                on_item(seen)

    logger.info(
        f"{config.source_id}: {len(facilities)} facilities from {seen} feed records"
    )
    return facilities


class FeedPlantAdapter(PlantSourceAdapter):
    """Adapter for JSON array feeds (EIA generator inventory)."""

    def parse_stream(self, chunks: Iterable, stats: Optional[StreamStats] = None) -> list[Facility]:
        """Parse a chunk stream. Raises StreamError if the stream breaks."""
        items = iter_json_array(
            chunks, stats=stats, array_path=self.config.envelope_path or [],
        )
        return parse_feed_items(items, self.config)

    def parse_text(self, text: str) -> list[Facility]:
        """Whole-buffer parse of an already available payload."""
        try:
            items = parse_json_array_text(text, self.config.envelope_path)
        except ValueError as e:
            raise SourceUnavailableError(
                f"{self.config.source_id}: payload is not valid JSON: {e}"
            ) from e
        return parse_feed_items(items, self.config)

    def parse_payload(self, payload) -> list[Facility]:
        """Accepts the full text or an iterable of str/bytes chunks."""
        if isinstance(payload, (str, bytes)):
            text = payload.decode("utf-8-sig") if isinstance(payload, bytes) else payload
            return self.parse_text(text)
        return self.parse_stream(payload)

    def pull_facilities(self) -> list[Facility]:
        chunks = self.fetcher.iter_chunks(self.config.location)
        stats = StreamStats()
        try:
            facilities = self.parse_stream(chunks, stats=stats)
        except StreamError as e:
            logger.warning(
                f"{self.config.source_id}: streaming parser failed after "
                f"{stats.items_parsed} items ({e}), falling back to full JSON parse"
            )
            return self.parse_text(self.fetcher.fetch_text(self.config.location))

        if stats.items_skipped:
            logger.warning(
                f"{self.config.source_id}: skipped {stats.items_skipped} malformed items"
            )
        return facilities
