"""
Line geometry sources: submarine cables and terrestrial links.

- ITU broadband map WFS (GeoJSON via GetFeature), cached for 24h, with a
  built-in sample collection when the service is unreachable.
- HIFLD Electric Power Transmission Lines (GeoJSON FeatureServer query
  or a local export), as terrestrial transmission links.
- Generic infrastructure GeoJSON files (LineString -> terrestrial link,
  MultiLineString -> one cable per part).
"""

import logging
from typing import Optional

from app.cache import CompressedCache
from app.config import settings
from core.entities import LineGeometry

from .base import SourceUnavailableError
from .source_fetcher import SourceFetcher

logger = logging.getLogger(__name__)

HIFLD_TX_URL = (
    "https://services1.arcgis.com/Hp6G80Pky0om7QvQ/arcgis/rest/services/"
    "Electric_Power_Transmission_Lines/FeatureServer/0"
)

# Offline fallback when the WFS service cannot be reached
SAMPLE_CABLES = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "properties": {"id": "atlantic_cable_1", "name": "Transatlantic Cable System"},
            "geometry": {
                "type": "LineString",
                "coordinates": [
                    [-74.0060, 40.7128],   # New York
                    [-70.6483, -33.4569],  # Santiago
                    [-0.1276, 51.5074],    # London
                    [2.3522, 48.8566],     # Paris
                ],
            },
        },
        {
            "type": "Feature",
            "properties": {"id": "pacific_cable_1", "name": "Transpacific Cable Network"},
            "geometry": {
                "type": "LineString",
                "coordinates": [
                    [-118.2437, 34.0522],  # Los Angeles
                    [-157.8583, 21.3069],  # Honolulu
                    [139.6917, 35.6895],   # Tokyo
                    [151.2093, -33.8688],  # Sydney
                    [103.8198, 1.3521],    # Singapore
                ],
            },
        },
        {
            "type": "Feature",
            "properties": {"id": "europe_asia_cable_1", "name": "Europe-Asia Connectivity Cable"},
            "geometry": {
                "type": "LineString",
                "coordinates": [
                    [2.3522, 48.8566],     # Paris
                    [13.4050, 52.5200],    # Berlin
                    [37.6173, 55.7558],    # Moscow
                    [55.2792, 25.2295],    # Dubai
                    [77.2090, 28.7041],    # New Delhi
                    [100.5018, 13.7563],   # Bangkok
                    [139.6917, 35.6895],   # Tokyo
                ],
            },
        },
    ],
}


def _features(geojson: Optional[dict]) -> list[dict]:
    if not isinstance(geojson, dict):
        return []
    features = geojson.get("features")
    return features if isinstance(features, list) else []


def parse_infrastructure_geojson(
    geojson: dict,
) -> tuple[list[LineGeometry], list[LineGeometry]]:
    """
    Split a FeatureCollection into (cables, terrestrial_links).

    LineString features become terrestrial links; each part of a
    MultiLineString becomes its own cable.
    """
    cables: list[LineGeometry] = []
    terrestrial_links: list[LineGeometry] = []

    for index, feature in enumerate(_features(geojson)):
        props = feature.get("properties") or {}
        geometry = feature.get("geometry") or {}
        feature_id = props.get("id") or f"feature-{index}"
        name = props.get("name") or "Unnamed Feature"

        if geometry.get("type") == "LineString":
            terrestrial_links.append(LineGeometry.from_coordinates(
                str(feature_id), name, geometry.get("coordinates", []), kind="terrestrial",
            ))
        elif geometry.get("type") == "MultiLineString":
            for sub_index, coords in enumerate(geometry.get("coordinates", [])):
                cables.append(LineGeometry.from_coordinates(
                    f"{feature_id}-{sub_index}", f"{name} ({sub_index + 1})",
                    coords, kind="cable",
                ))

    return cables, terrestrial_links


def process_wfs_cable_data(geojson: dict) -> list[LineGeometry]:
    """Convert ITU WFS GeoJSON LineString features to cables."""
    cables: list[LineGeometry] = []
    for index, feature in enumerate(_features(geojson)):
        geometry = feature.get("geometry") or {}
        if geometry.get("type") != "LineString":
            continue
        props = feature.get("properties") or {}
        cables.append(LineGeometry.from_coordinates(
            str(props.get("id") or f"cable_{index}"),
            props.get("name") or props.get("cable_name") or f"Cable {index}",
            geometry.get("coordinates", []),
            kind="cable",
        ))
    return cables


def load_wfs_cable_data(
    fetcher: Optional[SourceFetcher] = None,
    cache: Optional[CompressedCache] = None,
    force: bool = False,
) -> list[LineGeometry]:
    """
    Load submarine cables from the ITU WFS service.

    Uses the cached list when fresh; falls back to SAMPLE_CABLES if the
    service cannot be reached.
    """
    if cache is not None and not force:
        cached = cache.get_fresh(settings.CABLE_CACHE_KEY, settings.CABLE_CACHE_TTL_SEC)
        if cached is not None:
            try:
                cables = [LineGeometry.from_dict(d) for d in cached]
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Cached cables have an unexpected shape, evicting: {e}")
                cache.clear(settings.CABLE_CACHE_KEY)
            else:
                logger.info(f"Loaded {len(cables)} cables from cache")
                return cables

    if fetcher is None:
        fetcher = SourceFetcher()
    params = {
        "service": "WFS",
        "version": "1.0.0",
        "request": "GetFeature",
        "typeName": settings.ITU_WFS_TYPE_NAME,
        "outputFormat": "application/json",
    }
    try:
        geojson = fetcher.fetch_json(settings.ITU_WFS_URL, params=params)
    except SourceUnavailableError as e:
        logger.warning(f"Failed to fetch submarine cable data, using sample data: {e}")
        return process_wfs_cable_data(SAMPLE_CABLES)

    cables = process_wfs_cable_data(geojson)
    logger.info(f"Downloaded {len(cables)} submarine cables")
    if cache is not None and cables:
        cache.set(settings.CABLE_CACHE_KEY, [c.to_dict() for c in cables])
    return cables


def transmission_lines_from_geojson(
    geojson: dict, min_voltage: Optional[float] = None,
) -> list[LineGeometry]:
    """HIFLD transmission line features -> LineGeometry(kind="transmission")."""
    lines: list[LineGeometry] = []
    for index, feature in enumerate(_features(geojson)):
        props = feature.get("properties") or {}
        geometry = feature.get("geometry") or {}
        line_id = str(props.get("ID") or props.get("OBJECTID") or f"tx-{index}")
        voltage = props.get("VOLTAGE")
        owner = props.get("OWNER") or "Unknown owner"
        if min_voltage is not None and isinstance(voltage, (int, float)) and voltage < min_voltage:
            continue
        name = f"{owner} {voltage:g} kV" if isinstance(voltage, (int, float)) else owner

        if geometry.get("type") == "LineString":
            parts = [geometry.get("coordinates", [])]
        elif geometry.get("type") == "MultiLineString":
            parts = geometry.get("coordinates", [])
        else:
            continue
        for part_index, coords in enumerate(parts):
            part_id = line_id if len(parts) == 1 else f"{line_id}-{part_index}"
            lines.append(LineGeometry.from_coordinates(part_id, name, coords, kind="transmission"))
    return lines


def load_transmission_lines(
    location: Optional[str] = None,
    fetcher: Optional[SourceFetcher] = None,
    min_voltage: int = 230,
) -> list[LineGeometry]:
    """
    Load transmission lines (230kV+ by default) from HIFLD or a local export.

    Returns an empty list if the source cannot be reached.
    """
    if fetcher is None:
        fetcher = SourceFetcher()

    if location is None:
        location = f"{HIFLD_TX_URL}/query"
        params = {
            "where": f"VOLTAGE >= {min_voltage}",
            "outFields": "ID,VOLTAGE,OWNER,SUB_1,SUB_2",
            "f": "geojson",
            "resultRecordCount": 5000,
            "outSR": 4326,
        }
        logger.info(f"Downloading {min_voltage}kV+ transmission lines from HIFLD...")
    else:
        params = None

    try:
        geojson = fetcher.fetch_json(location, params=params)
    except SourceUnavailableError as e:
        logger.warning(f"Failed to load transmission lines: {e}")
        return []

    lines = transmission_lines_from_geojson(geojson, min_voltage=min_voltage)
    logger.info(f"Loaded {len(lines)} transmission line features")
    return lines
