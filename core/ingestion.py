"""
Multi-source plant ingestion pipeline.

Loads every configured plant source, aggregates generators and
duplicate rows into facilities, and caches the result. Every failure
degrades to fewer records: an unreachable source contributes nothing,
and if no source is reachable the result is an empty list.
"""

import logging
from typing import Callable, Optional

from adapters.base import SourceConfig, SourceUnavailableError
from adapters.registry import get_source_adapter, load_source_configs
from adapters.source_fetcher import SourceFetcher
from app.cache import CompressedCache
from app.config import settings

from .aggregation import aggregate_facilities
from .entities import Facility

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]


def _report(on_progress: Optional[ProgressCallback], percent: float, message: str) -> None:
    logger.debug(f"[{percent:.0f}%] {message}")
    if on_progress:
        on_progress(percent, message)


def get_cached_facilities(
    cache: CompressedCache,
    key: str = settings.PLANT_CACHE_KEY,
    ttl: float = settings.PLANT_CACHE_TTL_SEC,
) -> Optional[list[Facility]]:
    """Cached facility list if present, current and decodable."""
    data = cache.get_fresh(key, ttl)
    if data is None:
        return None
    try:
        facilities = [Facility.from_dict(d) for d in data]
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Cached facilities have an unexpected shape, evicting: {e}")
        cache.clear(key)
        return None
    logger.info(f"Loaded {len(facilities)} facilities from cache")
    return facilities


def cache_facilities(
    cache: CompressedCache,
    facilities: list[Facility],
    key: str = settings.PLANT_CACHE_KEY,
) -> bool:
    stored = cache.set(key, [f.to_dict() for f in facilities])
    if stored:
        logger.info(f"Cached {len(facilities)} facilities")
    else:
        logger.warning("Failed to cache facilities - may be too large for the cache quota")
    return stored


def load_all_facilities(
    configs: Optional[list[SourceConfig]] = None,
    fetcher: Optional[SourceFetcher] = None,
    cache: Optional[CompressedCache] = None,
    force: bool = False,
    on_progress: Optional[ProgressCallback] = None,
) -> list[Facility]:
    """
    Load, normalize and aggregate facilities from every source.

    Args:
        configs: Source configs to load. Default: every enabled config.
        fetcher: Shared SourceFetcher (default: a new one).
        cache: Optional cache; a fresh cached list short-circuits loading
            and the loaded list is written back.
        force: Ignore any cached list.
        on_progress: Optional callback(percent, message).

    Returns:
        Aggregated facilities in first-seen order (possibly empty).
    """
    _report(on_progress, 0, "Checking cached data...")
    if cache is not None and not force:
        cached = get_cached_facilities(cache)
        if cached is not None:
            _report(on_progress, 100, "Loaded from cache")
            return cached

    if configs is None:
        configs = load_source_configs()
    if fetcher is None:
        fetcher = SourceFetcher()

    collected: list[Facility] = []
    for i, config in enumerate(configs):
        _report(
            on_progress, 10 + 70 * i / max(len(configs), 1),
            f"Loading {config.source_name}...",
        )
        adapter = get_source_adapter(config, fetcher)
        try:
            collected.extend(adapter.pull_facilities())
        except SourceUnavailableError as e:
            logger.warning(f"{config.source_id}: source unavailable, skipping: {e}")

    _report(on_progress, 80, f"Aggregating {len(collected)} records...")
    facilities = [f for f in aggregate_facilities(collected) if f.is_valid()]

    if cache is not None and facilities:
        _report(on_progress, 90, f"Processed {len(facilities)} facilities, caching...")
        cache_facilities(cache, facilities)

    _report(on_progress, 100, f"Loaded {len(facilities)} facilities")
    logger.info(f"Loaded {len(facilities)} facilities from {len(configs)} sources")
    return facilities
