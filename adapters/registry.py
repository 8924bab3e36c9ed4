"""
Plant source adapter registry (factory pattern).

Usage:
    config = load_source_config("canada_large")
    adapter = get_source_adapter(config)
    facilities = adapter.pull_facilities()
"""

import logging
from pathlib import Path
from typing import Optional

from .base import PlantSourceAdapter, SourceConfig
from .csv_adapter import TabularPlantAdapter
from .eia_adapter import FeedPlantAdapter
from .source_fetcher import SourceFetcher

logger = logging.getLogger(__name__)

CONFIGS_DIR = Path(__file__).parent / "configs"

_ADAPTER_MAP: dict[str, type[PlantSourceAdapter]] = {
    "tabular": TabularPlantAdapter,
    "feed": FeedPlantAdapter,
}


def load_source_config(source_id: str) -> SourceConfig:
    """Load the YAML config for a source id."""
    config_path = CONFIGS_DIR / f"{source_id}.yaml"
    if not config_path.exists():
        raise FileNotFoundError(
            f"No config for source '{source_id}' at {config_path}. "
            f"Available: {list_sources()}"
        )
    return SourceConfig.from_yaml(config_path)


def load_source_configs(source_ids: Optional[list[str]] = None) -> list[SourceConfig]:
    """Load configs for the given ids (default: every enabled source)."""
    if source_ids:
        return [load_source_config(s) for s in source_ids]
    configs = [load_source_config(s) for s in list_sources()]
    return [c for c in configs if c.enabled]


def get_source_adapter(
    config: SourceConfig,
    fetcher: Optional[SourceFetcher] = None,
) -> PlantSourceAdapter:
    """
    Get an adapter instance for a source config.

    Args:
        config: Source config (see adapters/configs/*.yaml).
        fetcher: Optional shared SourceFetcher instance.

    Returns:
        Initialized PlantSourceAdapter.
    """
    adapter_cls = _ADAPTER_MAP.get(config.source_type)
    if adapter_cls is None:
        raise ValueError(
            f"Unknown source_type '{config.source_type}' for {config.source_id}. "
            f"Supported: {list(_ADAPTER_MAP.keys())}"
        )
    if fetcher is None:
        fetcher = SourceFetcher()

    adapter = adapter_cls(config=config, fetcher=fetcher)
    logger.debug(f"Initialized {adapter_cls.__name__} for {config.source_name}")
    return adapter


def list_sources() -> list[str]:
    """Return sorted list of configured source ids."""
    return sorted(p.stem for p in CONFIGS_DIR.glob("*.yaml"))
