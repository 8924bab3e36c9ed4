"""
Base plant source adapter and config.

SourceConfig loads from YAML (one file per source under configs/);
PlantSourceAdapter is the ABC that the tabular and feed adapters
implement. Adapters turn one source payload into validated Facility
objects; aggregation across sources happens in core.ingestion.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from core.entities import Facility

logger = logging.getLogger(__name__)


class SourceUnavailableError(Exception):
    """A source payload could not be fetched or read."""


@dataclass
class SourceConfig:
    """Configuration for a single plant data source."""

    source_id: str
    source_name: str
    source_type: str  # tabular, feed
    location: str     # URL or file path (relative paths resolve against DATA_DIR)

    # Canonical field name -> source field name
    field_map: dict[str, str] = field(default_factory=dict)
    energy_source_field: Optional[str] = None  # overrides field_map["energy_source"]

    id_prefix: str = ""
    delimiter: str = ","
    default_country: str = "US"
    country_filter: Optional[str] = None         # keep only this country code
    default_capacity_factor: Optional[float] = None
    envelope_path: list[str] = field(default_factory=list)  # e.g. [response, data]
    enabled: bool = True

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "SourceConfig":
        """Load config from a YAML file."""
        with open(yaml_path) as f:
            data = yaml.safe_load(f)
        valid_fields = cls.__dataclass_fields__
        return cls(**{k: v for k, v in data.items() if k in valid_fields})

    def source_field(self, canonical: str, default: Optional[str] = None) -> Optional[str]:
        """Source column/key for a canonical field."""
        if canonical == "energy_source" and self.energy_source_field:
            return self.energy_source_field
        return self.field_map.get(canonical, default)


class PlantSourceAdapter(ABC):
    """Abstract base for plant source adapters."""

    def __init__(self, config: SourceConfig, fetcher):
        self.config = config
        self.fetcher = fetcher

    @property
    def source_id(self) -> str:
        return self.config.source_id

    @abstractmethod
    def parse_payload(self, payload) -> list[Facility]:
        """Parse an already retrieved payload. Performs no I/O."""
        ...

    @abstractmethod
    def pull_facilities(self) -> list[Facility]:
        """Fetch the source payload and return validated facilities.

        Raises SourceUnavailableError if the payload cannot be retrieved.
        Malformed records are skipped, never raised.
        """
        ...
