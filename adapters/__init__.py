"""
Plant and line-geometry source adapters.

Each plant adapter implements the PlantSourceAdapter interface and turns
one source payload (delimited text or JSON array feed) into validated
Facility objects.
"""

from .base import PlantSourceAdapter, SourceConfig, SourceUnavailableError
from .registry import get_source_adapter, list_sources, load_source_config
