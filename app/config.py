"""Application configuration via environment variables."""

import os
from pathlib import Path


class Settings:
    """Application settings loaded from environment variables."""

    PROJECT_ROOT: Path = Path(__file__).parent.parent
    DATA_DIR: Path = Path(os.environ.get("DATA_DIR", str(PROJECT_ROOT / "data")))

    # Cache store: "memory" (per-process) or "redis" (durable)
    CACHE_BACKEND: str = os.environ.get("CACHE_BACKEND", "memory")
    REDIS_URL: str = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
    CACHE_NAMESPACE: str = os.environ.get("CACHE_NAMESPACE", "mapping_infra_cache_")
    CACHE_VERSION: str = os.environ.get("CACHE_VERSION", "v1")
    CACHE_QUOTA_BYTES: int = int(os.environ.get("CACHE_QUOTA_BYTES", 5 * 1024 * 1024))

    PLANT_CACHE_KEY: str = "eia-power-plants-v1"
    PLANT_CACHE_TTL_SEC: int = int(os.environ.get("PLANT_CACHE_TTL_SEC", 24 * 60 * 60))
    CABLE_CACHE_KEY: str = "wfs-cable-data"
    CABLE_CACHE_TTL_SEC: int = int(os.environ.get("CABLE_CACHE_TTL_SEC", 24 * 60 * 60))

    # Line geometry sources
    ITU_WFS_URL: str = os.environ.get(
        "ITU_WFS_URL",
        "https://bbmaps.itu.int/geoserver/itu-geocatalogue/ows",
    )
    ITU_WFS_TYPE_NAME: str = "itu-geocatalogue:trx_geocatalogue"

    # HTTP fetching
    HTTP_TIMEOUT: int = int(os.environ.get("HTTP_TIMEOUT", 120))
    HTTP_USER_AGENT: str = "infra-proximity/1.0"
    STREAM_CHUNK_SIZE: int = int(os.environ.get("STREAM_CHUNK_SIZE", 64 * 1024))

    DEFAULT_PROXIMITY_MILES: float = float(os.environ.get("DEFAULT_PROXIMITY_MILES", 10))


settings = Settings()
