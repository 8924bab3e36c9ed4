"""Shared test fixtures for infra-proximity tests.

Provides an in-memory cache on a controllable clock, sample NRCan CSV
text, and sample EIA generator payloads (bare array and API envelope).
"""

import json
import os
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

# Keep tests on the in-memory cache backend
os.environ["CACHE_BACKEND"] = "memory"
# Point Redis to a non-existent port so no test reaches a real server
os.environ["REDIS_URL"] = "redis://localhost:16379/0"

from adapters.base import SourceConfig  # noqa: E402
from app.cache import CompressedCache, MemoryStore  # noqa: E402


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def memory_store():
    return MemoryStore(quota_bytes=64 * 1024)


@pytest.fixture()
def cache(memory_store, clock):
    return CompressedCache(memory_store, namespace="test_cache_", version="v1", clock=clock)


SAMPLE_CSV = (
    "Facility Name,Country,Latitude,Longitude,Total Capacity (MW),Primary Energy Source\n"
    "Plant A,Canada,45.0,-75.0,100,Hydroelectric\n"
    "Plant A,Canada,45.0,-75.0,50,Hydroelectric\n"
    '"Smith, Jones Generating",Canada,43.65,-79.38,"1,200",Natural Gas\n'
    "Border Wind,United States,44.0,-73.0,80,Wind\n"
    "No Coordinates,Canada,,,60,Solar\n"
    "\n"
    "Short Row,Canada\n"
)

EIA_RECORDS = [
    {
        "period": "2024-01",
        "plantid": "3",
        "plantName": "Barry",
        "generatorid": "1",
        "latitude": "31.0069",
        "longitude": "-88.0103",
        "nameplate-capacity-mw": "80",
        "net-summer-capacity-mw": "53",
        "net-winter-capacity-mw": "55",
        "energy-source-desc": "Natural Gas",
        "stateid": "AL",
    },
    {
        "period": "2024-01",
        "plantid": "3",
        "plantName": "Barry",
        "generatorid": "2",
        "latitude": "31.0069",
        "longitude": "-88.0103",
        "nameplate-capacity-mw": "1,000",
        "net-summer-capacity-mw": "900",
        "net-winter-capacity-mw": "950",
        "energy-source-desc": "Coal",
        "stateid": "AL",
    },
    {
        "period": "2024-01",
        "plantid": "7",
        "plantName": "Gadsden",
        "generatorid": "GT1",
        "latitude": "34.0128",
        "longitude": "-85.9708",
        "nameplate-capacity-mw": "60",
        "net-summer-capacity-mw": None,
        "net-winter-capacity-mw": None,
        "energy-source-desc": "Combustion Turbine",
        "stateid": "AL",
    },
]


@pytest.fixture()
def sample_csv_text():
    return SAMPLE_CSV


@pytest.fixture()
def tabular_config():
    return SourceConfig(
        source_id="canada_test",
        source_name="Test Canadian Plants",
        source_type="tabular",
        location="plants.csv",
        id_prefix="plant-test",
        country_filter="CA",
        default_capacity_factor=100,
    )


@pytest.fixture()
def feed_config():
    return SourceConfig(
        source_id="eia_test",
        source_name="Test EIA Generators",
        source_type="feed",
        location="3.json",
        id_prefix="us",
        envelope_path=["response", "data"],
    )


@pytest.fixture()
def eia_records():
    return [dict(r) for r in EIA_RECORDS]


@pytest.fixture()
def eia_envelope_text():
    return json.dumps({"response": {"total": 3, "data": EIA_RECORDS}, "apiVersion": "2.1.8"})
