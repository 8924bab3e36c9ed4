"""Tests for core.ingestion (multi-source orchestration and caching)."""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.base import SourceUnavailableError
from app.config import settings
from core.entities import Facility
from core.ingestion import cache_facilities, get_cached_facilities, load_all_facilities


def _fetcher(texts: dict, chunks: dict = None) -> MagicMock:
    """Fetcher mock serving text by location; missing locations are unavailable."""
    fetcher = MagicMock()

    def fetch_text(location, params=None):
        if location not in texts:
            raise SourceUnavailableError(f"{location} not found")
        return texts[location]

    def iter_chunks(location, params=None):
        if location not in (chunks or {}):
            raise SourceUnavailableError(f"{location} not found")
        return iter(chunks[location])

    fetcher.fetch_text.side_effect = fetch_text
    fetcher.iter_chunks.side_effect = iter_chunks
    return fetcher


class TestLoadAllFacilities:
    def test_combines_sources(self, sample_csv_text, eia_envelope_text, tabular_config, feed_config):
        fetcher = _fetcher(
            {"plants.csv": sample_csv_text},
            {"3.json": [eia_envelope_text]},
        )
        facilities = load_all_facilities([tabular_config, feed_config], fetcher=fetcher)
        # Plant A rows merge, Barry generators 1 and 2 merge
        assert [f.name for f in facilities] == ["Plant A", "Smith, Jones Generating", "Barry", "Gadsden"]
        plant_a = facilities[0]
        assert plant_a.name == "Plant A"
        assert plant_a.output == pytest.approx(150.0)
        assert facilities[2].output == pytest.approx(1080.0)
        assert all(f.is_valid() for f in facilities)

    def test_unavailable_source_skipped(self, sample_csv_text, tabular_config, feed_config):
        fetcher = _fetcher({"plants.csv": sample_csv_text})
        facilities = load_all_facilities([feed_config, tabular_config], fetcher=fetcher)
        assert len(facilities) == 2
        assert {f.country for f in facilities} == {"CA"}

    def test_total_failure_returns_empty(self, tabular_config, feed_config):
        assert load_all_facilities([tabular_config, feed_config], fetcher=_fetcher({})) == []

    def test_progress_reported(self, sample_csv_text, tabular_config):
        updates = []
        load_all_facilities(
            [tabular_config],
            fetcher=_fetcher({"plants.csv": sample_csv_text}),
            on_progress=lambda pct, msg: updates.append(pct),
        )
        assert updates[0] == 0
        assert updates[-1] == 100
        assert updates == sorted(updates)


class TestIngestionCache:
    def test_result_cached_and_reused(self, cache, sample_csv_text, tabular_config):
        fetcher = _fetcher({"plants.csv": sample_csv_text})
        first = load_all_facilities([tabular_config], fetcher=fetcher, cache=cache)

        second_fetcher = _fetcher({})
        second = load_all_facilities([tabular_config], fetcher=second_fetcher, cache=cache)
        assert [f.to_dict() for f in second] == [f.to_dict() for f in first]
        second_fetcher.fetch_text.assert_not_called()

    def test_force_bypasses_cache(self, cache, sample_csv_text, tabular_config):
        load_all_facilities(
            [tabular_config], fetcher=_fetcher({"plants.csv": sample_csv_text}), cache=cache,
        )
        fetcher = _fetcher({"plants.csv": sample_csv_text})
        load_all_facilities([tabular_config], fetcher=fetcher, cache=cache, force=True)
        fetcher.fetch_text.assert_called_once()

    def test_stale_cache_reloaded(self, cache, clock, sample_csv_text, tabular_config):
        load_all_facilities(
            [tabular_config], fetcher=_fetcher({"plants.csv": sample_csv_text}), cache=cache,
        )
        clock.advance(settings.PLANT_CACHE_TTL_SEC + 1)
        fetcher = _fetcher({"plants.csv": sample_csv_text})
        load_all_facilities([tabular_config], fetcher=fetcher, cache=cache)
        fetcher.fetch_text.assert_called_once()

    def test_empty_result_not_cached(self, cache, tabular_config):
        load_all_facilities([tabular_config], fetcher=_fetcher({}), cache=cache)
        assert cache.get(settings.PLANT_CACHE_KEY) is None

    def test_bad_shape_evicted(self, cache):
        cache.set(settings.PLANT_CACHE_KEY, [{"id": "x"}])
        assert get_cached_facilities(cache) is None
        assert cache.get(settings.PLANT_CACHE_KEY) is None

    def test_tampered_cache_metadata_reloads(
        self, cache, memory_store, sample_csv_text, tabular_config,
    ):
        load_all_facilities(
            [tabular_config], fetcher=_fetcher({"plants.csv": sample_csv_text}), cache=cache,
        )
        full_key = f"test_cache_{settings.PLANT_CACHE_KEY}"
        doc = json.loads(memory_store.get(full_key))
        doc["metadata"]["timestamp"] = "yesterday"
        memory_store.set(full_key, json.dumps(doc))

        fetcher = _fetcher({"plants.csv": sample_csv_text})
        facilities = load_all_facilities([tabular_config], fetcher=fetcher, cache=cache)
        assert len(facilities) == 2
        fetcher.fetch_text.assert_called_once()
        assert cache.get(settings.PLANT_CACHE_KEY).metadata.timestamp == pytest.approx(
            cache.clock()
        )

    def test_cache_round_trip(self, cache):
        facility = Facility(
            id="us-1", name="P", output=5.0, output_display="5.0 MW", source="solar",
            coordinates=(-100.0, 40.0), country="US", capacity_factor=25.0,
            raw_data={"plantid": "1"},
        )
        assert cache_facilities(cache, [facility]) is True
        assert get_cached_facilities(cache)[0] == facility
