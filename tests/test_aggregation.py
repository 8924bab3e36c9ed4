"""Tests for core.aggregation (merging partial facility records)."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.aggregation import aggregate_facilities, aggregation_key
from core.entities import Facility


def _facility(**overrides) -> Facility:
    defaults = dict(
        id="plant-1",
        name="Plant A",
        output=100.0,
        output_display="100.0 MW",
        source="hydro",
        coordinates=(-75.0, 45.0),
        country="CA",
        raw_data={"Facility Name": "Plant A", "Total Capacity (MW)": "100"},
    )
    defaults.update(overrides)
    return Facility(**defaults)


class TestAggregationKey:
    def test_case_insensitive_name(self):
        assert aggregation_key(_facility(name="PLANT A")) == aggregation_key(_facility())

    def test_coordinates_rounded_to_four_decimals(self):
        a = _facility(coordinates=(-75.00001, 45.00002))
        assert aggregation_key(a) == aggregation_key(_facility())

    def test_country_distinguishes(self):
        assert aggregation_key(_facility(country="US")) != aggregation_key(_facility())


class TestAggregateFacilities:
    def test_same_site_merged(self):
        merged = aggregate_facilities([
            _facility(id="plant-1", output=100.0),
            _facility(id="plant-2", output=50.0, output_display="50.0 MW"),
        ])
        assert len(merged) == 1
        assert merged[0].id == "plant-1"
        assert merged[0].output == pytest.approx(150.0)
        assert merged[0].output_display == "150.0 MW"
        assert merged[0].raw_data["Total Capacity (MW)"] == "150.0"

    def test_distinct_sites_kept_in_first_seen_order(self):
        facilities = [
            _facility(name="B"),
            _facility(name="A"),
            _facility(name="B", output=1.0),
        ]
        assert [f.name for f in aggregate_facilities(facilities)] == ["B", "A"]

    def test_capacity_conserved(self):
        facilities = [
            _facility(name=f"P{i % 3}", output=10.0 + i)
            for i in range(10)
        ]
        merged = aggregate_facilities(facilities)
        assert sum(f.output for f in merged) == pytest.approx(sum(f.output for f in facilities))

    def test_idempotent(self):
        facilities = [
            _facility(output=100.0, capacity_factor=50.0),
            _facility(output=50.0, capacity_factor=80.0),
            _facility(name="Other", output=5.0),
        ]
        once = aggregate_facilities(facilities)
        twice = aggregate_facilities(once)
        assert [f.to_dict() for f in twice] == [f.to_dict() for f in once]

    def test_inputs_not_mutated(self):
        first = _facility(output=100.0)
        second = _facility(output=50.0)
        aggregate_facilities([first, second])
        assert first.output == 100.0
        assert first.raw_data["Total Capacity (MW)"] == "100"

    def test_weighted_capacity_factor(self):
        merged = aggregate_facilities([
            _facility(output=100.0, capacity_factor=50.0),
            _facility(output=50.0, capacity_factor=80.0),
        ])[0]
        assert merged.capacity_factor == pytest.approx((100 * 50 + 50 * 80) / 150)

    def test_capacity_factor_kept_when_one_side_missing(self):
        merged = aggregate_facilities([
            _facility(output=100.0, capacity_factor=None),
            _facility(output=50.0, capacity_factor=80.0),
        ])[0]
        assert merged.capacity_factor == pytest.approx(80.0)

        merged = aggregate_facilities([
            _facility(output=100.0, capacity_factor=60.0),
            _facility(output=50.0, capacity_factor=None),
        ])[0]
        assert merged.capacity_factor == pytest.approx(60.0)

    def test_capacity_factor_none_when_both_missing(self):
        merged = aggregate_facilities([_facility(), _facility(output=5.0)])[0]
        assert merged.capacity_factor is None

    def test_seasonal_capacities_summed(self):
        merged = aggregate_facilities([
            _facility(net_summer_capacity=53.0, net_winter_capacity=None),
            _facility(net_summer_capacity=900.0, net_winter_capacity=950.0),
        ])[0]
        assert merged.net_summer_capacity == pytest.approx(953.0)
        assert merged.net_winter_capacity == pytest.approx(950.0)

    def test_empty_raw_data_left_empty(self):
        merged = aggregate_facilities([_facility(raw_data={}), _facility(raw_data={})])[0]
        assert merged.raw_data == {}

    def test_empty_input(self):
        assert aggregate_facilities([]) == []
