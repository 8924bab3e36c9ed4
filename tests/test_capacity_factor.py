"""Tests for core.capacity_factor (EIA plant capacity factor report)."""

import json
import sys
from pathlib import Path

import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.capacity_factor import (
    HOURS_IN_MONTH,
    REPORT_COLUMNS,
    calculate_capacity_factors,
    export_to_csv,
    export_to_json,
    generator_capacity_factor,
)


class TestGeneratorCapacityFactor:
    def test_complete(self):
        cf, quality = generator_capacity_factor(100.0, 36000.0)
        assert cf == pytest.approx(36000 / (100 * HOURS_IN_MONTH) * 100)
        assert quality == "complete"

    def test_no_generation(self):
        assert generator_capacity_factor(100.0) == (None, "insufficient_data")

    def test_zero_nameplate(self):
        assert generator_capacity_factor(0.0, 10.0) == (None, "invalid_data")


class TestCalculateCapacityFactors:
    def test_groups_generators_by_plant(self, eia_records):
        df = calculate_capacity_factors(eia_records)
        assert list(df.columns) == REPORT_COLUMNS
        assert list(df["plant_id"]) == ["3", "7"]

        barry = df.iloc[0]
        assert barry["plant_name"] == "Barry"
        assert barry["capacity_mw"] == pytest.approx(1080.0)
        assert barry["net_summer_capacity_mw"] == pytest.approx(953.0)
        assert barry["generators_count"] == 2
        assert barry["calculation_period"] == "2024-01"

    def test_inventory_only_is_insufficient(self, eia_records):
        df = calculate_capacity_factors(eia_records)
        assert set(df["data_quality"]) == {"insufficient_data"}
        assert df["capacity_factor"].isna().all()

    def test_zero_seasonal_total_is_missing(self, eia_records):
        gadsden = calculate_capacity_factors(eia_records).iloc[1]
        assert pd.isna(gadsden["net_summer_capacity_mw"])

    def test_generation_available(self):
        records = [
            {"plantid": "1", "plantName": "Gen", "nameplate-capacity-mw": "50", "generation": "18000"},
            {"plantid": "1", "plantName": "Gen", "nameplate-capacity-mw": "50", "generation": None},
        ]
        row = calculate_capacity_factors(records).iloc[0]
        assert row["data_quality"] == "complete"
        assert row["capacity_factor"] == pytest.approx(18000 / (100 * 720) * 100)

    def test_invalid_nameplate(self):
        records = [{"plantid": "1", "plantName": "Zero", "nameplate-capacity-mw": "0"}]
        assert calculate_capacity_factors(records).iloc[0]["data_quality"] == "invalid_data"

    def test_records_without_plant_id_ignored(self):
        assert calculate_capacity_factors([{"plantName": "x"}, "junk"]).empty

    def test_empty(self):
        df = calculate_capacity_factors([])
        assert df.empty
        assert list(df.columns) == REPORT_COLUMNS


class TestExport:
    def test_csv_marks_missing(self, eia_records):
        text = export_to_csv(calculate_capacity_factors(eia_records))
        lines = text.strip().splitlines()
        assert lines[0] == ",".join(REPORT_COLUMNS)
        assert "N/A" in lines[2]

    def test_json_uses_null(self, eia_records):
        rows = json.loads(export_to_json(calculate_capacity_factors(eia_records)))
        assert rows[0]["plant_id"] == "3"
        assert rows[0]["capacity_factor"] is None
        assert rows[1]["net_summer_capacity_mw"] is None
