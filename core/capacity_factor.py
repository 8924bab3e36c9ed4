"""
Plant-level capacity factor report from EIA generator records.

Capacity factor = generation / (nameplate capacity x hours) x 100,
using a 720-hour (30-day) month. The EIA capacity inventory carries no
generation figures, so plants without a generation value are reported
with capacity_factor = None and data_quality = "insufficient_data".

Data quality per plant:
  complete           generation available, nameplate > 0
  insufficient_data  no generation value
  invalid_data       total nameplate capacity <= 0
"""

import json
import logging
from typing import Iterable, Optional

import pandas as pd

from adapters.normalizer import parse_number, parse_optional_number

logger = logging.getLogger(__name__)

HOURS_IN_MONTH = 720  # 24 hours x 30 days

REPORT_COLUMNS = [
    "plant_id", "plant_name", "capacity_mw", "capacity_factor",
    "calculation_period", "data_quality",
    "net_summer_capacity_mw", "net_winter_capacity_mw", "generators_count",
]


def generator_capacity_factor(
    nameplate_mw: float, generation_mwh: Optional[float] = None,
) -> tuple[Optional[float], str]:
    """Returns (capacity_factor_pct, data_quality)."""
    if nameplate_mw <= 0:
        return None, "invalid_data"
    if generation_mwh is None:
        return None, "insufficient_data"
    return generation_mwh / (nameplate_mw * HOURS_IN_MONTH) * 100, "complete"


def records_to_dataframe(records: Iterable[dict]) -> pd.DataFrame:
    """Flatten raw EIA generator records into typed columns."""
    rows = []
    for r in records:
        if not isinstance(r, dict) or r.get("plantid") is None:
            continue
        rows.append({
            "plant_id": str(r["plantid"]),
            "plant_name": r.get("plantName"),
            "period": r.get("period"),
            "nameplate_mw": parse_number(r.get("nameplate-capacity-mw")),
            "summer_mw": parse_number(r.get("net-summer-capacity-mw")),
            "winter_mw": parse_number(r.get("net-winter-capacity-mw")),
            "generation_mwh": parse_optional_number(r.get("generation")),
        })
    df = pd.DataFrame(
        rows,
        columns=["plant_id", "plant_name", "period", "nameplate_mw",
                 "summer_mw", "winter_mw", "generation_mwh"],
    )
    df["generation_mwh"] = df["generation_mwh"].astype(float)
    return df


def calculate_capacity_factors(records: Iterable[dict]) -> pd.DataFrame:
    """
    Aggregate generators by plant and compute capacity factors.

    Returns a DataFrame with REPORT_COLUMNS, one row per plant, in
    first-seen plant order.
    """
    df = records_to_dataframe(records)
    if df.empty:
        return pd.DataFrame(columns=REPORT_COLUMNS)

    grouped = df.groupby("plant_id", sort=False).agg(
        plant_name=("plant_name", "first"),
        calculation_period=("period", "first"),
        capacity_mw=("nameplate_mw", "sum"),
        net_summer_capacity_mw=("summer_mw", "sum"),
        net_winter_capacity_mw=("winter_mw", "sum"),
        generation_mwh=("generation_mwh", lambda s: s.sum(min_count=1)),
        generators_count=("nameplate_mw", "size"),
    ).reset_index()

    results = grouped.apply(
        lambda row: generator_capacity_factor(
            row["capacity_mw"],
            None if pd.isna(row["generation_mwh"]) else row["generation_mwh"],
        ),
        axis=1,
    )
    grouped["capacity_factor"] = [cf for cf, _ in results]
    grouped["data_quality"] = [quality for _, quality in results]

    # Zero seasonal totals are reported as missing
    for col in ("net_summer_capacity_mw", "net_winter_capacity_mw"):
        grouped[col] = grouped[col].where(grouped[col] > 0)

    counts = grouped["data_quality"].value_counts().to_dict()
    logger.info(f"Capacity factors for {len(grouped)} plants: {counts}")
    return grouped[REPORT_COLUMNS]


def export_to_csv(df: pd.DataFrame) -> str:
    return df.to_csv(index=False, na_rep="N/A")


def export_to_json(df: pd.DataFrame) -> str:
    records = df.astype(object).where(df.notna(), None).to_dict(orient="records")
    return json.dumps(records, indent=2, default=str)
