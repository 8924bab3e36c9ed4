"""Tabular views of facility lists for CLI output and CSV export."""

from typing import Iterable

import pandas as pd

from .entities import Facility

FACILITY_COLUMNS = [
    "id", "name", "source", "country", "output_mw", "output_display",
    "longitude", "latitude", "capacity_factor",
    "net_summer_capacity_mw", "net_winter_capacity_mw",
]


def facilities_to_dataframe(facilities: Iterable[Facility]) -> pd.DataFrame:
    rows = [
        {
            "id": f.id,
            "name": f.name,
            "source": f.source,
            "country": f.country,
            "output_mw": f.output,
            "output_display": f.output_display,
            "longitude": f.longitude,
            "latitude": f.latitude,
            "capacity_factor": f.capacity_factor,
            "net_summer_capacity_mw": f.net_summer_capacity,
            "net_winter_capacity_mw": f.net_winter_capacity,
        }
        for f in facilities
    ]
    return pd.DataFrame(rows, columns=FACILITY_COLUMNS)


def summarize_by_source(df: pd.DataFrame) -> pd.DataFrame:
    """Facility count and total MW per country and energy source."""
    if df.empty:
        return pd.DataFrame(columns=["country", "source", "facilities", "total_mw"])
    return (
        df.groupby(["country", "source"])
        .agg(facilities=("id", "count"), total_mw=("output_mw", "sum"))
        .reset_index()
        .sort_values("total_mw", ascending=False)
        .reset_index(drop=True)
    )
