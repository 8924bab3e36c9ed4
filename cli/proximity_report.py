"""
Facility-to-line proximity report.

Lists the power plants within a radius (miles) of submarine cables,
terrestrial links or transmission lines.

Usage:
  python -m cli.proximity_report --radius 10 --wfs
  python -m cli.proximity_report --radius 25 --lines data/links.geojson
  python -m cli.proximity_report --radius 5 --transmission --output near.csv
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.line_sources import (
    load_transmission_lines,
    load_wfs_cable_data,
    parse_infrastructure_geojson,
)
from adapters.source_fetcher import SourceFetcher
from app.cache import get_default_cache
from app.config import settings
from core.ingestion import load_all_facilities
from core.reporting import facilities_to_dataframe
from core.spatial_index import LineIndex, filter_facilities_near_lines

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-7s %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Find power plants near cables and links",
    )
    parser.add_argument(
        "--radius", type=float, default=settings.DEFAULT_PROXIMITY_MILES,
        help="Search radius in miles",
    )
    parser.add_argument("--lines", type=Path, help="Infrastructure GeoJSON file")
    parser.add_argument("--wfs", action="store_true", help="Use ITU WFS submarine cables")
    parser.add_argument(
        "--transmission", action="store_true",
        help="Use HIFLD transmission lines (230kV+)",
    )
    parser.add_argument("--output", type=Path, help="Write matches to this CSV path")
    args = parser.parse_args()

    if not (args.lines or args.wfs or args.transmission):
        parser.error("one of --lines, --wfs or --transmission is required")

    fetcher = SourceFetcher()
    cache = get_default_cache()

    lines = []
    if args.lines:
        with open(args.lines) as f:
            cables, links = parse_infrastructure_geojson(json.load(f))
        lines.extend(cables + links)
    if args.wfs:
        lines.extend(load_wfs_cable_data(fetcher=fetcher, cache=cache))
    if args.transmission:
        lines.extend(load_transmission_lines(fetcher=fetcher))

    facilities = load_all_facilities(fetcher=fetcher, cache=cache)

    start = time.perf_counter()
    index = LineIndex.build(lines)
    near = filter_facilities_near_lines(facilities, lines, args.radius, index=index)
    elapsed = time.perf_counter() - start

    df = facilities_to_dataframe(near)
    print(f"\n{'='*60}")
    print(f"{len(near)} of {len(facilities)} facilities within {args.radius:g} mi "
          f"of {len(lines)} lines ({elapsed:.2f}s)")
    print(f"{'-'*60}")
    for row in df.head(25).itertuples(index=False):
        print(f"{row.name[:36]:<36} {row.country:<3} {row.source:<10} {row.output_display:>10}")
    print(f"{'='*60}\n")

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(args.output, index=False)
        logger.info(f"Wrote {len(df)} facilities to {args.output}")


if __name__ == "__main__":
    main()
