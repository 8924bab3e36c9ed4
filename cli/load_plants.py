"""
Power Plant Ingestion CLI.

Usage:
  python -m cli.load_plants
  python -m cli.load_plants --source canada_large --source eia_generators
  python -m cli.load_plants --force --output data/facilities.csv
  python -m cli.load_plants --no-cache
  python -m cli.load_plants --list-sources
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.registry import list_sources, load_source_config, load_source_configs
from adapters.source_fetcher import SourceFetcher
from app.cache import get_default_cache
from core.ingestion import load_all_facilities
from core.reporting import facilities_to_dataframe, summarize_by_source

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-7s %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Load, normalize and aggregate power plant sources",
    )
    parser.add_argument(
        "--source", action="append",
        help="Source id to load (repeatable; default: all enabled sources)",
    )
    parser.add_argument(
        "--force", action="store_true", help="Ignore cached facilities",
    )
    parser.add_argument(
        "--no-cache", action="store_true", help="Do not read or write the cache",
    )
    parser.add_argument(
        "--output", type=Path, help="Write facilities to this CSV path",
    )
    parser.add_argument(
        "--list-sources", action="store_true", help="List configured sources",
    )
    parser.add_argument(
        "--data-dir", type=Path, default=None,
        help="Directory holding local source files (default: DATA_DIR)",
    )
    args = parser.parse_args()

    if args.list_sources:
        _print_source_list()
        return

    try:
        configs = load_source_configs(args.source)
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)

    cache = None if args.no_cache else get_default_cache()
    facilities = load_all_facilities(
        configs=configs,
        fetcher=SourceFetcher(data_dir=args.data_dir),
        cache=cache,
        force=args.force,
    )

    df = facilities_to_dataframe(facilities)
    summary = summarize_by_source(df)

    print(f"\n{'='*60}")
    print(f"{'Country':<8} {'Source':<12} {'Facilities':>10} {'Total MW':>14}")
    print(f"{'-'*60}")
    for row in summary.itertuples(index=False):
        print(f"{row.country:<8} {row.source:<12} {row.facilities:>10} {row.total_mw:>14,.1f}")
    print(f"{'='*60}")
    print(f"Total: {len(df)} facilities, {df['output_mw'].sum():,.1f} MW\n")

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(args.output, index=False)
        logger.info(f"Wrote {len(df)} facilities to {args.output}")


def _print_source_list():
    print(f"\n{'Source':<20} {'Type':<8} {'Enabled':<8} Name")
    print("-" * 70)
    for source_id in list_sources():
        cfg = load_source_config(source_id)
        print(f"{source_id:<20} {cfg.source_type:<8} {str(cfg.enabled):<8} {cfg.source_name}")
    print()


if __name__ == "__main__":
    main()
