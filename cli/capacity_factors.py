"""
EIA capacity factor report.

Usage:
  python -m cli.capacity_factors --input data/3.json
  python -m cli.capacity_factors --input data/3.json --format json --output cf.json
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.capacity_factor import calculate_capacity_factors, export_to_csv, export_to_json
from core.streaming_parser import StreamStats, iter_json_array

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-7s %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _read_chunks(path: Path, chunk_size: int = 64 * 1024):
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            yield chunk


def main():
    parser = argparse.ArgumentParser(description="Compute EIA plant capacity factors")
    parser.add_argument("--input", type=Path, required=True, help="EIA generator JSON")
    parser.add_argument(
        "--array-path", default="response.data",
        help="Dotted key path to the record array (default: response.data; '' for a bare array)",
    )
    parser.add_argument("--format", choices=["csv", "json"], default="csv")
    parser.add_argument("--output", type=Path, help="Output path (default: stdout)")
    args = parser.parse_args()

    stats = StreamStats()
    array_path = [key for key in args.array_path.split(".") if key]
    records = iter_json_array(_read_chunks(args.input), stats=stats, array_path=array_path)
    df = calculate_capacity_factors(records)
    logger.info(f"Read {stats.items_parsed} generator records ({stats.items_skipped} skipped)")

    text = export_to_csv(df) if args.format == "csv" else export_to_json(df)
    if args.output:
        args.output.write_text(text)
        logger.info(f"Wrote {len(df)} plants to {args.output}")
    else:
        print(text)


if __name__ == "__main__":
    main()
