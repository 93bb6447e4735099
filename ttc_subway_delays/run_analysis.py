"""
run_analysis.py

End-to-end batch pipeline:
1. Load the raw subway delay file (local, downloaded, or simulated).
2. Clean column names and recode line codes; write the cleaned records
   to data/processed (read by the API).
3. Build the report tables.
4. Print them to the console and optionally export them as CSV.

Recommended:
    python -m ttc_subway_delays.run_analysis --input data/raw/ttc-subway-delay-data-2022.xlsx
    python -m ttc_subway_delays.run_analysis --download --year 2022 --out-dir outputs
    python -m ttc_subway_delays.run_analysis --simulate --n-rows 500 --seed 7

A table with no qualifying rows is printed as "no data"; the rest of the
report still runs.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from ttc_subway_delays.cleaning import clean_delay_records
from ttc_subway_delays.config import (
    CLEANED_DELAYS_CSV,
    DEFAULT_YEAR,
    TOP_STATIONS_K,
    configure_logging,
)
from ttc_subway_delays.delay_features import DerivedTable, build_line_summary, build_report_tables
from ttc_subway_delays.delay_ingestion import load_raw_delays, write_cleaned_delays
from ttc_subway_delays.errors import DelayAnalysisError
from ttc_subway_delays.simulation import simulate_raw_delays

LOGGER = logging.getLogger("run_analysis")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="TTC subway delay report tables.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--input", type=Path, help="Raw delay file (.csv or .xlsx).")
    source.add_argument(
        "--download",
        action="store_true",
        help="Fetch the raw file from Toronto Open Data if it is not in data/raw.",
    )
    source.add_argument(
        "--simulate", action="store_true", help="Use simulated delay records instead of real data."
    )
    parser.add_argument("--year", type=int, default=DEFAULT_YEAR, help="Dataset year.")
    parser.add_argument("--n-rows", type=int, default=200, help="Rows to simulate.")
    parser.add_argument("--seed", type=int, default=None, help="Simulation seed.")
    parser.add_argument(
        "--top-k", type=int, default=TOP_STATIONS_K, help="Stations in the ranking table."
    )
    parser.add_argument(
        "--out-dir", type=Path, default=None, help="Write cleaned records and tables as CSV here."
    )
    parser.add_argument(
        "--cleaned-csv",
        type=Path,
        default=CLEANED_DELAYS_CSV,
        help="Where to write the cleaned records (the API reads this file).",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, ...).")
    return parser.parse_args(argv)


def format_table(table: DerivedTable) -> str:
    header = f"=== {table.title} ==="
    if not table.ok:
        return f"{header}\nno data ({table.error})"
    return f"{header}\n{table.frame.to_string(index=False)}"


def export_tables(tables: dict[str, DerivedTable], out_dir: Path) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for name, table in tables.items():
        if not table.ok:
            LOGGER.info("Skipping export of %s: no data", name)
            continue
        path = out_dir / f"{name}.csv"
        table.frame.to_csv(path, index=False)
        written.append(path)
    return written


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(getattr(logging, str(args.log_level).upper(), logging.INFO))

    # 1. Load
    try:
        if args.simulate:
            LOGGER.info("Simulating %d delay records (seed=%s)", args.n_rows, args.seed)
            raw = simulate_raw_delays(n=args.n_rows, seed=args.seed, year=args.year)
        else:
            raw = load_raw_delays(path=args.input, year=args.year, download=args.download)

        # 2. Clean
        delays = clean_delay_records(raw)
        write_cleaned_delays(delays, args.cleaned_csv)

        # 3. Aggregate
        tables = build_report_tables(delays, k=args.top_k)
        summary = build_line_summary(delays)
    except DelayAnalysisError as exc:
        LOGGER.error("%s", exc)
        return 1

    # 4. Present
    print(f"Delay records: {len(delays)}\n")
    for table in tables.values():
        print(format_table(table))
        print()

    print("=== Line summary ===")
    print(summary.to_string(index=False))

    if args.out_dir is not None:
        write_cleaned_delays(delays, args.out_dir / "cleaned_delays.csv")
        written = export_tables(tables, args.out_dir)
        summary.to_csv(args.out_dir / "line_summary.csv", index=False)
        LOGGER.info("Exported %d tables to %s", len(written), args.out_dir)

    missing = [name for name, table in tables.items() if not table.ok]
    if missing:
        LOGGER.warning("Tables without data: %s", ", ".join(missing))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
