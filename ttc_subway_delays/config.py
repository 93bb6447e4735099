"""
config.py

Shared constants for the TTC subway delay report: data locations,
the Toronto Open Data endpoint, the line lookup and the delay thresholds.
"""

from __future__ import annotations

import logging
from pathlib import Path

# ---------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
if not DATA_DIR.exists():
    # Fallback if repository uses capitalized folder name
    alt = PROJECT_ROOT / "Data"
    if alt.exists():
        DATA_DIR = alt

DATA_RAW = DATA_DIR / "raw"
DATA_PROCESSED = DATA_DIR / "processed"

CLEANED_DELAYS_CSV = DATA_PROCESSED / "ttc-delay-data-2022.csv"

# ---------------------------------------------------------------------
# Toronto Open Data (CKAN)
# ---------------------------------------------------------------------

CKAN_BASE_URL = "https://ckan0.cf.opendata.inter.prod-toronto.ca/api/3/action"
DELAY_PACKAGE_ID = "ttc-subway-delay-data"
DEFAULT_YEAR = 2022
REQUEST_TIMEOUT_S = 60


def resource_name(year: int) -> str:
    return f"{DELAY_PACKAGE_ID}-{year}"


# ---------------------------------------------------------------------
# Line lookup
# ---------------------------------------------------------------------

LINE_01 = "Line 01 Yellow"
LINE_02 = "Line 02 Green"
LINE_03 = "Line 03 Scarborough"
LINE_04 = "Line 04 Sheppard"

# raw TTC line code -> canonical line name
LINE_NAMES: dict[str, str] = {
    "BD": LINE_02,
    "SHP": LINE_04,
    "SRT": LINE_03,
    "YU": LINE_01,
}

CANONICAL_LINES: tuple[str, ...] = tuple(sorted(LINE_NAMES.values()))

# Raw composite code for incidents spanning Yonge-University and Bloor-Danforth
COMPOSITE_LINE = "YU/BD"

# ---------------------------------------------------------------------
# Aggregation settings
# ---------------------------------------------------------------------

# min_delay must be strictly greater than these
MEAN_DELAY_THRESHOLD = 0
COUNT_DELAY_THRESHOLD = 1

TOP_STATIONS_K = 10
ROUND_DECIMALS = 2

DAY_ORDER = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
