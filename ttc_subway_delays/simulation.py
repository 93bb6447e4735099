"""
simulation.py

Generate fake raw subway delay rows with the same columns as the Toronto
Open Data file, so the pipeline can run without downloading anything.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from ttc_subway_delays.config import COMPOSITE_LINE, DAY_ORDER, LINE_NAMES

RAW_COLUMNS = [
    "Date",
    "Time",
    "Day",
    "Station",
    "Code",
    "Min Delay",
    "Min Gap",
    "Bound",
    "Line",
    "Vehicle",
]

STATIONS = [
    "BLOOR STATION",
    "KENNEDY BD STATION",
    "FINCH STATION",
    "SHEPPARD STATION",
    "UNION STATION",
    "MCCOWAN STATION",
    "DON MILLS STATION",
]

CODES = ["MUIS", "MUPAA", "SUDP", "MUATC", "TUSC", "PUOPO"]
BOUNDS = ["N", "S", "E", "W", ""]


def simulate_raw_delays(
    n: int = 10,
    seed: int | None = None,
    year: int = 2022,
    zero_delay_share: float = 0.4,
) -> pd.DataFrame:
    """
    Return n fake raw delay rows.

    Line codes include the composite "YU/BD" and blanks as the real file
    does. About zero_delay_share of the rows have Min Delay 0; the rest
    are 1..5 minutes.
    """
    rng = np.random.default_rng(seed)

    start = pd.Timestamp(year=year, month=1, day=1)
    offsets = rng.integers(0, 365, size=n)
    dates = start + pd.to_timedelta(offsets, unit="D")
    minutes = rng.integers(0, 24 * 60, size=n)

    delay = rng.integers(1, 6, size=n)
    delay[rng.random(n) < zero_delay_share] = 0
    gap = np.where(delay > 0, delay + rng.integers(3, 8, size=n), 0)

    line_codes = list(LINE_NAMES) + [COMPOSITE_LINE, ""]

    sim = pd.DataFrame(
        {
            "Date": dates.strftime("%Y-%m-%d"),
            "Time": [f"{m // 60:02d}:{m % 60:02d}" for m in minutes],
            "Day": [DAY_ORDER[d.dayofweek] for d in dates],
            "Station": rng.choice(STATIONS, size=n),
            "Code": rng.choice(CODES, size=n),
            "Min Delay": delay.astype(str),
            "Min Gap": gap.astype(str),
            "Bound": rng.choice(BOUNDS, size=n),
            "Line": rng.choice(line_codes, size=n, p=[0.35, 0.05, 0.05, 0.45, 0.05, 0.05]),
            "Vehicle": rng.integers(5000, 6200, size=n).astype(str),
        }
    )

    return sim[RAW_COLUMNS].astype("string")
