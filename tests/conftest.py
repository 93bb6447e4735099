from __future__ import annotations

import pandas as pd
import pytest

from ttc_subway_delays.cleaning import clean_delay_records

RAW_DEFAULTS = {
    "Date": "2022-01-03",
    "Time": "08:15",
    "Day": "Monday",
    "Station": "UNION STATION",
    "Code": "MUIS",
    "Min Delay": "0",
    "Min Gap": "0",
    "Bound": "N",
    "Line": "YU",
    "Vehicle": "5491",
}


def raw_frame(rows: list[dict]) -> pd.DataFrame:
    """Raw delay rows with provider column names; unspecified fields get defaults."""
    filled = [{**RAW_DEFAULTS, **{k: str(v) for k, v in row.items()}} for row in rows]
    return pd.DataFrame(filled, columns=list(RAW_DEFAULTS)).astype("string")


@pytest.fixture
def make_delays():
    def _make(rows: list[dict]) -> pd.DataFrame:
        return clean_delay_records(raw_frame(rows))

    return _make


@pytest.fixture
def scenario_delays(make_delays) -> pd.DataFrame:
    return make_delays(
        [
            {"Line": "YU", "Min Delay": 3},
            {"Line": "YU", "Min Delay": 3},
            {"Line": "YU", "Min Delay": 5},
            {"Line": "BD", "Min Delay": 0},
        ]
    )
