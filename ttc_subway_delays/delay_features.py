"""
delay_features.py

Aggregate cleaned subway delay records into the tables used by the report.

Every builder takes the output of cleaning.clean_delay_records(), leaves it
untouched and returns a new DataFrame. Builders raise EmptyInputError when
nothing is left to aggregate after filtering.

Filters differ per table and are intentional:
    line mean / station ranking / line mode   min_delay > 0
    line counts                               min_delay > 1
    day-of-week mean                          no filter (zero delays count)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial

import numpy as np
import pandas as pd

from ttc_subway_delays.config import (
    CANONICAL_LINES,
    COUNT_DELAY_THRESHOLD,
    DAY_ORDER,
    MEAN_DELAY_THRESHOLD,
    ROUND_DECIMALS,
    TOP_STATIONS_K,
)
from ttc_subway_delays.errors import EmptyInputError, SchemaError, UndefinedModeError

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------


def _require(df: pd.DataFrame, cols: list[str]) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise SchemaError(f"missing required columns: {missing}")


def _with_minutes(df: pd.DataFrame) -> pd.DataFrame:
    d = df.copy()
    d["min_delay"] = pd.to_numeric(d["min_delay"], errors="coerce").astype("float64")
    return d


def _delays_above(df: pd.DataFrame, threshold: float) -> pd.DataFrame:
    """
    Rows with min_delay strictly greater than threshold. Missing minutes
    never pass.
    """
    d = _with_minutes(df)
    return d[d["min_delay"] > threshold]


def _on_canonical_lines(d: pd.DataFrame) -> pd.DataFrame:
    # drops blanks, "YU/BD" and any other code that was not recoded
    return d[d["line"].isin(CANONICAL_LINES)]


def _line_delays(df: pd.DataFrame, line: str) -> pd.Series:
    d = _delays_above(df, MEAN_DELAY_THRESHOLD)
    return d.loc[d["line"].isin([line]), "min_delay"]


# ---------------------------------------------------------------------
# Per-line tables
# ---------------------------------------------------------------------


def build_line_mean_delay(delays: pd.DataFrame) -> pd.DataFrame:
    """
    Mean delay per canonical line, over delays > 0 minutes.

    Returns columns:
        line
        n_delays
        mean_delay_minutes   (rounded to 2 dp)
    sorted by line name.
    """
    _require(delays, ["line", "min_delay"])

    d = _on_canonical_lines(_delays_above(delays, MEAN_DELAY_THRESHOLD))
    if d.empty:
        raise EmptyInputError("no positive delays on any subway line")

    agg = (
        d.groupby("line")
        .agg(
            n_delays=("min_delay", "count"),
            mean_delay_minutes=("min_delay", "mean"),
        )
        .reset_index()
    )
    agg["mean_delay_minutes"] = agg["mean_delay_minutes"].round(ROUND_DECIMALS)
    agg["line"] = agg["line"].astype("string")

    return agg.sort_values("line").reset_index(drop=True)


def mean_delay_for_line(delays: pd.DataFrame, line: str) -> float:
    """Mean of positive delays on one line, rounded to 2 dp."""
    _require(delays, ["line", "min_delay"])
    s = _line_delays(delays, line)
    if s.empty:
        raise EmptyInputError(f"no positive delays for {line!r}")
    return round(float(s.mean()), ROUND_DECIMALS)


def build_line_delay_counts(delays: pd.DataFrame) -> pd.DataFrame:
    """
    Number of delays longer than one minute per canonical line, followed
    by a "Total" row.

    Returns columns:
        line
        n_delays
    """
    _require(delays, ["line", "min_delay"])

    d = _on_canonical_lines(_delays_above(delays, COUNT_DELAY_THRESHOLD))
    if d.empty:
        raise EmptyInputError("no delays longer than one minute on any subway line")

    counts = (
        d.groupby("line")
        .size()
        .rename("n_delays")
        .reset_index()
        .sort_values("line")
    )
    counts["line"] = counts["line"].astype("string")

    total = pd.DataFrame({"line": ["Total"], "n_delays": [int(counts["n_delays"].sum())]})
    total["line"] = total["line"].astype("string")

    return pd.concat([counts, total], ignore_index=True)


def mode_delay_for_line(delays: pd.DataFrame, line: str) -> float:
    """
    Most frequent positive delay on one line.

    Ties go to the value seen first in record order, so [3, 5, 3, 5]
    gives 3. Raises UndefinedModeError if the line has no positive delays.
    """
    _require(delays, ["line", "min_delay"])
    s = _line_delays(delays, line)
    if s.empty:
        raise UndefinedModeError(line)

    # sort=False keeps groups in order of first appearance; idxmax takes the first max
    counts = s.groupby(s, sort=False).size()
    return float(counts.idxmax())


def build_line_mode_table(delays: pd.DataFrame) -> pd.DataFrame:
    """
    Mode of positive delays for each of the four canonical lines.

    Lines without positive delays stay in the table with has_data=False
    and an NA mode.

    Returns columns:
        line
        n_delays
        mode_delay_minutes
        has_data
    """
    _require(delays, ["line", "min_delay"])

    rows = []
    for line in CANONICAL_LINES:
        try:
            mode = mode_delay_for_line(delays, line)
        except UndefinedModeError as exc:
            LOGGER.warning("%s", exc)
            rows.append(
                {"line": line, "n_delays": 0, "mode_delay_minutes": pd.NA, "has_data": False}
            )
            continue
        rows.append(
            {
                "line": line,
                "n_delays": int(_line_delays(delays, line).size),
                "mode_delay_minutes": mode,
                "has_data": True,
            }
        )

    out = pd.DataFrame(rows)
    if not out["has_data"].any():
        raise EmptyInputError("no positive delays on any subway line")

    out["line"] = out["line"].astype("string")
    out["mode_delay_minutes"] = out["mode_delay_minutes"].astype("Float64")
    return out


def build_line_summary(delays: pd.DataFrame) -> pd.DataFrame:
    """
    Mean and mode side by side for each canonical line; status is
    "no data" where the line has no positive delays.
    """
    rows = []
    for line in CANONICAL_LINES:
        try:
            mean = mean_delay_for_line(delays, line)
            mode = mode_delay_for_line(delays, line)
        except EmptyInputError:
            rows.append(
                {
                    "line": line,
                    "mean_delay_minutes": pd.NA,
                    "mode_delay_minutes": pd.NA,
                    "status": "no data",
                }
            )
            continue
        rows.append(
            {
                "line": line,
                "mean_delay_minutes": mean,
                "mode_delay_minutes": mode,
                "status": "ok",
            }
        )

    out = pd.DataFrame(rows)
    out["mean_delay_minutes"] = out["mean_delay_minutes"].astype("Float64")
    out["mode_delay_minutes"] = out["mode_delay_minutes"].astype("Float64")
    return out


# ---------------------------------------------------------------------
# Stations
# ---------------------------------------------------------------------


def build_station_ranking(delays: pd.DataFrame, k: int = TOP_STATIONS_K) -> pd.DataFrame:
    """
    Top-k (station, line, bound) groups by number of positive delays.

    Groups are enumerated in order of first appearance and the sort is
    stable, so tied groups keep that order. A missing bound is its own
    group.

    Output columns:
        rank                 (1..k)
        station
        line
        bound
        n_delays
        mean_delay_minutes   (rounded to 2 dp)
    """
    _require(delays, ["station", "line", "bound", "min_delay"])

    d = _delays_above(delays, MEAN_DELAY_THRESHOLD)
    if d.empty:
        raise EmptyInputError("no positive delays to rank stations by")

    agg = (
        d.groupby(["station", "line", "bound"], sort=False, dropna=False)
        .agg(
            n_delays=("min_delay", "count"),
            mean_delay_minutes=("min_delay", "mean"),
        )
        .reset_index()
    )
    agg["mean_delay_minutes"] = agg["mean_delay_minutes"].round(ROUND_DECIMALS)

    agg = (
        agg.sort_values("n_delays", ascending=False, kind="stable")
        .head(k)
        .reset_index(drop=True)
    )
    agg.insert(0, "rank", np.arange(1, len(agg) + 1))
    return agg


# ---------------------------------------------------------------------
# Day of week
# ---------------------------------------------------------------------


def build_dow_mean_delay(delays: pd.DataFrame) -> pd.DataFrame:
    """
    Mean delay per day of week over ALL records, zero-minute ones included.

    Returns:
      - day_of_week        ('Monday'..'Sunday', unknown labels last)
      - n_records          (rows with a numeric min_delay)
      - mean_delay_minutes (rounded to 2 dp)
    """
    _require(delays, ["day_of_week", "min_delay"])

    d = _with_minutes(delays)
    d = d[d["day_of_week"].notna() & d["min_delay"].notna()]
    if d.empty:
        raise EmptyInputError("no delay records with a day of week")

    prof = (
        d.groupby("day_of_week")
        .agg(
            n_records=("min_delay", "count"),
            mean_delay_minutes=("min_delay", "mean"),
        )
        .reset_index()
    )
    prof["mean_delay_minutes"] = prof["mean_delay_minutes"].round(ROUND_DECIMALS)

    # enforce Monday..Sunday order
    order = {day: i for i, day in enumerate(DAY_ORDER)}
    prof["_order"] = [order.get(day, len(order)) for day in prof["day_of_week"]]
    prof = prof.sort_values(["_order", "day_of_week"]).drop(columns="_order")
    prof["day_of_week"] = prof["day_of_week"].astype("string")

    return prof.reset_index(drop=True)


# ---------------------------------------------------------------------
# Report bundle
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class DerivedTable:
    """One report table, or the reason it could not be computed."""

    name: str
    title: str
    frame: pd.DataFrame | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.frame is not None


def build_report_tables(delays: pd.DataFrame, k: int = TOP_STATIONS_K) -> dict[str, DerivedTable]:
    """
    Build every report table independently.

    A table whose input is empty is returned with error set instead of a
    frame; the other tables are unaffected. Schema problems still raise.
    """
    builders = [
        ("line_mean_delay", "Mean delay by line", build_line_mean_delay),
        ("line_delay_counts", "Delays over one minute by line", build_line_delay_counts),
        ("station_ranking", f"Top {k} stations by delays", partial(build_station_ranking, k=k)),
        ("line_mode_delay", "Most common delay by line", build_line_mode_table),
        ("dow_mean_delay", "Mean delay by day of week", build_dow_mean_delay),
    ]

    tables: dict[str, DerivedTable] = {}
    for name, title, build in builders:
        try:
            frame = build(delays)
        except EmptyInputError as exc:
            LOGGER.warning("No data for %s: %s", name, exc)
            tables[name] = DerivedTable(name=name, title=title, error=str(exc))
            continue
        LOGGER.debug("Built %s (%d rows)", name, len(frame))
        tables[name] = DerivedTable(name=name, title=title, frame=frame)

    return tables
