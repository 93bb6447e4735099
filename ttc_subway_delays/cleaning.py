"""
cleaning.py

Turn raw TTC subway delay rows into the canonical record set used by
every aggregation in delay_features.py.

Steps (clean_delay_records):
- normalize column names ("Min Delay" -> "min_delay")
- coerce numeric / date columns, blank text -> NA (line excepted), "day" -> "day_of_week"
- recode raw line codes ("YU", "BD", ...) into canonical line names

No step drops rows.
"""

from __future__ import annotations

import logging
import re

import pandas as pd

from ttc_subway_delays.config import LINE_NAMES
from ttc_subway_delays.errors import SchemaError

LOGGER = logging.getLogger(__name__)

# "line" is left as-is so recoding only ever sees the raw code
TEXT_COLUMNS = ["station", "bound", "code", "day_of_week"]
NUMERIC_COLUMNS = ["min_delay", "min_gap"]

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%Y/%m/%d",
]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


# ---------------------------------------------------------------------
# Column names
# ---------------------------------------------------------------------


def clean_column_name(name) -> str:
    """
    Convert a single column name to snake_case, lowercase, no punctuation.

        "Min Delay" -> "min_delay"
        "MinGap"    -> "min_gap"
        " Day "     -> "day"

    Names that contain no letters or digits become "x".
    """
    s = _CAMEL_BOUNDARY.sub("_", str(name).strip())
    s = _NON_ALNUM.sub("_", s.lower()).strip("_")
    return s or "x"


def normalize_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """
    Return a copy of df with every column name cleaned.

    Raises SchemaError if two input columns end up with the same name,
    e.g. "Min Delay" and "min_delay".
    """
    sources: dict[str, list[str]] = {}
    for col in df.columns:
        sources.setdefault(clean_column_name(col), []).append(str(col))

    clashes = {name: cols for name, cols in sources.items() if len(cols) > 1}
    if clashes:
        detail = "; ".join(f"{cols} -> {name!r}" for name, cols in clashes.items())
        raise SchemaError(f"ambiguous column names after normalization: {detail}")

    out = df.copy()
    out.columns = [clean_column_name(c) for c in df.columns]
    return out


# ---------------------------------------------------------------------
# Line recoding
# ---------------------------------------------------------------------


def recode_lines(df: pd.DataFrame) -> pd.DataFrame:
    """
    Replace raw line codes with canonical line names (config.LINE_NAMES).

    Only exact matches are recoded. Anything else, including composite
    codes like "YU/BD", blanks and NA, is kept as-is.
    """
    if "line" not in df.columns:
        raise SchemaError(f"missing required column 'line' (have {list(df.columns)})")

    out = df.copy()
    s = out["line"]
    out["line"] = s.map(LINE_NAMES).where(s.isin(list(LINE_NAMES)), s).astype(s.dtype)
    return out


# ---------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------


def _try_parse_dates(series: pd.Series) -> pd.Series:
    """
    Parse with each of DATE_FORMATS and keep the parse with the fewest NaT.
    """
    s = series.astype("string").str.strip()
    best = None
    best_non_null = -1
    for fmt in DATE_FORMATS:
        parsed = pd.to_datetime(s, format=fmt, errors="coerce")
        non_null = int(parsed.notna().sum())
        if non_null > best_non_null:
            best_non_null = non_null
            best = parsed
    return best


def coerce_delay_types(df: pd.DataFrame) -> pd.DataFrame:
    """
    Give the normalized columns usable dtypes.

    - "day" is renamed to "day_of_week"
    - min_delay / min_gap -> numeric; unparseable values become NA, not 0
    - date -> datetime64
    - text columns other than line are stripped and blanks become NA
    - line is only cast to string; padded or blank codes are kept verbatim
    """
    out = df.copy()

    if "day" in out.columns and "day_of_week" not in out.columns:
        out = out.rename(columns={"day": "day_of_week"})

    for c in NUMERIC_COLUMNS:
        if c in out.columns:
            out[c] = pd.to_numeric(out[c], errors="coerce").astype("float64")

    if "date" in out.columns:
        out["date"] = _try_parse_dates(out["date"])

    for c in TEXT_COLUMNS:
        if c in out.columns:
            out[c] = out[c].astype("string").str.strip().where(lambda s: s != "", pd.NA)

    if "line" in out.columns:
        out["line"] = out["line"].astype("string")

    return out


def clean_delay_records(df: pd.DataFrame) -> pd.DataFrame:
    """
    Full cleaning pass over raw delay rows. Returns a new frame with the
    same number of rows as df.
    """
    out = normalize_column_names(df)
    out = coerce_delay_types(out)
    out = recode_lines(out)

    unmapped = out["line"].dropna()
    unmapped = unmapped[~unmapped.isin(list(LINE_NAMES.values()))]
    if not unmapped.empty:
        LOGGER.info(
            "%d rows keep a non-canonical line value (%s)",
            len(unmapped),
            ", ".join(sorted(unmapped.unique().astype(str))[:5]),
        )
    LOGGER.debug("Cleaned %d delay records, columns=%s", len(out), list(out.columns))
    return out
