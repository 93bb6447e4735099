"""
delay_ingestion.py

Locate, download and read the raw TTC subway delay file.

Sources, in order of preference:
- an explicit path (.csv / .xlsx)
- data/raw/ttc-subway-delay-data-<year>.(csv|xlsx), or any file in
  data/raw whose name contains "subway" and the year
- the Toronto Open Data CKAN API (opt-in, single attempt)

Raw columns are kept as strings so nothing gets silently cast; typing
happens in cleaning.py.

OUTPUTS
-------
load_raw_delays() -> DataFrame with the provider's own column names:
    Date, Time, Day, Station, Code, Min Delay, Min Gap, Bound, Line, Vehicle
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import urlparse

import pandas as pd
import requests

from ttc_subway_delays.config import (
    CKAN_BASE_URL,
    CLEANED_DELAYS_CSV,
    DATA_RAW,
    DEFAULT_YEAR,
    DELAY_PACKAGE_ID,
    REQUEST_TIMEOUT_S,
    resource_name,
)
from ttc_subway_delays.errors import IngestionError

LOGGER = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xls", ".xlsm"}
CSV_SUFFIXES = {".csv"}


# ---------------------------------------------------------------------
# File readers
# ---------------------------------------------------------------------


def _read_delay_csv(path: Path) -> pd.DataFrame:
    """
    CSV reader: keep all columns as string (so nothing gets silently cast).
    """
    return pd.read_csv(
        path,
        dtype="string",
        encoding="utf-8-sig",
        low_memory=False,
    )


def _read_delay_excel(path: Path) -> pd.DataFrame:
    """
    Excel reader: keep all columns as string.
    Requires openpyxl in your environment.
    """
    return pd.read_excel(
        path,
        dtype="string",
        engine="openpyxl",
    )


def read_raw_delays(path: Path | str) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise IngestionError(f"delay file not found: {path}")

    suffix = path.suffix.lower()
    if suffix in CSV_SUFFIXES:
        df = _read_delay_csv(path)
    elif suffix in EXCEL_SUFFIXES:
        df = _read_delay_excel(path)
    else:
        raise IngestionError(f"unsupported delay file type {suffix!r}: {path}")

    LOGGER.info("Read %d raw delay records from %s", len(df), path)
    return df


# ---------------------------------------------------------------------
# Local discovery
# ---------------------------------------------------------------------


def _iter_files(dir_path: Path) -> Iterable[Path]:
    try:
        return sorted(dir_path.iterdir())
    except OSError:
        return []


def _find_first_file_by_keywords(
    dir_path: Path, keywords: list[str], exts: Iterable[str]
) -> Path | None:
    """
    Best-effort discovery when exact filenames don't match.
    Returns the first path whose lowercase filename contains ALL keywords
    and ends with one of the provided extensions.
    """
    kw = [k.lower() for k in keywords]
    extset = {e.lower() for e in exts}
    for p in _iter_files(dir_path):
        name = p.name.lower()
        if all(k in name for k in kw) and any(name.endswith(e) for e in extset):
            return p
    return None


def find_raw_delay_file(year: int = DEFAULT_YEAR, data_dir: Path = DATA_RAW) -> Path | None:
    name = resource_name(year)
    for suffix in [".csv", ".xlsx"]:
        p = data_dir / f"{name}{suffix}"
        if p.exists():
            return p
    return _find_first_file_by_keywords(
        data_dir, ["subway", str(year)], CSV_SUFFIXES | EXCEL_SUFFIXES
    )


# ---------------------------------------------------------------------
# Toronto Open Data
# ---------------------------------------------------------------------


def fetch_package(package_id: str = DELAY_PACKAGE_ID) -> dict:
    """Return the CKAN package metadata (including its resources list)."""
    resp = requests.get(
        f"{CKAN_BASE_URL}/package_show",
        params={"id": package_id},
        timeout=REQUEST_TIMEOUT_S,
    )
    resp.raise_for_status()
    js = resp.json()
    if not js.get("success"):
        message = js.get("error", {}).get("message", "unknown error")
        raise IngestionError(f"CKAN package_show failed for {package_id!r}: {message}")
    return js["result"]


def _pick_resource(package: dict, year: int) -> dict:
    wanted = resource_name(year)
    for res in package.get("resources", []):
        if res.get("name") == wanted:
            return res
    available = [res.get("name") for res in package.get("resources", [])]
    raise IngestionError(f"no resource named {wanted!r} (available: {available})")


def _resource_filename(res: dict) -> str:
    base = Path(urlparse(res.get("url", "")).path).name
    if base and Path(base).suffix:
        return base
    fmt = (res.get("format") or "csv").lower()
    return f"{res['name']}.{fmt}"


def download_delay_resource(year: int = DEFAULT_YEAR, dest_dir: Path = DATA_RAW) -> Path:
    """
    Download the subway delay resource for `year` into dest_dir.

    One attempt only; HTTP errors propagate as requests exceptions.
    """
    res = _pick_resource(fetch_package(), year)
    url = res.get("url")
    if not url:
        raise IngestionError(f"resource {res.get('name')!r} has no download url")

    dest_dir.mkdir(parents=True, exist_ok=True)
    out_path = dest_dir / _resource_filename(res)

    LOGGER.info("Downloading %s -> %s", url, out_path)
    resp = requests.get(url, timeout=REQUEST_TIMEOUT_S)
    resp.raise_for_status()
    out_path.write_bytes(resp.content)

    return out_path


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------


def load_raw_delays(
    path: Path | str | None = None,
    year: int = DEFAULT_YEAR,
    download: bool = False,
    data_dir: Path = DATA_RAW,
) -> pd.DataFrame:
    """
    Read the raw delay table from `path`, or from the file for `year`
    found in data_dir. With download=True a missing file is fetched from
    Toronto Open Data first.
    """
    if path is not None:
        return read_raw_delays(path)

    found = find_raw_delay_file(year, data_dir)
    if found is None and download:
        found = download_delay_resource(year, data_dir)
    if found is None:
        raise IngestionError(
            f"no raw subway delay file for {year} in {data_dir}; pass a path or enable download"
        )
    return read_raw_delays(found)


def write_cleaned_delays(delays: pd.DataFrame, path: Path | str = CLEANED_DELAYS_CSV) -> Path:
    """Write the cleaned records as CSV for the report to pick up."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    delays.to_csv(path, index=False)
    LOGGER.info("Wrote %d cleaned delay records to %s", len(delays), path)
    return path
