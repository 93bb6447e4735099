"""
Delay routes: report tables

Purpose:
- Expose the derived delay tables (line means, counts, station ranking,
  line modes, day-of-week means) and the per-line summary as ordered JSON records.
- A table without qualifying rows is returned with `error` set and no rows.

Security:
- Read-only; returns plain values only, no HTML.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import pandas as pd
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from ttc_subway_delays.cleaning import clean_delay_records
from ttc_subway_delays.config import CLEANED_DELAYS_CSV, TOP_STATIONS_K
from ttc_subway_delays.delay_features import (
    DerivedTable,
    build_line_summary,
    build_report_tables,
)
from ttc_subway_delays.delay_ingestion import read_raw_delays
from ttc_subway_delays.errors import DelayAnalysisError

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/delays", tags=["delays"])


class TableOut(BaseModel):
    name: str
    title: str
    columns: List[str] = []
    rows: List[Dict[str, Any]] = []
    error: Optional[str] = None


class LineSummaryOut(BaseModel):
    line: str
    mean_delay_minutes: Optional[float] = None
    mode_delay_minutes: Optional[float] = None
    status: str


def _records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    # to_json turns NA into null and numpy scalars into plain JSON numbers
    return json.loads(frame.to_json(orient="records", date_format="iso"))


def _table_out(table: DerivedTable) -> TableOut:
    if not table.ok:
        return TableOut(name=table.name, title=table.title, error=table.error)
    return TableOut(
        name=table.name,
        title=table.title,
        columns=[str(c) for c in table.frame.columns],
        rows=_records(table.frame),
    )


def get_delays(request: Request) -> pd.DataFrame:
    """Cleaned delay records held by the app, loaded from disk on first use."""
    delays = getattr(request.app.state, "delays", None)
    if delays is None and CLEANED_DELAYS_CSV.exists():
        try:
            delays = clean_delay_records(read_raw_delays(CLEANED_DELAYS_CSV))
        except DelayAnalysisError as exc:
            LOGGER.error("Could not load %s: %s", CLEANED_DELAYS_CSV, exc)
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        request.app.state.delays = delays
    if delays is None:
        raise HTTPException(status_code=503, detail="no delay records loaded")
    return delays


def _tables(delays: pd.DataFrame, k: int) -> Dict[str, DerivedTable]:
    try:
        return build_report_tables(delays, k=k)
    except DelayAnalysisError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.get("/tables", response_model=List[TableOut])
def list_tables(
    k: int = Query(TOP_STATIONS_K, ge=1, le=100),
    delays: pd.DataFrame = Depends(get_delays),
) -> List[TableOut]:
    """Return every report table in report order."""
    return [_table_out(t) for t in _tables(delays, k).values()]


@router.get("/tables/{name}", response_model=TableOut)
def get_table(
    name: str,
    k: int = Query(TOP_STATIONS_K, ge=1, le=100),
    delays: pd.DataFrame = Depends(get_delays),
) -> TableOut:
    tables = _tables(delays, k)
    if name not in tables:
        raise HTTPException(status_code=404, detail=f"unknown table {name!r}")
    return _table_out(tables[name])


@router.get("/lines", response_model=List[LineSummaryOut])
def line_summary(delays: pd.DataFrame = Depends(get_delays)) -> List[LineSummaryOut]:
    """Mean and mode per subway line; "no data" where a line has no positive delays."""
    try:
        summary = build_line_summary(delays)
    except DelayAnalysisError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return [LineSummaryOut(**row) for row in _records(summary)]
