"""
FastAPI application: TTC Subway Delay API

Purpose:
- Serve the delay report tables as JSON records for whatever renders the report.

Data:
- Cleaned records are passed to create_app(), or read from the cleaned CSV
  written by run_analysis on first request.
"""
from __future__ import annotations

from typing import Optional

import pandas as pd
from fastapi import FastAPI

from .routes import delays


def create_app(records: Optional[pd.DataFrame] = None) -> FastAPI:
    app = FastAPI(title="TTC Subway Delay API")
    app.state.delays = records
    # every route lives under /api
    app.include_router(delays.router, prefix="/api")
    return app


app = create_app()
