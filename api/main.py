from __future__ import annotations

import logging
import math
from functools import lru_cache

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import ErrorResponse, FilterCriteriaModel, MetaOptionsResponse
from devstats.data import TABLE_LIMIT, DashboardSession, load_session, prepare_context
from devstats.filters import DATE_WINDOW_CHOICES, FilterCriteria, normalize_criteria
from devstats.metrics_overview import compute_overview
from devstats.metrics_table import compute_table


app = FastAPI(title="Device Stats Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_session() -> DashboardSession:
    # A failed fetch is cached too; the process stays in the no-data state until restarted.
    return load_session()


def _criteria_from_model(model: FilterCriteriaModel) -> FilterCriteria:
    return normalize_criteria(model.model_dump())


def _error(exc_type: str, message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message, type=exc_type).model_dump())


def _no_data(session: DashboardSession) -> JSONResponse:
    return _error("FetchError", session.error or "Device stats are not available.", status_code=502)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


@app.get("/meta/options")
def meta_options():
    try:
        session = get_session()
        options = session.options
        body = MetaOptionsResponse(
            ok=session.ok,
            error=session.error,
            record_count=int(len(session.records)),
            device_models=options["device_models"],
            android_versions=options["android_versions"],
            date_windows=DATE_WINDOW_CHOICES,
        )
        return _json(body.model_dump())
    except Exception as exc:
        logger.exception("meta_options failed")
        return _error(type(exc).__name__, str(exc))


@app.post("/overview")
def overview(filters: FilterCriteriaModel):
    try:
        session = get_session()
        if not session.ok:
            return _no_data(session)
        f = _criteria_from_model(filters)
        ctx = prepare_context(f, session)
        return _json(compute_overview(f, ctx))
    except Exception as exc:
        logger.exception("overview failed")
        return _error(type(exc).__name__, str(exc))


@app.post("/table")
def table(filters: FilterCriteriaModel, limit: int = Query(default=TABLE_LIMIT, ge=1, le=TABLE_LIMIT)):
    try:
        session = get_session()
        if not session.ok:
            return _no_data(session)
        f = _criteria_from_model(filters)
        ctx = prepare_context(f, session)
        return _json(compute_table(f, ctx, limit=limit))
    except Exception as exc:
        logger.exception("table failed")
        return _error(type(exc).__name__, str(exc))


@app.post("/export")
def export_records(filters: FilterCriteriaModel):
    session = get_session()
    if not session.ok:
        return _no_data(session)
    f = _criteria_from_model(filters)
    ctx = prepare_context(f, session)

    export_df = ctx.get("filtered_records")
    if export_df is None or not hasattr(export_df, "to_csv"):
        export_df = pd.DataFrame()
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": "attachment; filename=device_stats.csv"})
