from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from analytics.config import normalize_chart_options, normalize_table_options
from analytics.dashboard import TABLE_SOURCES, chart_payload, compute_dashboard
from analytics.diagnostics import compute_diagnostics
from analytics.presets import CHART_PRESETS, TABLE_PRESETS, table_config_for
from analytics.tables import build_table
from api.schemas import ChartRequest, DashboardRequest, TableRequest


app = FastAPI(title="Course Analytics API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


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


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _unknown_preset(kind: str, name: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": f"Unknown {kind} preset: {name}", "type": "UnknownPreset"})


@app.get("/meta/presets")
def meta_presets():
    return _json({"charts": sorted(CHART_PRESETS), "tables": sorted(TABLE_PRESETS)})


@app.post("/charts/{preset}")
def chart(preset: str, request: ChartRequest):
    if preset not in CHART_PRESETS:
        return _unknown_preset("chart", preset)
    try:
        config = normalize_chart_options(request.options.model_dump(exclude_none=True), base=CHART_PRESETS[preset])
        return _json(chart_payload(request.rows, config, request.students_total, with_spec=request.vega_lite))
    except Exception as exc:
        logger.exception("chart %s failed", preset)
        return _error(exc)


@app.post("/tables/{preset}")
def table(preset: str, request: TableRequest):
    if preset not in TABLE_PRESETS:
        return _unknown_preset("table", preset)
    try:
        config = normalize_table_options(request.options.model_dump(exclude_none=True), base=table_config_for(preset, request.rows))
        return _json(build_table(request.rows, config).to_dict())
    except Exception as exc:
        logger.exception("table %s failed", preset)
        return _error(exc)


@app.post("/dashboard")
def dashboard(request: DashboardRequest):
    try:
        payload = request.model_dump()
        return _json(compute_dashboard(payload, {"vega_lite": request.vega_lite}))
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(exc)


@app.post("/diagnostics")
def diagnostics(request: DashboardRequest):
    try:
        payload = request.model_dump()
        datasets = {name: payload[section][key] for name, (section, key) in TABLE_SOURCES.items()}
        configs = {name: CHART_PRESETS.get(name, CHART_PRESETS["echo-modules"]) for name in datasets}
        return _json(compute_diagnostics(datasets, configs))
    except Exception as exc:
        logger.exception("diagnostics failed")
        return _error(exc)
