from __future__ import annotations

import logging
import math
import os
from pathlib import Path

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import AnalyticsFilterModel, ExportSection, MetaListResponse, StateResponse, UploadModel
from workload.analytics import AnalyticsFailure, AnalyticsResult, compute_analytics, resolve_filter
from workload.data import filter_records, ledger_range, load_ledger, unique_values
from workload.filters import AnalyticsFilter
from workload.metrics_debug import compute_debug
from workload.store import JsonFileStore, UploadCache


app = FastAPI(title="Team Workload API", version="0.1.0")
logger = logging.getLogger(__name__)

STORE_PATH = Path(
    os.environ.get("WORKLOAD_STORE_PATH", str(Path(__file__).resolve().parents[1] / ".workload_store.json"))
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_cache() -> UploadCache:
    return UploadCache(JsonFileStore(STORE_PATH))


def _filters_from_model(model: AnalyticsFilterModel, content: str) -> AnalyticsFilter:
    return resolve_filter(model.model_dump(), content)


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """JSON response where numpy scalars become Python values and NaN/inf become null."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _no_upload() -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "No ledger has been uploaded", "type": "NotFound"})


def _analytics_response(outcome: AnalyticsResult | AnalyticsFailure) -> JSONResponse:
    if isinstance(outcome, AnalyticsFailure):
        return _json(outcome.to_dict(), status_code=422)
    return _json(outcome.to_dict())


@app.get("/state")
def state(cache: UploadCache = Depends(get_cache)):
    stored = cache.load()
    if stored is None:
        return StateResponse(has_upload=False)
    return StateResponse(has_upload=True, file_name=stored.file_name, last_update=stored.last_update)


@app.post("/upload")
def upload(payload: UploadModel, cache: UploadCache = Depends(get_cache)):
    try:
        filters = payload.filters.model_dump()
        outcome = compute_analytics(payload.content, filters)
        if isinstance(outcome, AnalyticsFailure):
            return _analytics_response(outcome)
        result = outcome.to_dict()
        stored = cache.save(payload.content, result, file_name=payload.file_name)
        logger.info("Stored upload %s (%d characters)", payload.file_name or "<unnamed>", len(payload.content))
        return _json({**result, "last_update": stored.last_update})
    except ValueError as exc:
        return _error(400, exc)
    except Exception as exc:
        logger.exception("upload failed")
        return _error(500, exc)


@app.delete("/upload")
def clear_upload(cache: UploadCache = Depends(get_cache)):
    cache.clear()
    return {"cleared": True}


@app.get("/result")
def last_result(cache: UploadCache = Depends(get_cache)):
    stored = cache.load()
    if stored is None or stored.result is None:
        return _no_upload()
    return _json({**stored.result, "last_update": stored.last_update})


@app.post("/analytics")
def analytics(filters: AnalyticsFilterModel, cache: UploadCache = Depends(get_cache)):
    stored = cache.load()
    if stored is None:
        return _no_upload()
    try:
        return _analytics_response(compute_analytics(stored.content, filters.model_dump()))
    except ValueError as exc:
        return _error(400, exc)
    except Exception as exc:
        logger.exception("analytics failed")
        return _error(500, exc)


@app.get("/meta/members", response_model=MetaListResponse)
def meta_members(cache: UploadCache = Depends(get_cache)):
    stored = cache.load()
    if stored is None:
        return MetaListResponse(values=[])
    return MetaListResponse(values=unique_values(load_ledger(stored.content).records, "team_member"))


@app.get("/meta/streams", response_model=MetaListResponse)
def meta_streams(cache: UploadCache = Depends(get_cache)):
    stored = cache.load()
    if stored is None:
        return MetaListResponse(values=[])
    return MetaListResponse(values=unique_values(load_ledger(stored.content).records, "stream"))


@app.get("/meta/range")
def meta_range(cache: UploadCache = Depends(get_cache)):
    stored = cache.load()
    span = ledger_range(load_ledger(stored.content).records) if stored is not None else None
    if span is None:
        return {"start": None, "end": None}
    return {"start": span[0].isoformat(), "end": span[1].isoformat()}


@app.post("/debug")
def debug(filters: AnalyticsFilterModel, cache: UploadCache = Depends(get_cache)):
    stored = cache.load()
    if stored is None:
        return _no_upload()
    try:
        extraction = load_ledger(stored.content)
        f = _filters_from_model(filters, stored.content)
        return _json(compute_debug(f, extraction, filter_records(extraction.records, f)))
    except ValueError as exc:
        return _error(400, exc)
    except Exception as exc:
        logger.exception("debug failed")
        return _error(500, exc)


def _export_frame(result: AnalyticsResult, section: ExportSection) -> pd.DataFrame:
    if section is ExportSection.timeline:
        rows = [
            {"month": b.month, "date": b.month_start.isoformat(), "total_hours": b.total_hours,
             "total_projects": b.total_projects, **b.stream_hours}
            for b in result.timeline
        ]
        return pd.DataFrame(rows).fillna(0.0)
    if section is ExportSection.members:
        return pd.DataFrame(
            [
                {"name": m.name, "total_hours": m.total_hours, "total_projects": m.total_projects,
                 "work_pressure": m.work_pressure, "over_cap": m.over_cap}
                for m in result.members
            ],
            columns=["name", "total_hours", "total_projects", "work_pressure", "over_cap"],
        )
    if section is ExportSection.streams:
        return pd.DataFrame(
            [{"stream": s.stream, "hours": s.hours, "projects": s.projects} for s in result.stream_totals],
            columns=["stream", "hours", "projects"],
        )
    return pd.DataFrame(
        [{"name": p.name, "hours": p.hours, "stream": p.stream, "member": p.member} for p in result.top_projects],
        columns=["name", "hours", "stream", "member"],
    )


@app.post("/export/{section}")
def export_section(
    section: ExportSection,
    filters: AnalyticsFilterModel,
    cache: UploadCache = Depends(get_cache),
):
    stored = cache.load()
    if stored is None:
        return _no_upload()
    try:
        outcome = compute_analytics(stored.content, filters.model_dump())
    except ValueError as exc:
        return _error(400, exc)
    if isinstance(outcome, AnalyticsFailure):
        return _analytics_response(outcome)

    export_df = _export_frame(outcome, section)
    csv_bytes = export_df.to_csv(index=False, sep=";").encode("utf-8")
    return Response(
        content=csv_bytes,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={section.value}.csv"},
    )
