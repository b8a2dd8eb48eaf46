from __future__ import annotations

from dataclasses import asdict
import logging
import math
from datetime import date

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from library_api.schemas import DashboardFiltersModel, MetaListResponse
from library_core.data import load_library_data
from library_core.filters import DashboardFilters, filter_books, filter_transactions, normalize_filters
from library_core.metrics_analytics import compute_analytics
from library_core.metrics_dashboard import compute_dashboard
from library_core.records import format_date
from library_core.report import (
    availability_status,
    build_overdue_csv,
    build_report,
    overdue_csv_filename,
    report_bytes,
    report_filename,
    transaction_status,
)


app = FastAPI(title="Library Reporting API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    return normalize_filters(model.model_dump())


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
                date: format_date,
            },
        )
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/files")
def meta_files():
    try:
        data = load_library_data()
        return _json(MetaListResponse(values=list(data.files)))
    except Exception as exc:
        logger.exception("meta_files failed")
        return _error(exc)


@app.get("/meta/genres")
def meta_genres():
    try:
        data = load_library_data()
        return _json(MetaListResponse(values=data.genres()))
    except Exception as exc:
        logger.exception("meta_genres failed")
        return _error(exc)


@app.post("/dashboard")
def dashboard(filters: DashboardFiltersModel):
    try:
        data = load_library_data()
        return _json(compute_dashboard(_filters_from_model(filters), data))
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(exc)


@app.post("/analytics")
def analytics(filters: DashboardFiltersModel):
    try:
        data = load_library_data()
        return _json(compute_analytics(_filters_from_model(filters), data))
    except Exception as exc:
        logger.exception("analytics failed")
        return _error(exc)


@app.post("/books")
def books(filters: DashboardFiltersModel):
    try:
        data = load_library_data()
        f = _filters_from_model(filters)
        rows = [{**asdict(b), "status": availability_status(b)} for b in filter_books(data.books, f.book_query)]
        return _json({"filters": asdict(f), "books": rows})
    except Exception as exc:
        logger.exception("books failed")
        return _error(exc)


@app.post("/transactions")
def transactions(filters: DashboardFiltersModel):
    try:
        data = load_library_data()
        f = _filters_from_model(filters)
        matched = filter_transactions(data.transactions, data.books, data.users, f.transaction_query, f.status)
        rows = [{**asdict(t), "status": transaction_status(t)} for t in matched]
        return _json({"filters": asdict(f), "transactions": rows})
    except Exception as exc:
        logger.exception("transactions failed")
        return _error(exc)


@app.post("/export/report")
def export_report(filters: DashboardFiltersModel):
    try:
        data = load_library_data()
        f = _filters_from_model(filters)
        content = report_bytes(build_report(data.books, data.users, data.transactions, options=f.options))
    except Exception as exc:
        logger.exception("export_report failed")
        return _error(exc)
    filename = report_filename(f.options)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@app.post("/export/overdue")
def export_overdue(filters: DashboardFiltersModel):
    try:
        data = load_library_data()
        f = _filters_from_model(filters)
        csv_text = build_overdue_csv(data.transactions, data.books, data.users, options=f.options)
    except Exception as exc:
        logger.exception("export_overdue failed")
        return _error(exc)
    filename = overdue_csv_filename(f.options)
    return Response(
        content=csv_text.encode("utf-8"),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
