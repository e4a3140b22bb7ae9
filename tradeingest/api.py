"""FastAPI service for trade ingestion.

Two-step import, mirroring the upload wizard:
    POST /import/preview  - detected market, column mapping, counts, first trades
    POST /import/commit   - the full list of accepted trades

The service never touches storage; callers persist what /import/commit returns.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import __version__
from .config import configure_logging, get_settings
from .parsers.market_knowledge import (
    MAJOR_FOREX_PAIRS,
    MINOR_FOREX_PAIRS,
    OPTIONS_CONTRACT_SIZE,
    iter_definitions,
    market_hint,
)
from .parsers.templates import get_template, list_templates
from .parsers.trade_importer import ImportReport, TradeImporter

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Trade Ingest",
    description="Market-aware trade import and P&L normalization",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


class ImportRequest(BaseModel):
    content: str
    split_mode: Optional[str] = None
    mapping: Optional[dict[str, str]] = None
    now: Optional[datetime] = None


def _run_import(req: ImportRequest) -> tuple[Optional[ImportReport], Optional[JSONResponse]]:
    """Run the importer. Returns (report, None) or (None, error response)."""
    try:
        report = TradeImporter(get_settings()).parse_string(
            req.content,
            mapping_overrides=req.mapping,
            now=req.now,
            split_mode=req.split_mode,
        )
    except ValueError as e:
        logger.warning("[API] Bad import request: %s", e)
        return None, JSONResponse({"error": {"kind": "bad_request", "message": str(e)}}, status_code=400)

    if report.error is not None:
        return None, JSONResponse(
            {"error": report.error.to_dict(), "warnings": report.warnings},
            status_code=422,
        )
    return report, None


# ─── Endpoints ───────────────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, Any]:
    settings = get_settings()
    return {
        "status": "ok",
        "version": __version__,
        "max_rows": settings.max_rows,
        "split_mode": settings.split_mode,
    }


@app.get("/markets")
def markets() -> JSONResponse:
    """Knowledge base summary: one entry per supported market."""
    return JSONResponse({
        "markets": [
            {
                "market": d.market.value,
                "name": d.name,
                "typical_columns": market_hint(d.market),
                "has_expiration": d.has_expiration,
                "has_strike": d.has_strike,
                "notes": d.notes,
            }
            for d in iter_definitions()
        ],
        "options_contract_size": OPTIONS_CONTRACT_SIZE,
        "forex_pairs": {
            "major": list(MAJOR_FOREX_PAIRS),
            "minor": list(MINOR_FOREX_PAIRS),
        },
    })


@app.get("/templates")
def templates() -> JSONResponse:
    return JSONResponse({
        "templates": [{"name": t.name, "label": t.label} for t in list_templates()],
    })


@app.get("/templates/{name}")
def template(name: str) -> JSONResponse:
    try:
        t = get_template(name)
    except KeyError:
        return JSONResponse({"error": f"Template not found: {name}"}, status_code=404)
    return JSONResponse({"name": t.name, "label": t.label, "content": t.content})


@app.post("/import/preview")
def import_preview(req: ImportRequest) -> JSONResponse:
    report, error = _run_import(req)
    if error is not None:
        return error
    return JSONResponse(report.summary(get_settings().preview_size))


@app.post("/import/commit")
def import_commit(req: ImportRequest) -> JSONResponse:
    report, error = _run_import(req)
    if error is not None:
        return error
    logger.info("[API] Committing %d trades", len(report.accepted))
    return JSONResponse(report.to_dict())
