from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .document_parser import parse_document
from .event_extractor import ExtractorConfig
from .formatting import event_labels
from .layout_engine import ConnectorOptions, compute_connectors, compute_order
from .models import (
    ConnectorRequest,
    ConnectorResponse,
    EventStatistics,
    LayoutRequest,
    LayoutResponse,
    ParseRequest,
    ParseResponse,
    SearchRequest,
    SearchResponse,
    StatsRequest,
)
from .search import search_events
from .settings import settings
from .stats import compute_statistics

LOG_LEVEL = getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("timeline_engine.app")
logger.setLevel(LOG_LEVEL)

ALLOWED_ORIGINS = settings.allowed_origins or ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.started_at = datetime.utcnow()
    app.state.settings = settings
    yield


app = FastAPI(
    title=settings.app_title,
    description=settings.app_description,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _uptime_seconds() -> float:
    started_at = getattr(app.state, "started_at", None)
    if not started_at:
        return 0.0
    return max(0.0, (datetime.utcnow() - started_at).total_seconds())


def _ensure_within_limit(text: str) -> None:
    if len(text) > settings.max_input_characters:
        raise HTTPException(
            status_code=400,
            detail=f"Document exceeds the limit of {settings.max_input_characters:,} characters",
        )


def _parse(text: str):
    _ensure_within_limit(text)
    return parse_document(text, ExtractorConfig.from_settings(settings))


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    request.state.request_id = request_id
    start_time = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    if settings.enable_request_logging:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Request completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", str(uuid4()))
    logger.exception(
        "Unhandled server error",
        extra={"request_id": request_id, "path": request.url.path},
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "request_id": request_id,
        },
        headers={"X-Request-ID": request_id},
    )


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "ok",
        "uptime_seconds": round(_uptime_seconds(), 3),
        "version": app.version,
    }


@app.get("/health/live")
async def health_live() -> Dict[str, Any]:
    return {"status": "ok", "uptime_seconds": round(_uptime_seconds(), 3)}


@app.post("/api/parse", response_model=ParseResponse)
async def parse(request: ParseRequest) -> ParseResponse:
    document = _parse(request.text)
    return ParseResponse(
        title=document.title,
        body_offset=document.body_offset,
        events=document.events,
        labels=[event_labels(event) for event in document.events],
        total_events=len(document.events),
        generated_at=datetime.utcnow(),
    )


@app.post("/api/layout", response_model=LayoutResponse)
async def layout(request: LayoutRequest) -> LayoutResponse:
    document = _parse(request.text)
    result = compute_order(document.events, use_lanes=request.use_lanes, today=request.today)
    return LayoutResponse(title=document.title, layout=result, generated_at=datetime.utcnow())


@app.post("/api/connectors", response_model=ConnectorResponse)
async def connectors(request: ConnectorRequest) -> ConnectorResponse:
    document = _parse(request.text)
    result = compute_order(document.events, use_lanes=request.use_lanes, today=request.today)
    if len(request.geometry) != len(result.order):
        raise HTTPException(
            status_code=400,
            detail=f"Expected geometry for {len(result.order)} events, got {len(request.geometry)}",
        )
    connector_layout = compute_connectors(
        result,
        request.geometry,
        ConnectorOptions.from_settings(settings),
    )
    return ConnectorResponse(
        title=document.title,
        layout=result,
        connectors=connector_layout,
        generated_at=datetime.utcnow(),
    )


@app.post("/api/search", response_model=SearchResponse)
async def search(request: SearchRequest) -> SearchResponse:
    document = _parse(request.text)
    results = search_events(
        document.events,
        query=request.query,
        categories=request.categories,
        lanes=request.lanes,
        date_from=request.date_from,
        date_to=request.date_to,
    )
    return SearchResponse(
        query=request.query,
        total_events=len(document.events),
        total_matches=len(results),
        results=results,
        generated_at=datetime.utcnow(),
    )


@app.post("/api/stats", response_model=EventStatistics)
async def stats(request: StatsRequest) -> EventStatistics:
    document = _parse(request.text)
    return compute_statistics(
        document.events,
        today=request.today,
        categories=settings.event_categories,
    )
