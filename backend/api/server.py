"""
TimeArc: API Server
===================

Thin HTTP adapter over the TimeArc engine. Every mutating endpoint maps
to exactly one engine command; every response is rebuilt from a fresh
projection.

Endpoints:
- POST /api/v1/dataset        -> Replace the dataset with inline rows
- POST /api/v1/dataset/fetch  -> Replace the dataset from a URL
- POST /api/v1/filter         -> Set PI name / PI count filters
- POST /api/v1/viewport       -> Zoom, pan, resize
- POST /api/v1/reset          -> Reset filters and/or viewport
- GET  /api/v1/view           -> Current positioned view
- GET  /api/v1/pis/{name}     -> PI hover summary
- GET  /api/v1/audit          -> Audit report

Usage:
    uvicorn backend.api.server:app --reload
"""
import os
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..contracts.commands import DatasetLoaded, FilterChanged, ViewportChanged, ViewReset
from ..contracts.events import AuditEventType, AuditSeverity
from ..engine import TimeArcConfig, TimeArcEngine, ViewSnapshot, pi_count_options
from ingestion.contracts import LoadStatus
from ingestion.fetcher import FetcherConfig
from frontend.interaction.temporal import PICountControlState, ZoomControlState
from frontend.presentation.viewmodels import pi_summary
from frontend.visualization.timeline import build_timeline_view
from .mapper import map_dataset, map_snapshot

# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

# Global Engine Instance
engine_instance: Optional[TimeArcEngine] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the engine on startup; optionally load the default dataset."""
    global engine_instance

    dataset_url = os.environ.get("TIMEARC_DATASET_URL")
    config = TimeArcConfig(fetcher=FetcherConfig(default_dataset_url=dataset_url))
    engine_instance = TimeArcEngine(config)
    print("[*] TimeArc engine initialized.")

    if dataset_url:
        print(f"[*] Loading default dataset from: {dataset_url}")
        result = await engine_instance.load_url(dataset_url)
        if result.is_success:
            print(f"[*] Loaded {len(result.rows)} rows.")
        else:
            print(f"[!] FAILED to load default dataset: {result.error.message if result.error else result.status.value}")

    yield

    print("[*] Shutting down TimeArc engine.")
    engine_instance = None


app = FastAPI(
    title="TimeArc API",
    version="1.0.0",
    description="PI collaboration timeline layout service",
    lifespan=lifespan
)

# CORS (Allow Frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class DatasetRequest(BaseModel):
    rows: List[Dict[str, Any]]
    source: str = "inline"


class FetchRequest(BaseModel):
    url: Optional[str] = None


class FilterRequest(BaseModel):
    pi_name: Optional[str] = None
    pi_count: Optional[int] = Field(default=None, ge=1)


class ViewportRequest(BaseModel):
    zoom: Optional[float] = None
    pan: Optional[float] = None
    pan_by: Optional[float] = None
    pixel_width: Optional[float] = Field(default=None, gt=0)


class ResetRequest(BaseModel):
    reset_filter: bool = True
    reset_viewport: bool = True


# =============================================================================
# HELPERS
# =============================================================================

def _engine() -> TimeArcEngine:
    if not engine_instance:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine_instance


def _render(engine: TimeArcEngine, snapshot: ViewSnapshot) -> Dict[str, Any]:
    view = None
    projection = snapshot.projection
    if projection is not None and not projection.is_empty:
        view = build_timeline_view(projection, engine.config.layout)

    dto = map_snapshot(snapshot, view)
    if snapshot.dataset is not None:
        max_count, counts = pi_count_options(snapshot.dataset.proposals)
        dto["controls"] = {
            "zoom": asdict(ZoomControlState.of(engine.viewport_state, engine.config.viewport)),
            "pi_count": asdict(PICountControlState.of(engine.filter_state, max_count, counts)),
        }
    return dto


def _dataset_response(snapshot: ViewSnapshot) -> Dict[str, Any]:
    dataset = snapshot.dataset
    if dataset is None or dataset.is_empty:
        detail = snapshot.error.to_dict() if snapshot.error else {"code": "DATASET_EMPTY"}
        if dataset is not None:
            detail["report"] = dataset.report.to_dict()
        raise HTTPException(status_code=422, detail=detail)
    return {"generation": snapshot.generation, **map_dataset(dataset)}


def _audit(engine: TimeArcEngine, action: str, **details: object):
    engine.observability.log_audit(action, AuditEventType.SYSTEM, layer="api", **details)


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/health")
async def health_check():
    """System status."""
    engine = _engine()
    return {
        "status": "online",
        "generation": engine.generation,
        "has_data": engine.dataset is not None and not engine.dataset.is_empty,
    }


@app.post("/api/v1/dataset")
async def load_dataset(request: DatasetRequest):
    """Replace the dataset with inline rows."""
    engine = _engine()
    _audit(engine, "dataset_posted", rows=len(request.rows), source=request.source)
    snapshot = engine.dispatch(DatasetLoaded(rows=tuple(request.rows), source=request.source))
    return _dataset_response(snapshot)


@app.post("/api/v1/dataset/fetch")
async def fetch_dataset(request: FetchRequest):
    """Replace the dataset from a URL (or the configured default)."""
    engine = _engine()
    _audit(engine, "dataset_fetch_requested", url=request.url or "")
    result = await engine.load_url(request.url)

    if result.status is LoadStatus.STALE:
        raise HTTPException(status_code=409, detail=result.error.to_dict() if result.error else None)
    if not result.is_success:
        engine.observability.log_audit(
            "dataset_fetch_failed", AuditEventType.ERROR, layer="api",
            severity=AuditSeverity.ERROR, status=result.status.value,
        )
        raise HTTPException(
            status_code=502,
            detail={**(result.error.to_dict() if result.error else {}), "status": result.status.value},
        )
    return _dataset_response(engine.snapshot())


@app.post("/api/v1/filter")
async def set_filter(request: FilterRequest):
    engine = _engine()
    snapshot = engine.dispatch(FilterChanged(pi_name=request.pi_name, pi_count=request.pi_count))
    return _render(engine, snapshot)


@app.post("/api/v1/viewport")
async def set_viewport(request: ViewportRequest):
    engine = _engine()
    snapshot = engine.dispatch(ViewportChanged(
        zoom=request.zoom,
        pan=request.pan,
        pan_by=request.pan_by,
        pixel_width=request.pixel_width,
    ))
    return _render(engine, snapshot)


@app.post("/api/v1/reset")
async def reset_view(request: Optional[ResetRequest] = None):
    engine = _engine()
    request = request or ResetRequest()
    snapshot = engine.dispatch(ViewReset(
        reset_filter=request.reset_filter,
        reset_viewport=request.reset_viewport,
    ))
    return _render(engine, snapshot)


@app.get("/api/v1/view")
async def get_view():
    """Current positioned view, rebuilt from engine state."""
    engine = _engine()
    return _render(engine, engine.snapshot())


@app.get("/api/v1/pis/{name}")
async def get_pi_summary(name: str):
    """Hover summary for one PI over the filtered proposals."""
    engine = _engine()
    dataset = engine.dataset
    if dataset is None or name not in dataset.summary.pi_names:
        raise HTTPException(status_code=404, detail=f"Unknown PI: {name}")
    proposals = engine.filter_state.apply(dataset.proposals)
    return asdict(pi_summary(proposals, name))


@app.get("/api/v1/audit")
async def get_audit():
    engine = _engine()
    return engine.observability.generate_audit_report()
