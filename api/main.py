"""
FastAPI backend: citizen reports in, merged or created incidents out, plus the responder queue.
Duplicate reports are merged automatically when tight; looser matches come back as warnings.
Outcome events stream to dashboards over /ws.
"""

import logging
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from analytics.snowflake_sink import SnowflakeNotifier
from core.engine import TriageEngine
from core.errors import IncidentNotFoundError, ReportValidationError, StoreUnavailableError
from core.models import GeoPoint, utcnow
from core.validation import parse_category, validate_point, validate_report
from events.notifier import FanoutNotifier, LoggingNotifier
from events.websocket import ConnectionManager
from oracle.analyzer import build_analyzer
from oracle.similarity import build_similarity_oracle
from store.memory import InMemoryIncidentStore

load_dotenv(override=True)

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("incident_triage.api")

# -----------------------------------------------------------------------------
# Store, live connections, engine (in-memory for MVP)
# -----------------------------------------------------------------------------
store = InMemoryIncidentStore()
connections = ConnectionManager()
engine = TriageEngine(
    store,
    oracle=build_similarity_oracle(),
    notifier=FanoutNotifier([LoggingNotifier(), connections, SnowflakeNotifier()]),
    analyzer=build_analyzer(),
)

app = FastAPI(title="Incident Triage API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------------------------------------------------------
# No-cache for dynamic API responses (avoid 304 for stale data)
# -----------------------------------------------------------------------------
NO_CACHE_HEADERS = {"Cache-Control": "no-store, no-cache, must-revalidate", "Pragma": "no-cache"}


def _json(content, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=NO_CACHE_HEADERS)


# -----------------------------------------------------------------------------
# Error mapping
# -----------------------------------------------------------------------------
@app.exception_handler(ReportValidationError)
def _validation_error(request: Request, exc: ReportValidationError):
    logger.warning("request rejected path=%s problems=%s", request.url.path, exc.problems)
    return _json({"detail": "Validation failed", "errors": exc.problems}, status_code=400)


@app.exception_handler(IncidentNotFoundError)
def _not_found(request: Request, exc: IncidentNotFoundError):
    return _json({"detail": "Incident not found", "incident_id": exc.incident_id}, status_code=404)


@app.exception_handler(StoreUnavailableError)
def _store_unavailable(request: Request, exc: StoreUnavailableError):
    return _json({"detail": "Incident store unavailable, please retry"}, status_code=503)


# -----------------------------------------------------------------------------
# Request models
# -----------------------------------------------------------------------------
class LocationIn(BaseModel):
    # Loose types so range/type problems come back as our own 400 list.
    lat: Optional[float | str] = None
    lng: Optional[float | str] = None
    address: Optional[str] = None


class ReportRequest(BaseModel):
    category: Optional[str] = None
    description: Optional[str] = None
    location: LocationIn = Field(default_factory=LocationIn)
    reported_by: Optional[str] = None
    media_url: Optional[str] = None
    received_at: Optional[datetime] = None


class DuplicateCheckRequest(BaseModel):
    category: Optional[str] = None
    description: Optional[str] = ""
    location: LocationIn = Field(default_factory=LocationIn)


class AnalyzeTextRequest(BaseModel):
    description: Optional[str] = None
    category: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None
    responder_notes: Optional[str] = None
    assigned_to: Optional[str] = None


def _responder_point(lat: Optional[float], lng: Optional[float]) -> Optional[GeoPoint]:
    """Both coordinates or neither; a half-given position is a client error."""
    if lat is None and lng is None:
        return None
    return validate_point(lat, lng)


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------
@app.post("/incidents/report")
def report_incident(body: ReportRequest):
    """Submit a report: merged into a nearby incident (200) or created as a new one (201)."""
    report = validate_report(
        body.category,
        body.description,
        body.location.lat,
        body.location.lng,
        reported_by=body.reported_by,
        media_url=body.media_url,
        address=body.location.address,
        received_at=body.received_at,
    )
    logger.info(
        "report received category=%s lat=%.5f lng=%.5f desc_len=%d",
        report.category.value, report.location.lat, report.location.lng, len(report.description),
    )
    outcome = engine.process_report(report)
    return _json(outcome.to_dict(), status_code=200 if outcome.merged else 201)


def _duplicate_preview(category, description, lat, lng) -> JSONResponse:
    report = validate_report(category, description, lat, lng, require_description=False)
    duplicates = engine.check_duplicates(report)
    return _json({
        "has_duplicates": bool(duplicates),
        "duplicates": [d.to_dict() for d in duplicates],
    })


@app.post("/incidents/check-duplicates")
def check_duplicates(body: DuplicateCheckRequest):
    """Preview advisory duplicates for a report that has not been submitted."""
    return _duplicate_preview(body.category, body.description, body.location.lat, body.location.lng)


@app.get("/incidents/check-duplicates")
def check_duplicates_query(
    category: Optional[str] = None,
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    description: Optional[str] = "",
):
    """Same preview with query parameters, for clients checking while the form is filled in."""
    return _duplicate_preview(category, description, lat, lng)


@app.post("/incidents/analyze-text")
def analyze_text(body: AnalyzeTextRequest):
    """Severity analysis for a draft description; nothing is stored."""
    return _json({"analysis": engine.analyze_text(body.description, body.category)})


@app.get("/incidents/priority-queue")
def priority_queue(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    limit: Optional[int] = Query(None, ge=1, le=200),
):
    """Active incidents ranked by priority, optionally relative to the responder's position."""
    responder = _responder_point(lat, lng)
    queue = engine.priority_queue(responder, limit)
    return _json({"count": len(queue), "incidents": [r.to_dict() for r in queue]})


@app.get("/incidents/stats")
def incident_stats():
    return _json(engine.stats())


@app.get("/incidents")
def list_incidents(
    category: Optional[str] = None,
    status: Optional[str] = None,
    severity: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius_m: Optional[float] = Query(None, gt=0),
    sort_by_priority: bool = False,
    limit: int = Query(50, ge=1, le=500),
    page: int = Query(1, ge=1),
):
    """List incidents with filters. With lat/lng, nearest first (optionally within radius_m)."""
    near = _responder_point(lat, lng)
    result = engine.list_incidents(
        category=parse_category(category).value if category else None,
        status=status,
        severity=severity,
        since=since,
        until=until,
        near=near,
        radius_m=radius_m,
        sort_by_priority=sort_by_priority,
        limit=limit,
        page=page,
    )
    return _json({
        "incidents": [r.to_dict() for r in result.incidents],
        "pagination": {"total": result.total, "page": result.page, "limit": result.limit, "pages": result.pages},
    })


@app.get("/incidents/{incident_id}")
def get_incident(incident_id: str, lat: Optional[float] = None, lng: Optional[float] = None):
    ranked = engine.get_incident(incident_id, _responder_point(lat, lng))
    return _json(ranked.to_dict())


@app.post("/incidents/{incident_id}/analyze")
def reanalyze_incident(incident_id: str):
    """Re-run analysis; stores the new severity and returns the recomputed priority."""
    ranked = engine.reanalyze(incident_id)
    return _json({
        "message": "Incident reanalyzed",
        "incident": ranked.record.to_dict(),
        "analysis": ranked.record.ai_analysis,
        "priority": ranked.priority,
        "priority_level": ranked.priority_level,
    })


@app.patch("/incidents/{incident_id}/upvote")
def upvote_incident(incident_id: str):
    """Manual corroboration: same +1 as an automatic merge."""
    updated = engine.upvote(incident_id)
    return _json({"incident_id": updated.incident_id, "corroboration_count": updated.corroboration_count})


@app.patch("/incidents/{incident_id}/verify")
def verify_incident(incident_id: str):
    updated = engine.verify(incident_id)
    return _json({"message": "Incident verified", "incident": updated.to_dict()})


@app.patch("/incidents/{incident_id}/status")
def update_incident_status(incident_id: str, body: StatusUpdateRequest):
    updated = engine.update_status(
        incident_id,
        status=body.status,
        responder_notes=body.responder_notes,
        assigned_to=body.assigned_to,
    )
    return _json({"message": "Incident updated", "incident": updated.to_dict()})


@app.delete("/incidents/{incident_id}")
def delete_incident(incident_id: str):
    engine.delete(incident_id)
    return _json({"message": "Incident deleted", "incident_id": incident_id})


@app.get("/health")
def health():
    return _json({
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "incidents": len(store),
        "connected_clients": connections.connected_clients,
        "similarity_oracle": engine.oracle is not None,
        "analyzer": "openai" if engine.analyzer is not None else "default",
    })


@app.websocket("/ws")
async def websocket_events(ws: WebSocket):
    await connections.connect(ws)
    try:
        while True:
            text = await ws.receive_text()
            await connections.handle_message(ws, text)
    except WebSocketDisconnect:
        pass
    finally:
        connections.disconnect(ws)
