"""Incident models: reports coming in, records held by the store, and the ephemeral scoring types."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional


class Category(str, Enum):
    FIRE = "Fire"
    ACCIDENT = "Accident"
    MEDICAL = "Medical"
    CRIME = "Crime"
    INFRASTRUCTURE = "Infrastructure"
    NATURAL = "Natural"
    OTHER = "Other"


class Severity(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Status(str, Enum):
    REPORTED = "Reported"
    VERIFIED = "Verified"
    IN_PROGRESS = "In Progress"
    DISPATCHED = "Dispatched"
    RESOLVED = "Resolved"
    CLOSED = "Closed"
    PENDING = "Pending"  # legacy alias of Reported


TERMINAL_STATUSES = frozenset({Status.RESOLVED.value, Status.CLOSED.value})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(ts: datetime) -> datetime:
    """Naive timestamps are taken as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def round_half_up(x: float) -> int:
    """Round .5 toward +inf (Python's round() is banker's rounding)."""
    return math.floor(x + 0.5)


def enum_value(value) -> str:
    """Plain string for an enum member or a raw string read back from a store."""
    return value.value if isinstance(value, Enum) else value


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def to_dict(self):
        return {"lat": round(self.lat, 6), "lng": round(self.lng, 6)}


@dataclass
class IncidentReport:
    """A new citizen report, validated but not yet matched."""
    category: Category
    description: str
    location: Optional[GeoPoint]  # None only for text-only analysis
    reported_by: Optional[str] = None
    media_url: Optional[str] = None
    address: str = ""
    received_at: Optional[datetime] = None


@dataclass
class IncidentRecord:
    incident_id: str
    category: str
    description: str
    lat: Optional[float]
    lng: Optional[float]
    severity: str = Severity.MEDIUM.value
    status: str = Status.REPORTED.value
    corroboration_count: int = 1  # never decremented; +1 per merged report
    verified: bool = False  # set by an authority action only
    created_at: datetime = field(default_factory=utcnow)
    reported_by: str = "Anonymous"
    media_url: Optional[str] = None
    address: str = ""
    ai_analysis: dict = field(default_factory=dict)
    responder_notes: str = ""
    assigned_to: Optional[str] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.category = enum_value(self.category)
        self.severity = enum_value(self.severity)
        self.status = enum_value(self.status)
        self.corroboration_count = max(1, int(self.corroboration_count))
        self.created_at = ensure_utc(self.created_at)

    @property
    def location(self) -> Optional[GeoPoint]:
        """None when the record is missing either coordinate."""
        if self.lat is None or self.lng is None:
            return None
        return GeoPoint(float(self.lat), float(self.lng))

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self):
        loc = self.location
        return {
            "incident_id": self.incident_id,
            "category": self.category,
            "description": self.description,
            "location": {**loc.to_dict(), "address": self.address} if loc else None,
            "severity": self.severity,
            "status": self.status,
            "corroboration_count": self.corroboration_count,
            "verified": self.verified,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "reported_by": self.reported_by,
            "media_url": self.media_url,
            "ai_analysis": self.ai_analysis,
            "responder_notes": self.responder_notes,
            "assigned_to": self.assigned_to,
        }


@dataclass
class DuplicateCandidate:
    record: IncidentRecord
    distance_m: float
    elapsed: timedelta
    heuristic_confidence: int
    fused_confidence: Optional[int] = None
    rationale: Optional[str] = None  # supplied by the similarity oracle

    @property
    def confidence(self) -> int:
        if self.fused_confidence is not None:
            return self.fused_confidence
        return self.heuristic_confidence

    def to_dict(self):
        d = {
            "incident_id": self.record.incident_id,
            "category": self.record.category,
            "description": self.record.description,
            "severity": self.record.severity,
            "status": self.record.status,
            "corroboration_count": self.record.corroboration_count,
            "verified": self.record.verified,
            "created_at": self.record.created_at.isoformat(),
            "distance_m": round_half_up(self.distance_m),
            "elapsed_minutes": round(self.elapsed.total_seconds() / 60, 1),
            "heuristic_confidence": self.heuristic_confidence,
            "confidence": self.confidence,
        }
        if self.rationale is not None:
            d["rationale"] = self.rationale
        return d


@dataclass(frozen=True)
class OracleJudgment:
    candidate_index: int  # 0-based into the list handed to the oracle
    confidence: float  # 0 - 100
    rationale: str = ""


@dataclass
class RankedIncident:
    """A record with its priority for one queue computation; never persisted."""
    record: IncidentRecord
    priority: int
    priority_level: str

    def to_dict(self):
        d = self.record.to_dict()
        d["priority"] = self.priority
        d["priority_level"] = self.priority_level
        return d


@dataclass
class ReportOutcome:
    status: str  # "merged" | "created"
    incident: IncidentRecord
    duplicates: list = field(default_factory=list)  # list of DuplicateCandidate
    analysis: Optional[dict] = None
    message: str = ""

    @property
    def merged(self) -> bool:
        return self.status == "merged"

    def to_dict(self):
        return {
            "status": self.status,
            "incident": self.incident.to_dict(),
            "duplicates": [d.to_dict() for d in self.duplicates] or None,
            "analysis": self.analysis,
            "message": self.message,
        }
