"""Dashboard counters over the incident set."""

from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Optional

from core.models import IncidentRecord, Severity, Status, ensure_utc, utcnow

PENDING_STATUSES = frozenset({Status.PENDING.value, Status.REPORTED.value})


def incident_stats(incidents: Iterable[IncidentRecord], now: Optional[datetime] = None) -> dict:
    now = ensure_utc(now) if now is not None else utcnow()
    day_ago = now - timedelta(hours=24)
    incidents = list(incidents)
    statuses = Counter(i.status for i in incidents)
    severities = Counter(i.severity for i in incidents)
    return {
        "total": len(incidents),
        "critical": severities[Severity.CRITICAL.value],
        "high": severities[Severity.HIGH.value],
        "in_progress": statuses[Status.IN_PROGRESS.value],
        "resolved": statuses[Status.RESOLVED.value],
        "pending": sum(statuses[s] for s in PENDING_STATUSES),
        "last_24h": sum(1 for i in incidents if i.created_at >= day_ago),
        "by_category": dict(Counter(i.category for i in incidents)),
    }
