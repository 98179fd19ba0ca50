"""
In-memory incident store.

Records are kept in insertion order, which is the lookup order the tight-tier merge relies on.
All reads return copies so callers cannot mutate stored state; writes go through one lock so
corroboration increments from concurrent merges all land.
"""

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

from core.errors import IncidentNotFoundError
from core.models import GeoPoint, IncidentRecord, ensure_utc, utcnow
from matching.geo import distance_m

logger = logging.getLogger("incident_triage.store.memory")

# Fields a caller may not overwrite through update(); corroboration only moves via increment.
_PROTECTED_FIELDS = frozenset({"incident_id", "corroboration_count", "created_at", "updated_at"})


def new_incident_id() -> str:
    """Generate a new incident id (e.g. incident-<uuid4>)."""
    return "incident-" + uuid.uuid4().hex[:12]


class InMemoryIncidentStore:
    def __init__(self, records: Iterable[IncidentRecord] = ()):
        self._lock = threading.Lock()
        self._records: dict[str, IncidentRecord] = {}
        for r in records:
            self._records[r.incident_id] = replace(r)

    def __len__(self) -> int:
        return len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def _snapshot(self) -> list[IncidentRecord]:
        with self._lock:
            return [replace(r) for r in self._records.values()]

    def find_near(
        self,
        point: GeoPoint,
        radius_m: Optional[float],
        since: datetime,
        category: Optional[str] = None,
        exclude_statuses: Iterable[str] = (),
    ) -> list[IncidentRecord]:
        since = ensure_utc(since)
        excluded = set(exclude_statuses)
        out = []
        for r in self._snapshot():
            if r.created_at < since or r.status in excluded:
                continue
            if category is not None and r.category != category:
                continue
            if radius_m is not None:
                loc = r.location
                if loc is None or distance_m(point, loc) > radius_m:
                    continue
            out.append(r)
        return out

    def increment_corroboration(self, incident_id: str) -> IncidentRecord:
        with self._lock:
            record = self._records.get(incident_id)
            if record is None:
                raise IncidentNotFoundError(incident_id)
            record.corroboration_count += 1
            record.updated_at = utcnow()
            return replace(record)

    def create(self, record: IncidentRecord) -> IncidentRecord:
        with self._lock:
            incident_id = record.incident_id or new_incident_id()
            while incident_id in self._records:
                incident_id = new_incident_id()
            stored = replace(record, incident_id=incident_id)
            self._records[incident_id] = stored
            logger.debug("stored incident_id=%s", incident_id)
            return replace(stored)

    def get(self, incident_id: str) -> Optional[IncidentRecord]:
        with self._lock:
            record = self._records.get(incident_id)
            return replace(record) if record is not None else None

    def update(self, incident_id: str, **fields) -> IncidentRecord:
        bad = _PROTECTED_FIELDS.intersection(fields)
        if bad:
            raise ValueError(f"cannot update protected fields: {sorted(bad)}")
        with self._lock:
            record = self._records.get(incident_id)
            if record is None:
                raise IncidentNotFoundError(incident_id)
            updated = replace(record, **fields, updated_at=utcnow())
            self._records[incident_id] = updated
            return replace(updated)

    def delete(self, incident_id: str) -> IncidentRecord:
        with self._lock:
            record = self._records.pop(incident_id, None)
        if record is None:
            raise IncidentNotFoundError(incident_id)
        return record

    def list_incidents(
        self,
        *,
        category: Optional[str] = None,
        status: Optional[str] = None,
        severity: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        near: Optional[GeoPoint] = None,
        radius_m: Optional[float] = None,
        exclude_statuses: Iterable[str] = (),
        newest_first: bool = True,
    ) -> list[IncidentRecord]:
        """Filtered records; nearest first when `near` is given, else by creation time."""
        excluded = set(exclude_statuses)
        since = ensure_utc(since) if since else None
        until = ensure_utc(until) if until else None
        rows = []
        for r in self._snapshot():
            if r.status in excluded:
                continue
            if category is not None and r.category != category:
                continue
            if status is not None and r.status != status:
                continue
            if severity is not None and r.severity != severity:
                continue
            if since is not None and r.created_at < since:
                continue
            if until is not None and r.created_at > until:
                continue
            dist = None
            if near is not None:
                loc = r.location
                if loc is None:
                    continue
                dist = distance_m(near, loc)
                if radius_m is not None and dist > radius_m:
                    continue
            rows.append((dist, r))

        if near is not None:
            rows.sort(key=lambda x: x[0])
        elif newest_first:
            rows.sort(key=lambda x: x[1].created_at, reverse=True)
        return [r for _, r in rows]
