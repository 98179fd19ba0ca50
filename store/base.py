"""Incident store contract consumed by the triage engine."""

from datetime import datetime
from typing import Iterable, Optional, Protocol

from core.models import GeoPoint, IncidentRecord


class IncidentStore(Protocol):
    def find_near(
        self,
        point: GeoPoint,
        radius_m: Optional[float],
        since: datetime,
        category: Optional[str] = None,
        exclude_statuses: Iterable[str] = (),
    ) -> list[IncidentRecord]:
        """
        Records created at or after `since`, optionally of one category, in lookup order.
        radius_m=None skips the geospatial filter (callers post-filter distance).
        Every returned record must carry its coordinates.
        """
        ...

    def increment_corroboration(self, incident_id: str) -> IncidentRecord:
        """Atomic +1; returns the record after the increment. Raises IncidentNotFoundError."""
        ...

    def create(self, record: IncidentRecord) -> IncidentRecord:
        """Persist a new record and return it with its id assigned."""
        ...

    def get(self, incident_id: str) -> Optional[IncidentRecord]:
        ...

    def update(self, incident_id: str, **fields) -> IncidentRecord:
        """Set fields on a record. Raises IncidentNotFoundError."""
        ...

    def delete(self, incident_id: str) -> IncidentRecord:
        """Remove and return a record. Raises IncidentNotFoundError."""
        ...

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
        ...
