"""Core incident models, errors, priority ranking and the report triage engine."""

from core.models import (
    Category,
    Severity,
    Status,
    GeoPoint,
    IncidentReport,
    IncidentRecord,
    DuplicateCandidate,
    OracleJudgment,
    RankedIncident,
    ReportOutcome,
)
from core.errors import ReportValidationError, StoreUnavailableError, IncidentNotFoundError

__all__ = [
    "Category",
    "Severity",
    "Status",
    "GeoPoint",
    "IncidentReport",
    "IncidentRecord",
    "DuplicateCandidate",
    "OracleJudgment",
    "RankedIncident",
    "ReportOutcome",
    "ReportValidationError",
    "StoreUnavailableError",
    "IncidentNotFoundError",
]
