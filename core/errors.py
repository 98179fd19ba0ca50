"""Errors raised by the triage core and mapped to HTTP status codes by the API."""


class TriageError(Exception):
    """Base class for triage failures surfaced to callers."""


class ReportValidationError(TriageError, ValueError):
    """Report rejected before any matching ran. ``problems`` lists every field that failed."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class StoreUnavailableError(TriageError):
    """The incident store failed; the report was not merged or created."""


class IncidentNotFoundError(TriageError):
    def __init__(self, incident_id: str):
        self.incident_id = incident_id
        super().__init__(f"Incident not found: {incident_id}")
