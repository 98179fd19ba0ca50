"""Incident persistence: the store contract and the in-memory implementation."""

from store.base import IncidentStore
from store.memory import InMemoryIncidentStore, new_incident_id

__all__ = ["IncidentStore", "InMemoryIncidentStore", "new_incident_id"]
