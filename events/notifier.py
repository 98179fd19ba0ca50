"""Outcome broadcasting: fire-and-forget; a failed broadcast never undoes a merge or create."""

import logging
from typing import Iterable, Optional, Protocol

logger = logging.getLogger("incident_triage.events")

RESPONDER_ROOM = "responders"

# Event kinds
NEW_INCIDENT = "new_incident"
NEW_INCIDENT_ALERT = "new_incident_alert"
UPVOTE_UPDATE = "upvote_update"
INCIDENT_VERIFIED = "incident_verified"
INCIDENT_UPDATED = "incident_updated"
INCIDENT_DELETED = "incident_deleted"


class Notifier(Protocol):
    def broadcast(self, event_kind: str, payload: dict, room: Optional[str] = None) -> None:
        """room=None means every connected client."""
        ...


class LoggingNotifier:
    def broadcast(self, event_kind: str, payload: dict, room: Optional[str] = None) -> None:
        logger.info("event %s room=%s incident_id=%s", event_kind, room or "*", payload.get("incident_id"))


class FanoutNotifier:
    """Send each event to several notifiers; one failing does not stop the others."""

    def __init__(self, notifiers: Iterable[Notifier]):
        self.notifiers = list(notifiers)

    def broadcast(self, event_kind: str, payload: dict, room: Optional[str] = None) -> None:
        for n in self.notifiers:
            safe_broadcast(n, event_kind, payload, room)


def safe_broadcast(notifier: Optional[Notifier], event_kind: str, payload: dict, room: Optional[str] = None) -> None:
    if notifier is None:
        return
    try:
        notifier.broadcast(event_kind, payload, room)
    except Exception as e:
        logger.warning("broadcast %s via %s failed: %s", event_kind, type(notifier).__name__, e)
