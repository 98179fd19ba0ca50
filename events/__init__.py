"""Real-time outcome events: notifier contract, logging/fan-out notifiers, WebSocket manager."""

from events.notifier import (
    Notifier,
    LoggingNotifier,
    FanoutNotifier,
    safe_broadcast,
    RESPONDER_ROOM,
)
from events.websocket import ConnectionManager

__all__ = [
    "Notifier",
    "LoggingNotifier",
    "FanoutNotifier",
    "safe_broadcast",
    "RESPONDER_ROOM",
    "ConnectionManager",
]
