"""
WebSocket fan-out for live dashboards and responder consoles.

Clients send "joinResponderRoom" / "leaveResponderRoom" (plain text or {"type": ...} JSON)
to receive responder-only alerts. Broadcasts may come from worker threads (sync endpoints),
so sends are scheduled onto the server loop and not awaited.
"""

import asyncio
import json
import logging
import threading
from typing import Optional

from fastapi import WebSocket

from events.notifier import RESPONDER_ROOM

logger = logging.getLogger("incident_triage.events.websocket")

JOIN_RESPONDERS = "joinResponderRoom"
LEAVE_RESPONDERS = "leaveResponderRoom"
ROOM_JOINED = "room_joined"
ROOM_LEFT = "room_left"


def _message_type(text: str) -> str:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return text.strip()
    if isinstance(data, dict):
        return str(data.get("type") or "")
    return str(data)


class ConnectionManager:
    def __init__(self):
        self._lock = threading.Lock()
        self._rooms: dict[WebSocket, set[str]] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def connected_clients(self) -> int:
        with self._lock:
            return len(self._rooms)

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self._loop = asyncio.get_running_loop()
        with self._lock:
            self._rooms[ws] = set()
            n = len(self._rooms)
        logger.info("client connected; total clients: %d", n)

    def disconnect(self, ws: WebSocket) -> None:
        with self._lock:
            self._rooms.pop(ws, None)
            n = len(self._rooms)
        logger.info("client disconnected; total clients: %d", n)

    async def handle_message(self, ws: WebSocket, text: str) -> None:
        """Room join/leave; acknowledged with a room_joined / room_left event."""
        kind = _message_type(text)
        if kind not in (JOIN_RESPONDERS, LEAVE_RESPONDERS):
            logger.debug("ignoring client message type=%r", kind)
            return
        with self._lock:
            rooms = self._rooms.get(ws)
            if rooms is None:
                return
            if kind == JOIN_RESPONDERS:
                rooms.add(RESPONDER_ROOM)
            else:
                rooms.discard(RESPONDER_ROOM)
        ack = ROOM_JOINED if kind == JOIN_RESPONDERS else ROOM_LEFT
        logger.info("client %s room=%s", ack, RESPONDER_ROOM)
        await ws.send_text(json.dumps({"event": ack, "data": {"room": RESPONDER_ROOM}}))

    def _targets(self, room: Optional[str]) -> list[WebSocket]:
        with self._lock:
            return [ws for ws, rooms in self._rooms.items() if room is None or room in rooms]

    def broadcast(self, event_kind: str, payload: dict, room: Optional[str] = None) -> None:
        loop = self._loop
        targets = self._targets(room)
        if loop is None or loop.is_closed() or not targets:
            return
        message = json.dumps({"event": event_kind, "data": payload}, default=str)
        for ws in targets:
            fut = asyncio.run_coroutine_threadsafe(ws.send_text(message), loop)
            fut.add_done_callback(lambda f, ws=ws: self._on_sent(f, ws))

    def _on_sent(self, fut, ws: WebSocket) -> None:
        if fut.cancelled():
            return
        err = fut.exception()
        if err is not None:
            logger.warning("websocket send failed, dropping client: %s", err)
            self.disconnect(ws)
