"""
Optional Snowflake analytics sink.

When SNOWFLAKE_ACCOUNT, SNOWFLAKE_USER, SNOWFLAKE_PASSWORD (plus optional SNOWFLAKE_WAREHOUSE,
SNOWFLAKE_DATABASE, SNOWFLAKE_SCHEMA, SNOWFLAKE_ROLE) are set, every triage outcome event
(new incident, merge/upvote, verify, status change, delete) is written as one row:

- triage_events: event_kind, incident_id, room, payload VARIANT, created_at

Useful for merge rate, reports per incident, time-to-verify, etc.
No-op if Snowflake env is not set or the connector is not installed
(a configured but missing connector is logged once, not per event).
"""

import importlib.util
import json
import logging
import os
from typing import Optional

logger = logging.getLogger("incident_triage.analytics.snowflake")

DEFAULT_EVENTS_TABLE = "triage_events"


def _env(name: str) -> str:
    return os.environ.get(name, "").strip()


def snowflake_configured() -> bool:
    return bool(_env("SNOWFLAKE_ACCOUNT") and _env("SNOWFLAKE_USER") and _env("SNOWFLAKE_PASSWORD"))


def connector_installed() -> bool:
    return importlib.util.find_spec("snowflake") is not None and importlib.util.find_spec("snowflake.connector") is not None


def _get_conn():
    """Lazy connection; raises if not configured or connection fails."""
    if not snowflake_configured():
        raise ValueError("Snowflake not configured (set SNOWFLAKE_ACCOUNT, SNOWFLAKE_USER, SNOWFLAKE_PASSWORD)")
    import snowflake.connector

    return snowflake.connector.connect(
        account=_env("SNOWFLAKE_ACCOUNT"),
        user=_env("SNOWFLAKE_USER"),
        password=_env("SNOWFLAKE_PASSWORD"),
        warehouse=_env("SNOWFLAKE_WAREHOUSE") or None,
        database=_env("SNOWFLAKE_DATABASE") or None,
        schema=_env("SNOWFLAKE_SCHEMA") or None,
        role=_env("SNOWFLAKE_ROLE") or None,
    )


class SnowflakeNotifier:
    """Notifier that appends each outcome event to a Snowflake table."""

    def __init__(self, table: Optional[str] = None, connect=None):
        self.table = table or _env("SNOWFLAKE_EVENTS_TABLE") or DEFAULT_EVENTS_TABLE
        self._connect = connect or _get_conn
        self._tables_ready = False
        self._missing_logged = False

    @property
    def enabled(self) -> bool:
        if self._connect is not _get_conn:
            return True
        if not snowflake_configured():
            return False
        if not connector_installed():
            if not self._missing_logged:
                logger.warning("Snowflake configured but snowflake-connector-python is not installed; sink disabled")
                self._missing_logged = True
            return False
        return True

    def _ensure_table(self, conn) -> None:
        if self._tables_ready:
            return
        cur = conn.cursor()
        cur.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                event_kind VARCHAR(64),
                incident_id VARCHAR(128),
                room VARCHAR(64),
                payload VARIANT,
                created_at TIMESTAMP_NTZ DEFAULT CURRENT_TIMESTAMP()
            )
        """)
        cur.close()
        self._tables_ready = True

    def broadcast(self, event_kind: str, payload: dict, room: Optional[str] = None) -> None:
        if not self.enabled:
            return
        conn = self._connect()
        try:
            self._ensure_table(conn)
            cur = conn.cursor()
            # INSERT...SELECT so PARSE_JSON works (VALUES clause can reject it)
            cur.execute(
                f"INSERT INTO {self.table} (event_kind, incident_id, room, payload) SELECT %s, %s, %s, PARSE_JSON(%s)",
                (event_kind, payload.get("incident_id"), room, json.dumps(payload, default=str)),
            )
            cur.close()
            logger.debug("snowflake sink ok event=%s incident_id=%s", event_kind, payload.get("incident_id"))
        finally:
            conn.close()
