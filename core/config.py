"""
Triage thresholds and environment-driven settings.

The spatiotemporal windows are fixed constants; the rest can be tuned via env:
- MERGE_POLICY: "first" (default, first match in lookup order) or "nearest".
- DUPLICATE_SAME_CATEGORY: restrict advisory duplicate lookup to the report category (default true).
- ORACLE_TIMEOUT_SECONDS: time bound on the similarity oracle call (default 8).
- ORACLE_MODEL: OpenAI model used by the oracle and severity analyzer (default gpt-4o-mini).
- QUEUE_LIMIT: default cap on the priority queue (default 20).
"""

import logging
import os
from datetime import timedelta

logger = logging.getLogger("incident_triage.config")

# Tight tier: automatic merge
MERGE_RADIUS_M = 100.0
MERGE_WINDOW = timedelta(minutes=30)

# Loose tier: advisory duplicate warnings
DUPLICATE_RADIUS_M = 500.0
DUPLICATE_WINDOW = timedelta(hours=2)
MIN_DUPLICATE_CONFIDENCE = 40  # candidates at or below are dropped

FIRST_MATCH = "first"
NEAREST_MATCH = "nearest"
MERGE_POLICIES = (FIRST_MATCH, NEAREST_MATCH)

DEFAULT_ORACLE_TIMEOUT = 8.0
DEFAULT_ORACLE_MODEL = "gpt-4o-mini"
DEFAULT_QUEUE_LIMIT = 20


def _env_str(name: str) -> str | None:
    v = os.environ.get(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _env_float(name: str, default: float) -> float:
    v = _env_str(name)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        logger.warning("ignoring %s=%r: not a number", name, v)
        return default


def _env_bool(name: str, default: bool) -> bool:
    v = _env_str(name)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on")


def merge_policy() -> str:
    v = (_env_str("MERGE_POLICY") or FIRST_MATCH).lower()
    if v not in MERGE_POLICIES:
        logger.warning("ignoring MERGE_POLICY=%r: expected one of %s", v, MERGE_POLICIES)
        return FIRST_MATCH
    return v


def duplicate_same_category() -> bool:
    return _env_bool("DUPLICATE_SAME_CATEGORY", True)


def oracle_timeout_seconds() -> float:
    t = _env_float("ORACLE_TIMEOUT_SECONDS", DEFAULT_ORACLE_TIMEOUT)
    return t if t > 0 else DEFAULT_ORACLE_TIMEOUT


def oracle_model() -> str:
    return _env_str("ORACLE_MODEL") or DEFAULT_ORACLE_MODEL


def queue_limit() -> int:
    n = int(_env_float("QUEUE_LIMIT", DEFAULT_QUEUE_LIMIT))
    return n if n > 0 else DEFAULT_QUEUE_LIMIT


def openai_api_key() -> str | None:
    return _env_str("OPENAI_API_KEY")
