"""LLM similarity oracle: how likely is a new report the same event as each nearby incident? 0–100."""

import json
import logging
import math
import re
from typing import Optional

from openai import OpenAI

from core.config import oracle_model, oracle_timeout_seconds, openai_api_key
from core.models import IncidentRecord, IncidentReport, OracleJudgment, enum_value

logger = logging.getLogger("incident_triage.oracle.similarity")

SAME_EVENT_PROMPT = """Compare this new emergency report with existing nearby incidents and identify potential duplicates.

NEW REPORT:
Type: {category}
Description: \"\"\"{description}\"\"\"

EXISTING NEARBY INCIDENTS:
{candidates}

Return ONLY a JSON array of objects with:
- index (1-based number of the matching incident)
- confidence (0-100, how likely they describe the same event)
- reason (brief explanation)

Only include incidents with confidence > 50. Return an empty array [] if none match."""

_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def _candidate_lines(candidates: list[IncidentRecord]) -> str:
    return "\n".join(
        f'{i + 1}. Type: {c.category}, Description: "{c.description.strip()[:500]}"'
        for i, c in enumerate(candidates)
    )


def parse_judgments(raw: str, n_candidates: int) -> list[OracleJudgment]:
    """
    Parse the model's JSON array (1-based indices) into 0-based judgments.
    Raises ValueError when no array can be read; malformed entries are dropped.
    """
    m = _ARRAY_RE.search(raw or "")
    if not m:
        raise ValueError("no JSON array in similarity response")
    try:
        data = json.loads(m.group(0))
    except json.JSONDecodeError as e:
        raise ValueError(f"similarity response is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise ValueError("similarity response is not a list")

    out = []
    for item in data:
        if not isinstance(item, dict):
            continue
        try:
            index = int(item.get("index")) - 1
            confidence = float(item.get("confidence"))
        except (TypeError, ValueError, OverflowError):
            continue
        if not math.isfinite(confidence):
            continue
        if not 0 <= index < n_candidates:
            continue
        out.append(OracleJudgment(
            candidate_index=index,
            confidence=max(0.0, min(100.0, confidence)),
            rationale=str(item.get("reason") or ""),
        ))
    return out


class OpenAISimilarityOracle:
    """Similarity oracle backed by an OpenAI chat model. Errors propagate; the fusion step absorbs them."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: Optional[float] = None):
        self._api_key = api_key or openai_api_key()
        self.model = model or oracle_model()
        self.timeout = timeout if timeout is not None else oracle_timeout_seconds()
        self._client = None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self._api_key:
                raise RuntimeError("OPENAI_API_KEY not configured")
            self._client = OpenAI(api_key=self._api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def compare(self, report: IncidentReport, candidates: list[IncidentRecord]) -> list[OracleJudgment]:
        if not candidates:
            return []
        prompt = SAME_EVENT_PROMPT.format(
            category=enum_value(report.category),
            description=report.description.strip()[:2000],
            candidates=_candidate_lines(candidates),
        )
        resp = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.1,
        )
        raw = (resp.choices[0].message.content or "").strip()
        return parse_judgments(raw, len(candidates))


def build_similarity_oracle() -> Optional[OpenAISimilarityOracle]:
    """OpenAI oracle when a key is configured, else None (heuristic-only duplicates)."""
    if not openai_api_key():
        logger.debug("similarity oracle disabled: no OPENAI_API_KEY")
        return None
    return OpenAISimilarityOracle()
