"""
OpenAI-based report analysis: severity, tags, key details and a short summary.

Only "severity" is read by triage; the rest is stored as the incident's analysis blob.
Any failure (no key, API error, unparsable reply) returns DEFAULT_ANALYSIS so report
creation never waits on or fails because of the model.
"""

import json
import logging
import re
from typing import Optional

from openai import OpenAI

from core.config import oracle_model, oracle_timeout_seconds, openai_api_key
from core.models import Category, IncidentReport, Severity, enum_value

logger = logging.getLogger("incident_triage.oracle.analyzer")

VALID_SEVERITIES = tuple(s.value for s in Severity)
DEFAULT_RESPONSE_MINUTES = 15

DEFAULT_ANALYSIS = {
    "severity": Severity.MEDIUM.value,
    "suggested_category": None,
    "estimated_response_time": DEFAULT_RESPONSE_MINUTES,
    "key_details": ["Emergency reported"],
    "tags": ["emergency", "incident"],
    "summary": "Emergency incident reported - AI analysis unavailable",
}

ANALYZE_PROMPT = """Analyze this emergency incident and return ONLY a JSON object with:
- severity (Critical/High/Medium/Low)
- suggested_category (if the type "{category}" seems wrong, suggest the correct one from: {categories}; else null)
- estimated_response_time (in minutes, number)
- key_details (array of important points extracted from the description)
- tags (array of relevant keywords)
- summary (short 1-2 sentence summary)

Incident Type: {category}
Description: \"\"\"{description}\"\"\"

Return ONLY valid JSON, no markdown or extra text."""

_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def default_analysis() -> dict:
    return {k: (list(v) if isinstance(v, list) else v) for k, v in DEFAULT_ANALYSIS.items()}


def _strip_json_block(raw: str) -> str:
    """Remove markdown code fence if present so we can parse JSON."""
    s = raw.strip()
    if s.startswith("```"):
        s = re.sub(r"^```(?:json)?\s*", "", s)
        s = re.sub(r"\s*```\s*$", "", s)
    return s.strip()


def _str_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()]


def parse_analysis(raw: str) -> dict:
    """Parse and normalise the model reply. Raises ValueError if no JSON object is present."""
    m = _OBJECT_RE.search(_strip_json_block(raw or ""))
    if not m:
        raise ValueError("no JSON object in analysis response")
    data = json.loads(m.group(0))
    if not isinstance(data, dict):
        raise ValueError("analysis response is not an object")

    severity = data.get("severity")
    if severity not in VALID_SEVERITIES:
        severity = Severity.MEDIUM.value

    suggested = data.get("suggested_category") or data.get("suggestedCategory")
    if suggested not in {c.value for c in Category}:
        suggested = None

    eta = data.get("estimated_response_time", data.get("estimatedResponseTime"))
    if isinstance(eta, bool) or not isinstance(eta, (int, float)):
        eta = DEFAULT_RESPONSE_MINUTES

    return {
        "severity": severity,
        "suggested_category": suggested,
        "estimated_response_time": eta,
        "key_details": _str_list(data.get("key_details", data.get("keyDetails"))),
        "tags": _str_list(data.get("tags")),
        "summary": str(data.get("summary") or "Emergency incident reported"),
    }


class ReportAnalyzer:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: Optional[float] = None):
        self._api_key = api_key or openai_api_key()
        self.model = model or oracle_model()
        self.timeout = timeout if timeout is not None else oracle_timeout_seconds()
        self._client = None

    @property
    def client(self) -> Optional[OpenAI]:
        if self._client is None and self._api_key:
            self._client = OpenAI(api_key=self._api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def analyze(self, report: IncidentReport) -> dict:
        if self.client is None:
            logger.debug("analysis skipped: no OPENAI_API_KEY")
            return default_analysis()
        prompt = ANALYZE_PROMPT.format(
            category=enum_value(report.category),
            categories=", ".join(c.value for c in Category),
            description=report.description.strip()[:2000],
        )
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.1,
            )
            raw = (resp.choices[0].message.content or "").strip()
            analysis = parse_analysis(raw)
            logger.info("analysis severity=%s tags=%s", analysis["severity"], analysis["tags"][:5])
            return analysis
        except Exception as e:
            logger.warning("analysis failed: %s", e)
            return default_analysis()


def build_analyzer() -> Optional[ReportAnalyzer]:
    if not openai_api_key():
        return None
    return ReportAnalyzer()
