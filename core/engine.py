"""
Report triage: decide merge vs. create for each new report, and serve the responder queue.

Order per report:
1. tight tier (same category, 30 min, 100 m) → merge: +1 corroboration, nothing else changes
2. otherwise loose tier (2 h, 500 m) → heuristic duplicate scores, refined by the similarity
   oracle when available → advisory warnings returned with the new incident
3. severity analysis → create with corroboration 1, status Reported

Store failures abort the whole attempt (StoreUnavailableError); oracle, analyzer and
notifier failures only degrade the result.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core import config
from core.config import DUPLICATE_RADIUS_M, DUPLICATE_WINDOW, MERGE_WINDOW
from core.errors import IncidentNotFoundError, ReportValidationError, StoreUnavailableError, TriageError
from core.models import (
    TERMINAL_STATUSES,
    Category,
    DuplicateCandidate,
    GeoPoint,
    IncidentRecord,
    IncidentReport,
    RankedIncident,
    ReportOutcome,
    Severity,
    Status,
    ensure_utc,
    utcnow,
)
from core.priority import calculate_priority, priority_level
from core.queue import build_priority_queue, rank_incidents
from core.stats import incident_stats
from core.validation import parse_category, validate_status
from events.notifier import (
    INCIDENT_DELETED,
    INCIDENT_UPDATED,
    INCIDENT_VERIFIED,
    NEW_INCIDENT,
    NEW_INCIDENT_ALERT,
    RESPONDER_ROOM,
    UPVOTE_UPDATE,
    Notifier,
    safe_broadcast,
)
from matching.fusion import semantic_fusion
from matching.heuristic import score_candidates
from matching.merge import MergeTarget, find_merge_target
from oracle.analyzer import VALID_SEVERITIES, default_analysis
from oracle.base import SeverityAnalyzer, SimilarityOracle
from store.base import IncidentStore

logger = logging.getLogger("incident_triage.engine")

MERGED = "merged"
CREATED = "created"


@dataclass
class IncidentPage:
    incidents: list  # list of RankedIncident
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0


class TriageEngine:
    def __init__(
        self,
        store: IncidentStore,
        oracle: Optional[SimilarityOracle] = None,
        notifier: Optional[Notifier] = None,
        analyzer: Optional[SeverityAnalyzer] = None,
        *,
        merge_policy: Optional[str] = None,
        oracle_timeout: Optional[float] = None,
        duplicate_same_category: Optional[bool] = None,
    ):
        self.store = store
        self.oracle = oracle
        self.notifier = notifier
        self.analyzer = analyzer
        self.merge_policy = merge_policy or config.merge_policy()
        self.oracle_timeout = oracle_timeout
        self.duplicate_same_category = (
            duplicate_same_category if duplicate_same_category is not None else config.duplicate_same_category()
        )

    # -------------------------------------------------------------------------
    # Store access
    # -------------------------------------------------------------------------
    def _store(self, op: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except TriageError:
            raise
        except Exception as e:
            logger.error("store %s failed: %s", op, e)
            raise StoreUnavailableError(f"incident store {op} failed: {e}") from e

    def _require(self, incident_id: str) -> IncidentRecord:
        record = self._store("get", self.store.get, incident_id)
        if record is None:
            raise IncidentNotFoundError(incident_id)
        return record

    # -------------------------------------------------------------------------
    # Report processing
    # -------------------------------------------------------------------------
    def process_report(self, report: IncidentReport, now: Optional[datetime] = None) -> ReportOutcome:
        now = ensure_utc(now or report.received_at or utcnow())
        category = report.category.value

        recent = self._store(
            "find_near", self.store.find_near, report.location, None, now - MERGE_WINDOW, category,
        )
        target = find_merge_target(report, recent, now, policy=self.merge_policy)
        if target is not None:
            return self._merge(target)

        duplicates = self.check_duplicates(report, now)
        analysis = self._analyze(report)
        record = IncidentRecord(
            incident_id="",
            category=category,
            description=report.description,
            lat=report.location.lat,
            lng=report.location.lng,
            severity=analysis["severity"],
            status=Status.REPORTED.value,
            corroboration_count=1,
            verified=False,
            created_at=report.received_at or now,
            reported_by=report.reported_by or "Anonymous",
            media_url=report.media_url,
            address=report.address,
            ai_analysis=analysis,
        )
        created = self._store("create", self.store.create, record)
        priority = calculate_priority(created, now=now)
        logger.info(
            "report created incident_id=%s category=%s severity=%s priority=%d duplicates=%d",
            created.incident_id, created.category, created.severity, priority, len(duplicates),
        )

        payload = {"incident_id": created.incident_id, "incident": created.to_dict(), "priority": priority}
        safe_broadcast(self.notifier, NEW_INCIDENT, payload)
        safe_broadcast(
            self.notifier, NEW_INCIDENT_ALERT, {**payload, "priority_level": priority_level(priority)}, RESPONDER_ROOM,
        )
        return ReportOutcome(
            status=CREATED,
            incident=created,
            duplicates=duplicates,
            analysis=analysis,
            message=f"Incident created; {len(duplicates)} possible duplicate(s) nearby" if duplicates else "Incident created",
        )

    def _merge(self, target: MergeTarget) -> ReportOutcome:
        updated = self._store(
            "increment_corroboration", self.store.increment_corroboration, target.record.incident_id,
        )
        logger.info(
            "report merged into incident_id=%s distance=%.0fm corroboration=%d",
            updated.incident_id, target.distance_m, updated.corroboration_count,
        )
        safe_broadcast(self.notifier, UPVOTE_UPDATE, {
            "incident_id": updated.incident_id,
            "corroboration_count": updated.corroboration_count,
            "category": updated.category,
            "location": updated.location.to_dict() if updated.location else None,
        })
        return ReportOutcome(
            status=MERGED,
            incident=updated,
            message="Your report was merged with an existing incident nearby",
        )

    def _analyze(self, report: IncidentReport) -> dict:
        if self.analyzer is None:
            return default_analysis()
        try:
            analysis = dict(self.analyzer.analyze(report) or {})
        except Exception as e:
            logger.warning("analyzer failed: %s", e)
            return default_analysis()
        if analysis.get("severity") not in VALID_SEVERITIES:
            analysis["severity"] = Severity.MEDIUM.value
        return analysis

    def check_duplicates(
        self,
        report: IncidentReport,
        now: Optional[datetime] = None,
        *,
        use_oracle: bool = True,
    ) -> list[DuplicateCandidate]:
        """Advisory duplicate list for a (prospective) report; never blocks anything."""
        now = ensure_utc(now or report.received_at or utcnow())
        category = report.category.value if self.duplicate_same_category else None
        nearby = self._store(
            "find_near",
            self.store.find_near,
            report.location,
            DUPLICATE_RADIUS_M,
            now - DUPLICATE_WINDOW,
            category,
            TERMINAL_STATUSES,
        )
        candidates = score_candidates(report, nearby, now)
        if use_oracle:
            candidates = semantic_fusion(report, candidates, self.oracle, timeout=self.oracle_timeout)
        return candidates

    # -------------------------------------------------------------------------
    # Analysis on demand
    # -------------------------------------------------------------------------
    def reanalyze(self, incident_id: str, now: Optional[datetime] = None) -> RankedIncident:
        """Re-run severity analysis on a stored incident; severity and ai_analysis are replaced."""
        record = self._require(incident_id)
        analysis = self._analyze(IncidentReport(
            category=record.category,
            description=record.description,
            location=record.location,
        ))
        updated = self._store(
            "update", self.store.update, incident_id, severity=analysis["severity"], ai_analysis=analysis,
        )
        ranked = self._ranked(updated, None, now)
        logger.info(
            "incident reanalyzed incident_id=%s severity=%s priority=%d",
            incident_id, updated.severity, ranked.priority,
        )
        safe_broadcast(self.notifier, INCIDENT_UPDATED, {
            "incident_id": incident_id,
            "status": updated.status,
            "severity": updated.severity,
            "priority": ranked.priority,
            "updated_at": updated.updated_at.isoformat() if updated.updated_at else None,
        })
        return ranked

    def analyze_text(self, description: Optional[str], category: Optional[str] = None) -> dict:
        """Analysis for a draft description; nothing is stored or broadcast."""
        text = (description or "").strip() if isinstance(description, str) or description is None else ""
        if not text:
            raise ReportValidationError(["description is required"])
        cat = parse_category(category) if category else Category.OTHER
        return self._analyze(IncidentReport(category=cat, description=text, location=None))

    # -------------------------------------------------------------------------
    # Queue and reads
    # -------------------------------------------------------------------------
    def priority_queue(
        self,
        responder: Optional[GeoPoint] = None,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[RankedIncident]:
        active = self._store(
            "list_incidents", self.store.list_incidents, exclude_statuses=TERMINAL_STATUSES, newest_first=False,
        )
        return build_priority_queue(
            active, responder, limit if limit is not None else config.queue_limit(), now,
        )

    def list_incidents(
        self,
        *,
        category: Optional[str] = None,
        status: Optional[str] = None,
        severity: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        near: Optional[GeoPoint] = None,
        radius_m: Optional[float] = None,
        sort_by_priority: bool = False,
        limit: int = 50,
        page: int = 1,
        now: Optional[datetime] = None,
    ) -> IncidentPage:
        records = self._store(
            "list_incidents",
            self.store.list_incidents,
            category=category,
            status=status,
            severity=severity,
            since=since,
            until=until,
            near=near,
            radius_m=radius_m,
        )
        now = ensure_utc(now) if now is not None else utcnow()
        if sort_by_priority:
            ranked = rank_incidents(records, near, now)
        else:
            ranked = [self._ranked(r, near, now) for r in records]
        start = (page - 1) * limit
        return IncidentPage(incidents=ranked[start:start + limit], total=len(ranked), page=page, limit=limit)

    def get_incident(
        self,
        incident_id: str,
        responder: Optional[GeoPoint] = None,
        now: Optional[datetime] = None,
    ) -> RankedIncident:
        return self._ranked(self._require(incident_id), responder, now)

    def _ranked(self, record, responder, now) -> RankedIncident:
        score = calculate_priority(record, responder, now)
        return RankedIncident(record=record, priority=score, priority_level=priority_level(score))

    def stats(self, now: Optional[datetime] = None) -> dict:
        return incident_stats(self._store("list_incidents", self.store.list_incidents), now)

    # -------------------------------------------------------------------------
    # Authority and community actions
    # -------------------------------------------------------------------------
    def upvote(self, incident_id: str) -> IncidentRecord:
        updated = self._store("increment_corroboration", self.store.increment_corroboration, incident_id)
        safe_broadcast(self.notifier, UPVOTE_UPDATE, {
            "incident_id": updated.incident_id,
            "corroboration_count": updated.corroboration_count,
            "category": updated.category,
        })
        return updated

    def verify(self, incident_id: str) -> IncidentRecord:
        updated = self._store(
            "update", self.store.update, incident_id, verified=True, status=Status.VERIFIED.value,
        )
        logger.info("incident verified incident_id=%s", incident_id)
        safe_broadcast(self.notifier, INCIDENT_VERIFIED, {"incident_id": incident_id, "verified": True})
        return updated

    def update_status(
        self,
        incident_id: str,
        status: Optional[str] = None,
        responder_notes: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> IncidentRecord:
        fields = {}
        if status:
            fields["status"] = validate_status(status)
        if responder_notes:
            fields["responder_notes"] = responder_notes
        if assigned_to:
            fields["assigned_to"] = assigned_to
        if not fields:
            return self._require(incident_id)
        updated = self._store("update", self.store.update, incident_id, **fields)
        logger.info("incident updated incident_id=%s fields=%s", incident_id, sorted(fields))
        safe_broadcast(self.notifier, INCIDENT_UPDATED, {
            "incident_id": incident_id,
            "status": updated.status,
            "updated_at": updated.updated_at.isoformat() if updated.updated_at else None,
        })
        return updated

    def delete(self, incident_id: str) -> IncidentRecord:
        removed = self._store("delete", self.store.delete, incident_id)
        logger.info("incident deleted incident_id=%s", incident_id)
        safe_broadcast(self.notifier, INCIDENT_DELETED, {"incident_id": incident_id})
        return removed
