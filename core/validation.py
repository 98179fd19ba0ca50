"""Input validation: reject malformed reports before any lookup runs."""

import math
from datetime import datetime
from typing import Any, Optional

from core.errors import ReportValidationError
from core.models import Category, GeoPoint, IncidentReport, Status, ensure_utc

# Status values an authority may set; Pending is read-only legacy data.
SETTABLE_STATUSES = tuple(s.value for s in Status if s is not Status.PENDING)


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def coordinate_problems(lat: Any, lng: Any) -> list[str]:
    problems = []
    lat_f = _as_float(lat)
    lng_f = _as_float(lng)
    if lat_f is None:
        problems.append("location.lat must be a number")
    elif not -90.0 <= lat_f <= 90.0:
        problems.append("location.lat must be within [-90, 90]")
    if lng_f is None:
        problems.append("location.lng must be a number")
    elif not -180.0 <= lng_f <= 180.0:
        problems.append("location.lng must be within [-180, 180]")
    return problems


def validate_point(lat: Any, lng: Any) -> GeoPoint:
    problems = coordinate_problems(lat, lng)
    if problems:
        raise ReportValidationError(problems)
    return GeoPoint(float(lat), float(lng))


def parse_category(value: Any) -> Category:
    if isinstance(value, Category):
        return value
    try:
        return Category(str(value).strip())
    except ValueError:
        allowed = ", ".join(c.value for c in Category)
        raise ReportValidationError([f"Invalid category {value!r}. Must be one of: {allowed}"]) from None


def validate_status(value: Any) -> str:
    if value not in SETTABLE_STATUSES:
        raise ReportValidationError(
            [f"Invalid status {value!r}. Must be one of: {', '.join(SETTABLE_STATUSES)}"]
        )
    return value


def validate_report(
    category: Any,
    description: Any,
    lat: Any,
    lng: Any,
    *,
    reported_by: Optional[str] = None,
    media_url: Optional[str] = None,
    address: Optional[str] = None,
    received_at: Optional[datetime] = None,
    require_description: bool = True,
) -> IncidentReport:
    """Build an IncidentReport or raise ReportValidationError listing every problem found."""
    problems = []
    text = (description or "").strip() if isinstance(description, str) or description is None else None
    if text is None:
        problems.append("description must be text")
    elif require_description and not text:
        problems.append("description is required")

    cat = None
    if category is None or (isinstance(category, str) and not category.strip()):
        problems.append("category is required")
    else:
        try:
            cat = parse_category(category)
        except ReportValidationError as e:
            problems.extend(e.problems)

    problems.extend(coordinate_problems(lat, lng))
    if problems:
        raise ReportValidationError(problems)

    return IncidentReport(
        category=cat,
        description=text,
        location=GeoPoint(float(lat), float(lng)),
        reported_by=(reported_by or "").strip() or None,
        media_url=media_url or None,
        address=(address or "").strip(),
        received_at=ensure_utc(received_at) if received_at else None,
    )
