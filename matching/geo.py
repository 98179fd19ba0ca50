"""Great-circle distance between report and incident coordinates."""

import logging
import math
from typing import Optional

from core.models import GeoPoint, IncidentRecord

logger = logging.getLogger("incident_triage.matching.geo")

# Earth radius in metres (mean)
EARTH_RADIUS_M = 6_371_000


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in metres between two (lat, lng) points. Exactly 0 for identical points, symmetric."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_m(a.lat, a.lng, b.lat, b.lng)


def distance_to_record(point: GeoPoint, record: IncidentRecord) -> Optional[float]:
    """Distance to a stored incident, or None (logged) when the record has no usable coordinates."""
    loc = record.location
    if loc is None:
        logger.warning("skipping incident_id=%s: missing coordinates", record.incident_id)
        return None
    return distance_m(point, loc)
