"""
proximity.py — "Which hazards are near this point?"

The store answers with a $geoNear aggregation on the 2dsphere index; this
engine validates the query, converts km → m, re-checks every hit with the
haversine formula (same earth radius as the index) and returns the hits
nearest first, each annotated with distance_km.
"""

import logging
import math
from typing import Optional

from resq.core.config import settings
from resq.core.errors import ValidationError
from resq.models.hazard_report import NearbyReport
from resq.services.geo import coordinate_errors, haversine_m
from resq.services.report_store import ReportStore

logger = logging.getLogger(__name__)


class ProximityQueryEngine:
    def __init__(self, store: ReportStore, max_results: Optional[int] = None):
        self._store = store
        self._max_results = max_results or settings.nearby_max_results

    async def find_nearby(
        self,
        lat: float,
        lng: float,
        radius_km: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> list[NearbyReport]:
        bad = coordinate_errors(lat, lng)
        if bad:
            raise ValidationError(f"Invalid coordinates: {', '.join(bad)}", bad)

        if radius_km is None:
            radius_km = settings.nearby_default_radius_km
        if not math.isfinite(radius_km):
            raise ValidationError(f"Invalid radius: {radius_km}", ["radius"])
        limit = min(limit or self._max_results, self._max_results)
        if radius_km <= 0 or limit <= 0:
            return []

        radius_m = radius_km * 1000
        hits = await self._store.find_near(lat, lng, radius_m, limit)

        ranked = []
        for report, _index_distance in hits:
            distance = haversine_m(lat, lng, report.location.lat, report.location.lng)
            if distance <= radius_m:
                ranked.append((distance, report))
        ranked.sort(key=lambda pair: pair[0])

        logger.debug("Nearby (%.4f, %.4f, %.1f km): %d hits", lat, lng, radius_km, len(ranked))
        return [
            NearbyReport(**report.model_dump(), distance_km=round(distance / 1000, 3))
            for distance, report in ranked[:limit]
        ]
