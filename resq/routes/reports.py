"""
reports.py — Hazard report routes.

Routes:
  GET    /api/reports                  — paginated, filterable listing
  GET    /api/reports/recent           — 10 newest reports
  GET    /api/reports/location/nearby  — reports within ?radius km of ?lat,?lng
  GET    /api/reports/{id}             — single report
  POST   /api/reports                  — submit a new report (rate limited)
  PUT    /api/reports/{id}             — operator update (status / assignment / verification)
  DELETE /api/reports/{id}             — administrative delete

Evidence files are uploaded by a separate service; the submission body only
carries the attachment references it returned.

Handlers don't catch domain errors: ValidationError → 400, NotFound → 404
and StoreError → 500 are mapped by the exception handlers in resq/main.py.

  curl -X POST http://localhost:8000/api/reports \\
    -H 'Content-Type: application/json' \\
    -d '{"location": {"lat": 15.2993, "lng": 74.124, "details": "Calangute Beach, Goa"},
         "hazardType": "Rip Current", "severity": "Critical Emergency",
         "description": "Strong rip current, swimmers pulled out"}'

  curl "http://localhost:8000/api/reports/location/nearby?lat=15.3&lng=74.12&radius=5"
"""

import logging
from math import ceil
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Header, Query, Request

from resq.core.config import settings
from resq.core.rate_limit import limiter
from resq.models.hazard_report import (
    HazardReport,
    HazardType,
    MessageResponse,
    NearbyReport,
    ReportCreate,
    ReportListResponse,
    ReportStatus,
    ReportSubmitResponse,
    ReportUpdate,
    ReportUpdateResponse,
    Severity,
)
from resq.routes.deps import get_lifecycle, get_proximity_engine, get_report_store
from resq.services.lifecycle import ReportLifecycle
from resq.services.proximity import ProximityQueryEngine
from resq.services.report_store import ReportStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])

RECENT_LIMIT = 10


# ── Reads ─────────────────────────────────────────────────────────────────────

@router.get("", response_model=ReportListResponse)
async def list_reports(
    page:        int                    = Query(default=1, ge=1),
    limit:       int                    = Query(default=10, ge=1, le=100),
    status:      Optional[ReportStatus] = Query(default=None),
    severity:    Optional[Severity]     = Query(default=None),
    hazard_type: Optional[HazardType]   = Query(default=None, alias="hazardType"),
    sort_by:     str                    = Query(default="createdAt", alias="sortBy"),
    sort_order:  Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    store: ReportStore = Depends(get_report_store),
):
    """Return a page of reports, filtered by exact status / severity / hazard type."""
    reports, total = await store.query(
        status=status,
        severity=severity,
        hazard_type=hazard_type,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=limit,
    )
    return ReportListResponse(
        reports=reports,
        total_pages=ceil(total / limit) if total else 0,
        current_page=page,
        total=total,
    )


@router.get("/recent", response_model=list[HazardReport])
async def recent_reports(store: ReportStore = Depends(get_report_store)):
    """Newest reports first, for the dashboard's activity list."""
    return await store.recent(RECENT_LIMIT)


@router.get("/location/nearby", response_model=list[NearbyReport])
async def nearby_reports(
    lat:    float           = Query(...),
    lng:    float           = Query(...),
    radius: Optional[float] = Query(default=None, description="Search radius in km (default 10)"),
    engine: ProximityQueryEngine = Depends(get_proximity_engine),
):
    """Reports within `radius` km of the point, nearest first (max 20)."""
    return await engine.find_nearby(lat, lng, radius_km=radius)


@router.get("/{report_id}", response_model=HazardReport)
async def get_report(report_id: str, store: ReportStore = Depends(get_report_store)):
    return await store.get(report_id)


# ── Writes ────────────────────────────────────────────────────────────────────

@router.post("", response_model=ReportSubmitResponse, status_code=201)
@limiter.limit(settings.submit_rate_limit)
async def submit_report(
    request: Request,
    payload: ReportCreate,
    lifecycle: ReportLifecycle = Depends(get_lifecycle),
):
    """Submit a new hazard report. Priority is derived from severity unless given."""
    report = await lifecycle.submit(payload)
    return ReportSubmitResponse(report_id=report.id, report=report)


@router.put("/{report_id}", response_model=ReportUpdateResponse)
async def update_report(
    report_id: str,
    payload: ReportUpdate,
    operator: Optional[str] = Header(default=None, alias="X-Operator"),
    lifecycle: ReportLifecycle = Depends(get_lifecycle),
):
    """Change status, assignment or verification. Other body fields are ignored."""
    report = await lifecycle.apply_update(report_id, payload, actor=operator)
    return ReportUpdateResponse(report=report)


@router.delete("/{report_id}", response_model=MessageResponse)
async def delete_report(report_id: str, store: ReportStore = Depends(get_report_store)):
    await store.delete(report_id)
    logger.info("Report %s deleted", report_id)
    return MessageResponse(message="Report deleted successfully")
