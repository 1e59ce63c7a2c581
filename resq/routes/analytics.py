"""
analytics.py — Dashboard analytics routes.

Routes:
  GET /api/analytics            — counts, breakdowns and daily trend for ?timeframe
  GET /api/analytics/dashboard  — summary cards + hazard chart with period deltas
  GET /api/analytics/export     — analytics as JSON or a Metric,Value CSV download

timeframe is one of 7d | 30d | 90d | 1y; anything else falls back to 30d.
"""

import csv
import io
import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from resq.core.config import settings
from resq.core.errors import ValidationError
from resq.core.rate_limit import limiter
from resq.core.timeutil import utcnow
from resq.models.analytics import AnalyticsExport, AnalyticsResponse, DashboardResponse
from resq.routes.deps import get_aggregator, get_dashboard
from resq.services.aggregator import DEFAULT_TIMEFRAME, AnalyticsAggregator
from resq.services.dashboard import DashboardSummarizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

EXPORT_FILENAME = "resq-analytics.csv"


@router.get("", response_model=AnalyticsResponse)
async def get_analytics(
    timeframe: str = Query(default=DEFAULT_TIMEFRAME, description="7d | 30d | 90d | 1y"),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
):
    return await aggregator.analytics(timeframe)


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard_summary(dashboard: DashboardSummarizer = Depends(get_dashboard)):
    return await dashboard.summarize()


@router.get("/export")
@limiter.limit(settings.export_rate_limit)
async def export_analytics(
    request: Request,
    fmt: str = Query(default="json", alias="format"),
    timeframe: str = Query(default=DEFAULT_TIMEFRAME),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
):
    """
    Export the analytics payload.

    Supported formats: json, csv
    """
    fmt = fmt.lower()
    if fmt not in ("json", "csv"):
        raise ValidationError(f"Unsupported format '{fmt}'. Use 'json' or 'csv'.", ["format"])

    analytics = await aggregator.analytics(timeframe)
    export = AnalyticsExport(**analytics.model_dump(), generated=utcnow())

    if fmt == "json":
        return export

    return Response(
        content=analytics_to_csv(export),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


def analytics_to_csv(export: AnalyticsExport) -> str:
    """Two-column Metric,Value rows: summary first, then each breakdown bucket."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    summary = export.summary
    writer.writerow(["Metric", "Value"])
    writer.writerow(["Timeframe", export.timeframe])
    writer.writerow(["Generated", export.generated.isoformat()])
    writer.writerow(["Total Reports", summary.total_reports])
    writer.writerow(["Active Incidents", summary.active_incidents])
    writer.writerow(["Resolved Today", summary.resolved_today])
    writer.writerow(["Avg Response Time (min)", summary.avg_response_time])
    for item in export.breakdown.hazard_types:
        writer.writerow([f"Hazard: {item.hazard_type}", item.count])
    for item in export.breakdown.severity:
        writer.writerow([f"Severity: {item.severity}", item.count])
    for item in export.breakdown.status:
        writer.writerow([f"Status: {item.status}", item.count])
    return buf.getvalue()
