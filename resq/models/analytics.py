"""
analytics.py — Response schemas for GET /api/analytics and the dashboard.

AnalyticsResponse   — { timeframe, summary, breakdown, trends }
AnalyticsExport     — AnalyticsResponse + generation timestamp
DashboardResponse   — summary cards + per-hazard counts with change strings
"""

from datetime import datetime

from pydantic import Field

from resq.models.hazard_report import CamelModel


# ── Breakdown rows ────────────────────────────────────────────────────────────

class HazardTypeCount(CamelModel):
    hazard_type: str
    count: int
    critical_count: int = 0   # reports with severity "Critical Emergency"


class SeverityCount(CamelModel):
    severity: str
    count: int


class StatusCount(CamelModel):
    status: str
    count: int


class LocationCount(CamelModel):
    details: str
    count: int
    # One entry per report in the group, for badge rendering on the client
    severities: list[str] = Field(default_factory=list)


class DailyCount(CamelModel):
    year: int
    month: int
    day: int
    count: int


# ── /api/analytics ────────────────────────────────────────────────────────────

class AnalyticsSummary(CamelModel):
    total_reports: int = 0
    active_incidents: int = 0
    resolved_today: int = 0
    avg_response_time: float = 0.0   # minutes


class AnalyticsBreakdown(CamelModel):
    hazard_types: list[HazardTypeCount] = Field(default_factory=list)
    severity: list[SeverityCount] = Field(default_factory=list)
    status: list[StatusCount] = Field(default_factory=list)
    geographic: list[LocationCount] = Field(default_factory=list)


class AnalyticsTrends(CamelModel):
    daily: list[DailyCount] = Field(default_factory=list)


class AnalyticsResponse(CamelModel):
    timeframe: str
    summary: AnalyticsSummary
    breakdown: AnalyticsBreakdown
    trends: AnalyticsTrends


class AnalyticsExport(AnalyticsResponse):
    generated: datetime


# ── /api/analytics/dashboard ──────────────────────────────────────────────────

class DashboardCard(CamelModel):
    value: int | float
    change: str   # e.g. "+12%", "-3%", "0%", "new"


class DashboardSummary(CamelModel):
    total_reports: DashboardCard
    active_incidents: DashboardCard
    resolved_today: DashboardCard
    avg_response_time: DashboardCard


class HazardTrend(CamelModel):
    hazard_type: str
    count: int
    change: str


class DashboardResponse(CamelModel):
    summary: DashboardSummary
    hazard_analytics: list[HazardTrend] = Field(default_factory=list)
