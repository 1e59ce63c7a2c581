"""
aggregator.py — Time-windowed analytics over hazard reports.

One pass over ReportStore.scan() feeds a _WindowTally, which produces every
windowed figure at once:

  total_reports          reports created in the window
  avg_response_time      mean response_time of Resolved reports in the window
  hazard_types           {hazard_type, count, critical_count}, count desc
  severity / status      group-by counts
  geographic             top 10 location.details by count, with severities
  daily                  per-UTC-day counts for the trailing 7 days

The current-state figures are plain counts and ignore the timeframe:

  active_incidents       status in (Active, Under Review)
  resolved_today         Resolved with resolved_at >= local midnight

ORDERING
────────
Groups are created in the order their first report appears in the scan
(creation order), and every ranking uses Python's stable sort, so equal
counts keep that order.

Empty collections produce zeros and empty lists, never errors or NaN.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from resq.core.timeutil import Clock, local_midnight, utcnow
from resq.models.analytics import (
    AnalyticsBreakdown,
    AnalyticsResponse,
    AnalyticsSummary,
    AnalyticsTrends,
    DailyCount,
    HazardTypeCount,
    LocationCount,
    SeverityCount,
    StatusCount,
)
from resq.models.hazard_report import (
    CRITICAL_SEVERITY,
    OPEN_STATUSES,
    STATUS_RESOLVED,
    HazardReport,
)
from resq.services.report_store import ReportStore

logger = logging.getLogger(__name__)

TIMEFRAMES = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "1y": timedelta(days=365),
}
DEFAULT_TIMEFRAME = "30d"
TREND_WINDOW = timedelta(days=7)
TOP_LOCATIONS = 10


def resolve_timeframe(timeframe: Optional[str]) -> tuple[str, timedelta]:
    """Map a timeframe name to its duration; unknown names fall back to 30d."""
    if timeframe in TIMEFRAMES:
        return timeframe, TIMEFRAMES[timeframe]
    return DEFAULT_TIMEFRAME, TIMEFRAMES[DEFAULT_TIMEFRAME]


@dataclass
class WindowStats:
    """Everything computed from one scan of a creation-time window."""
    total_reports: int = 0
    avg_response_time: float = 0.0
    hazard_types: list[HazardTypeCount] = field(default_factory=list)
    severity: list[SeverityCount] = field(default_factory=list)
    status: list[StatusCount] = field(default_factory=list)
    geographic: list[LocationCount] = field(default_factory=list)
    daily: list[DailyCount] = field(default_factory=list)


class _WindowTally:
    def __init__(self, trend_since: Optional[datetime]):
        self.trend_since = trend_since
        self.total = 0
        self.hazards: dict[str, list[int]] = {}          # type → [count, critical]
        self.severity: Counter = Counter()
        self.status: Counter = Counter()
        self.locations: dict[str, list[str]] = {}        # details → severities
        self.days: Counter = Counter()                   # (y, m, d) → count
        self.response_sum = 0
        self.response_n = 0

    def add(self, report: HazardReport) -> None:
        self.total += 1

        bucket = self.hazards.setdefault(report.hazard_type, [0, 0])
        bucket[0] += 1
        if report.severity == CRITICAL_SEVERITY:
            bucket[1] += 1

        self.severity[report.severity] += 1
        self.status[report.status] += 1
        self.locations.setdefault(report.location.details, []).append(report.severity)

        if report.status == STATUS_RESOLVED and report.response_time is not None:
            self.response_sum += report.response_time
            self.response_n += 1

        if self.trend_since is not None and report.created_at >= self.trend_since:
            day = report.created_at.astimezone(timezone.utc)
            self.days[(day.year, day.month, day.day)] += 1

    def build(self) -> WindowStats:
        hazards = sorted(
            (HazardTypeCount(hazard_type=name, count=c, critical_count=crit)
             for name, (c, crit) in self.hazards.items()),
            key=lambda h: h.count,
            reverse=True,
        )
        locations = sorted(
            (LocationCount(details=details, count=len(sev), severities=sev)
             for details, sev in self.locations.items()),
            key=lambda loc: loc.count,
            reverse=True,
        )[:TOP_LOCATIONS]
        avg = round(self.response_sum / self.response_n, 1) if self.response_n else 0.0

        return WindowStats(
            total_reports=self.total,
            avg_response_time=avg,
            hazard_types=hazards,
            severity=[SeverityCount(severity=k, count=v) for k, v in self.severity.items()],
            status=[StatusCount(status=k, count=v) for k, v in self.status.items()],
            geographic=locations,
            daily=[
                DailyCount(year=y, month=m, day=d, count=n)
                for (y, m, d), n in sorted(self.days.items())
            ],
        )


class AnalyticsAggregator:
    def __init__(self, store: ReportStore, clock: Clock = utcnow):
        self._store = store
        self._now = clock

    def now(self) -> datetime:
        return self._now()

    async def window_stats(
        self,
        start: datetime,
        end: Optional[datetime] = None,
        trend_since: Optional[datetime] = None,
    ) -> WindowStats:
        """Scan reports created in [start, end) and reduce them in one pass."""
        tally = _WindowTally(trend_since)
        async for report in self._store.scan(created_after=start, created_before=end):
            tally.add(report)
        return tally.build()

    async def active_incidents(self) -> int:
        return await self._store.count(statuses=OPEN_STATUSES)

    async def resolved_between(self, start: datetime, end: Optional[datetime] = None) -> int:
        return await self._store.count(
            statuses=[STATUS_RESOLVED], resolved_after=start, resolved_before=end,
        )

    async def resolved_today(self) -> int:
        return await self.resolved_between(local_midnight(self._now()))

    async def analytics(self, timeframe: Optional[str] = DEFAULT_TIMEFRAME) -> AnalyticsResponse:
        """Full analytics payload for GET /api/analytics."""
        name, duration = resolve_timeframe(timeframe)
        now = self._now()
        # Every timeframe is at least 7 days long, so the trend window is
        # covered by the same scan.
        stats = await self.window_stats(now - duration, trend_since=now - TREND_WINDOW)
        active = await self.active_incidents()
        resolved_today = await self.resolved_today()

        logger.debug("Analytics %s: %d reports in window", name, stats.total_reports)
        return AnalyticsResponse(
            timeframe=name,
            summary=AnalyticsSummary(
                total_reports=stats.total_reports,
                active_incidents=active,
                resolved_today=resolved_today,
                avg_response_time=stats.avg_response_time,
            ),
            breakdown=AnalyticsBreakdown(
                hazard_types=stats.hazard_types,
                severity=stats.severity,
                status=stats.status,
                geographic=stats.geographic,
            ),
            trends=AnalyticsTrends(daily=stats.daily),
        )
