"""
dashboard.py — Fixed-shape payload for the dashboard's summary widgets.

Four cards (value + change string) and the per-hazard chart data. Changes
are real period-over-period comparisons:

  totalReports, avgResponseTime, per-hazard counts
      trailing 30 days vs the 30 days before that
  resolvedToday
      today vs yesterday (local calendar days)
  activeIncidents
      current-state count, so its "change" is a status label instead
"""

from datetime import timedelta

from resq.core.timeutil import local_midnight
from resq.models.analytics import (
    DashboardCard,
    DashboardResponse,
    DashboardSummary,
    HazardTrend,
)
from resq.services.aggregator import AnalyticsAggregator

DASHBOARD_WINDOW = timedelta(days=30)


def percent_change(current: float, previous: float) -> str:
    """(current - previous) / previous as a signed whole percentage."""
    if previous == 0:
        return "new" if current > 0 else "0%"
    pct = round((current - previous) / previous * 100)
    return "0%" if pct == 0 else f"{pct:+d}%"


class DashboardSummarizer:
    def __init__(self, aggregator: AnalyticsAggregator):
        self._aggregator = aggregator

    async def summarize(self) -> DashboardResponse:
        agg = self._aggregator
        now = agg.now()
        current = await agg.window_stats(now - DASHBOARD_WINDOW, now)
        previous = await agg.window_stats(now - 2 * DASHBOARD_WINDOW, now - DASHBOARD_WINDOW)

        active = await agg.active_incidents()
        today = local_midnight(now)
        resolved_today = await agg.resolved_between(today)
        resolved_yesterday = await agg.resolved_between(today - timedelta(days=1), today)

        previous_counts = {h.hazard_type: h.count for h in previous.hazard_types}
        hazard_analytics = [
            HazardTrend(
                hazard_type=h.hazard_type,
                count=h.count,
                change=percent_change(h.count, previous_counts.get(h.hazard_type, 0)),
            )
            for h in current.hazard_types
        ]

        return DashboardResponse(
            summary=DashboardSummary(
                total_reports=DashboardCard(
                    value=current.total_reports,
                    change=percent_change(current.total_reports, previous.total_reports),
                ),
                active_incidents=DashboardCard(
                    value=active,
                    change="Requiring attention" if active else "All clear",
                ),
                resolved_today=DashboardCard(
                    value=resolved_today,
                    change=percent_change(resolved_today, resolved_yesterday),
                ),
                avg_response_time=DashboardCard(
                    value=current.avg_response_time,
                    change=percent_change(current.avg_response_time, previous.avg_response_time),
                ),
            ),
            hazard_analytics=hazard_analytics,
        )
