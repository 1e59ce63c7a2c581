"""
test_dashboard.py — Tests for the dashboard summary cards and period deltas.
"""

from datetime import timedelta

import pytest

from fakes import submission
from resq.core.timeutil import local_midnight
from resq.services.aggregator import AnalyticsAggregator
from resq.services.dashboard import DashboardSummarizer, percent_change


@pytest.fixture()
def dashboard(store, clock):
    return DashboardSummarizer(AnalyticsAggregator(store, clock=clock))


async def _submit_at(lifecycle, clock, when, **overrides):
    now = clock.now
    clock.now = when
    try:
        return await lifecycle.submit(submission(**overrides))
    finally:
        clock.now = now


@pytest.mark.parametrize(
    "current,previous,expected",
    [
        (12, 10, "+20%"),
        (9, 10, "-10%"),
        (20, 10, "+100%"),
        (10, 10, "0%"),
        (5, 0, "new"),
        (0, 0, "0%"),
        (0, 4, "-100%"),
        (100.4, 100, "0%"),
    ],
)
def test_percent_change(current, previous, expected):
    assert percent_change(current, previous) == expected


class TestSummarize:
    async def test_empty(self, dashboard):
        result = await dashboard.summarize()
        cards = result.summary

        assert cards.total_reports.value == 0
        assert cards.total_reports.change == "0%"
        assert cards.active_incidents.value == 0
        assert cards.active_incidents.change == "All clear"
        assert cards.resolved_today.value == 0
        assert cards.avg_response_time.value == 0
        assert result.hazard_analytics == []

    async def test_period_over_period(self, dashboard, lifecycle, clock):
        now = clock()
        for days in (1, 2):
            await _submit_at(lifecycle, clock, now - timedelta(days=days), hazardType="Rip Current")
        resolved = await _submit_at(lifecycle, clock, now - timedelta(days=1), hazardType="High Waves")
        await _submit_at(lifecycle, clock, now - timedelta(days=40), hazardType="Rip Current")
        await lifecycle.change_status(resolved.id, "Resolved")

        result = await dashboard.summarize()
        cards = result.summary

        assert cards.total_reports.value == 3
        assert cards.total_reports.change == "+200%"
        assert cards.active_incidents.value == 3
        assert cards.active_incidents.change == "Requiring attention"
        assert cards.resolved_today.value == 1
        assert cards.resolved_today.change == "new"
        assert cards.avg_response_time.value == 1440.0
        assert cards.avg_response_time.change == "new"
        assert [(h.hazard_type, h.count, h.change) for h in result.hazard_analytics] == [
            ("Rip Current", 2, "+100%"),
            ("High Waves", 1, "new"),
        ]

    async def test_resolved_today_against_yesterday(self, dashboard, lifecycle, clock):
        now = clock()
        first = await _submit_at(lifecycle, clock, now - timedelta(days=3))
        second = await _submit_at(lifecycle, clock, now - timedelta(days=3))

        clock.now = local_midnight(now) - timedelta(hours=1)
        await lifecycle.change_status(first.id, "Resolved")
        clock.now = now
        await lifecycle.change_status(second.id, "Resolved")

        cards = (await dashboard.summarize()).summary

        assert cards.resolved_today.value == 1
        assert cards.resolved_today.change == "0%"
        assert cards.active_incidents.change == "All clear"

    async def test_serializes_camel_case(self, dashboard, lifecycle, clock):
        await _submit_at(lifecycle, clock, clock() - timedelta(hours=1))
        payload = (await dashboard.summarize()).model_dump(by_alias=True)

        assert set(payload["summary"]) == {
            "totalReports", "activeIncidents", "resolvedToday", "avgResponseTime",
        }
        assert payload["hazardAnalytics"][0]["hazardType"] == "Rip Current"
