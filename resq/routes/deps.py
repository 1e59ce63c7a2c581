"""
deps.py — FastAPI providers that hand each request its services.

The database handle comes from get_db(); everything downstream receives
its collaborators explicitly, so tests can swap the database with
app.dependency_overrides[get_db] and exercise the real services.
"""

from fastapi import Depends, HTTPException

from resq.core.database import get_db
from resq.services.aggregator import AnalyticsAggregator
from resq.services.dashboard import DashboardSummarizer
from resq.services.lifecycle import ReportLifecycle
from resq.services.proximity import ProximityQueryEngine
from resq.services.report_store import ReportStore


def get_report_store(db=Depends(get_db)) -> ReportStore:
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return ReportStore(db)


def get_lifecycle(store: ReportStore = Depends(get_report_store)) -> ReportLifecycle:
    return ReportLifecycle(store)


def get_proximity_engine(store: ReportStore = Depends(get_report_store)) -> ProximityQueryEngine:
    return ProximityQueryEngine(store)


def get_aggregator(store: ReportStore = Depends(get_report_store)) -> AnalyticsAggregator:
    return AnalyticsAggregator(store)


def get_dashboard(
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
) -> DashboardSummarizer:
    return DashboardSummarizer(aggregator)
