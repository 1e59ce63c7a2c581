"""
lifecycle.py — The single write gate for hazard reports.

Every create and every operator change goes through ReportLifecycle:

  submit()         validate → derive priority → store.insert()
  change_status()  overwrite status; the first move to "Resolved" also
                   records resolved_at + response_time (exactly once)
  verify()         verified=True, verified_at=now, verified_by if given
  apply_update()   PUT /api/reports/{id} body, written in one store call

STATUS MACHINE
──────────────
  Active → Under Review | Resolved | Closed → Resolved | Closed → Closed

No transition is refused; any valid status value is accepted. The only
guarded behaviour is the resolution stamp, which is written through the
store's compare-and-set so two concurrent "Resolved" requests cannot both
record it.
"""

import logging
from datetime import datetime
from typing import Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from resq.core.errors import ValidationError
from resq.core.timeutil import Clock, utcnow
from resq.models.hazard_report import (
    REPORT_STATUSES,
    STATUS_ACTIVE,
    STATUS_RESOLVED,
    HazardReport,
    ReportCreate,
    ReportUpdate,
)
from resq.services.report_store import ReportStore

logger = logging.getLogger(__name__)

SEVERITY_PRIORITY = {
    "Low Risk": 1,
    "Moderate Risk": 2,
    "High Risk": 4,
    "Critical Emergency": 5,
}
DEFAULT_PRIORITY = 2

_M = TypeVar("_M", bound=BaseModel)


def severity_to_priority(severity: str) -> int:
    """Triage priority (1-5) for a severity; unmapped values get 2."""
    return SEVERITY_PRIORITY.get(severity, DEFAULT_PRIORITY)


def response_minutes(created_at: datetime, resolved_at: datetime) -> int:
    """Whole minutes between creation and resolution, rounded to nearest."""
    return round((resolved_at - created_at).total_seconds() / 60)


def _coerce(payload: Union[_M, Mapping], model: Type[_M]) -> _M:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError.from_errors(exc.errors()) from exc


class ReportLifecycle:
    def __init__(self, store: ReportStore, clock: Clock = utcnow):
        self._store = store
        self._now = clock

    async def submit(self, payload: Union[ReportCreate, Mapping]) -> HazardReport:
        """Validate a submission and persist it as a new Active report."""
        report_in = _coerce(payload, ReportCreate)
        priority = report_in.priority or severity_to_priority(report_in.severity)

        report = await self._store.insert({
            "location": report_in.location.model_dump(),
            "hazard_type": report_in.hazard_type,
            "severity": report_in.severity,
            "description": report_in.description,
            "evidence": [a.model_dump() for a in report_in.evidence],
            "contact": report_in.contact.model_dump() if report_in.contact else {},
            "status": STATUS_ACTIVE,
            "priority": priority,
            "assigned_to": None,
            "resolved_at": None,
            "response_time": None,
            "source": report_in.source,
            "verified": False,
            "verified_by": None,
            "verified_at": None,
        })
        logger.info(
            "Report %s submitted (%s, %s, priority %d)",
            report.id, report.hazard_type, report.severity, report.priority,
        )
        return report

    async def change_status(
        self, report_id: str, new_status: str, actor: Optional[str] = None
    ) -> HazardReport:
        if new_status not in REPORT_STATUSES:
            raise ValidationError(f"Invalid status '{new_status}'", ["status"])
        return await self._write(report_id, {"status": new_status}, actor)

    async def verify(self, report_id: str, verified_by: Optional[str] = None) -> HazardReport:
        """Mark verified and stamp verified_at; an existing verifier is kept unless one is given."""
        patch: dict = {"verified": True}
        if verified_by is not None:
            patch["verified_by"] = verified_by
        return await self._write(report_id, patch, verified_by)

    async def apply_update(
        self,
        report_id: str,
        changes: Union[ReportUpdate, Mapping],
        actor: Optional[str] = None,
    ) -> HazardReport:
        """
        Apply an operator PUT body as a single store write.

        Only the fields present in the body are touched. A status of
        "Resolved" on an unresolved report also records the resolution in
        that same write.
        """
        patch = _coerce(changes, ReportUpdate).model_dump(exclude_unset=True)
        for name in ("status", "verified"):
            if name in patch and patch[name] is None:
                del patch[name]
        if not patch:
            return await self._store.get(report_id)
        return await self._write(report_id, patch, actor or patch.get("assigned_to"))

    async def _write(self, report_id: str, patch: dict, actor: Optional[str]) -> HazardReport:
        """
        Persist *patch* with exactly one successful store write.

        Resolving an unresolved report goes through the store's
        compare-and-set; when that loses to a concurrent resolution the
        patch is written plainly and the first resolution stamp stands.
        """
        new_status = patch.get("status")
        if new_status == STATUS_RESOLVED:
            current = await self._store.get(report_id)
            if current.resolved_at is None:
                resolved_at = self._now()
                minutes = response_minutes(current.created_at, resolved_at)
                resolved = await self._store.resolve(report_id, resolved_at, minutes, patch)
                if resolved is not None:
                    logger.info(
                        "Report %s resolved by %s after %d min",
                        report_id, actor or "unknown", minutes,
                    )
                    return resolved
                # Lost the compare-and-set: someone else recorded the resolution.
                logger.debug("Report %s already resolved concurrently", report_id)

        report = await self._store.update(report_id, patch)
        if new_status is not None:
            logger.info("Report %s status -> %s (by %s)", report_id, new_status, actor or "unknown")
        if patch.get("verified"):
            logger.info("Report %s verified by %s", report_id, report.verified_by or "unknown")
        return report
