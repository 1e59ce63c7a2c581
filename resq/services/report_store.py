"""
report_store.py — MongoDB persistence for hazard reports.

The only module that talks to the `hazard_reports` collection. Services
receive a ReportStore instance; they never see raw documents.

DOCUMENT SHAPE
──────────────
  {
    "_id": ObjectId,
    "location": { "lat": 13.08, "lng": 80.27, "details": "Marina Beach" },
    "geo": { "type": "Point", "coordinates": [80.27, 13.08] },   ← 2dsphere
    "hazard_type": "Rip Current",
    "severity": "Critical Emergency",
    "status": "Active",
    "priority": 5,
    "resolved_at": null, "response_time": null,
    "created_at": ISODate(...), "updated_at": ISODate(...),
    ...
  }

ATOMICITY
─────────
Every write is a single-document operation, so MongoDB updates the
document and its index entries together: readers never see a half-written
report. An operator patch is always one $set: update() writes it as is,
resolve() folds it into a compare-and-set on `resolved_at: null`, so only
one concurrent caller can record the resolution and a failed write leaves
nothing behind.

Sorts break ties on `_id`, so reports created in the same millisecond keep
their insertion order.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import AsyncIterator, Iterable, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, GEOSPHERE, ReturnDocument
from pymongo.errors import PyMongoError

from resq.core.config import settings
from resq.core.errors import NotFound, StoreError, ValidationError
from resq.core.timeutil import Clock, utcnow
from resq.models.hazard_report import (
    HAZARD_TYPES,
    MAX_EVIDENCE,
    REPORT_SOURCES,
    REPORT_STATUSES,
    SEVERITIES,
    STATUS_RESOLVED,
    HazardReport,
)
from resq.services.geo import coordinate_errors, geo_point

logger = logging.getLogger(__name__)

# Fields an operator patch may touch
PATCHABLE_FIELDS = frozenset({"status", "assigned_to", "verified", "verified_by"})

# API sort key → document field
SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "priority": "priority",
    "severity": "severity",
    "hazardType": "hazard_type",
    "status": "status",
    "resolvedAt": "resolved_at",
}
DEFAULT_SORT = "created_at"

_SCAN_BATCH_SIZE = 500
_OLDEST_FIRST = [("created_at", ASCENDING), ("_id", ASCENDING)]
_NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


@contextmanager
def _store_op(operation: str):
    """Translate driver failures into StoreError."""
    try:
        yield
    except PyMongoError as exc:
        logger.exception("Store %s failed", operation)
        raise StoreError(operation, str(exc)) from exc


def _oid(report_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(report_id)
    except (InvalidId, TypeError):
        return None


def _doc_to_report(doc: dict) -> HazardReport:
    return HazardReport(
        id=str(doc["_id"]),
        location=doc["location"],
        hazard_type=doc["hazard_type"],
        severity=doc["severity"],
        description=doc.get("description", ""),
        evidence=doc.get("evidence") or [],
        contact=doc.get("contact") or {},
        status=doc.get("status", "Active"),
        priority=doc.get("priority", 2),
        assigned_to=doc.get("assigned_to"),
        resolved_at=doc.get("resolved_at"),
        response_time=doc.get("response_time"),
        source=doc.get("source", "Web Form"),
        verified=doc.get("verified", False),
        verified_by=doc.get("verified_by"),
        verified_at=doc.get("verified_at"),
        created_at=doc["created_at"],
        updated_at=doc.get("updated_at", doc["created_at"]),
    )


def check_invariants(doc: dict) -> list[str]:
    """Return the names of fields that violate the report invariants."""
    bad: list[str] = []
    location = doc.get("location") or {}
    bad += [f"location.{name}" for name in coordinate_errors(location.get("lat"), location.get("lng"))]
    if not location.get("details"):
        bad.append("location.details")
    if doc.get("hazard_type") not in HAZARD_TYPES:
        bad.append("hazardType")
    if doc.get("severity") not in SEVERITIES:
        bad.append("severity")
    if not doc.get("description"):
        bad.append("description")
    if doc.get("status") not in REPORT_STATUSES:
        bad.append("status")
    if doc.get("source") not in REPORT_SOURCES:
        bad.append("source")
    priority = doc.get("priority")
    if isinstance(priority, bool) or not isinstance(priority, int) or not 1 <= priority <= 5:
        bad.append("priority")
    if len(doc.get("evidence") or []) > MAX_EVIDENCE:
        bad.append("evidence")
    if (doc.get("resolved_at") is None) != (doc.get("response_time") is None):
        bad.append("responseTime")
    return bad


class ReportStore:
    """Keyed collection of hazard reports with geo and secondary indexes."""

    def __init__(self, db, collection: Optional[str] = None, clock: Clock = utcnow):
        self._col = db[collection or settings.reports_collection]
        self._now = clock

    async def ensure_indexes(self) -> None:
        with _store_op("ensure_indexes"):
            await self._col.create_index([("geo", GEOSPHERE)])
            await self._col.create_index([("hazard_type", ASCENDING), ("severity", ASCENDING)])
            await self._col.create_index([("status", ASCENDING)])
            await self._col.create_index([("created_at", DESCENDING)])
            await self._col.create_index([("resolved_at", DESCENDING)])
        logger.info("Report indexes ensured")

    # ── Writes ────────────────────────────────────────────────────────────────

    async def insert(self, fields: dict) -> HazardReport:
        """
        Persist a new report. Assigns id, created_at and updated_at.

        *fields* must already carry every required field; the full document
        is checked against the invariants before anything is written.
        """
        now = self._now()
        doc = {**fields, "created_at": now, "updated_at": now}
        bad = check_invariants(doc)
        if bad:
            raise ValidationError(f"Invalid report: {', '.join(bad)}", bad)
        location = doc["location"]
        doc["geo"] = geo_point(location["lat"], location["lng"])

        with _store_op("insert"):
            result = await self._col.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _doc_to_report(doc)

    def _patch_changes(self, patch: dict) -> dict:
        """
        Validate an operator patch and expand it into its $set fields.

        Only the keys present are written. verified=True stamps verified_at;
        verified=False clears verified_at, and verified_by too unless the
        patch names a new one.
        """
        unknown = sorted(set(patch) - PATCHABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields not updatable: {', '.join(unknown)}", unknown)
        if "status" in patch and patch["status"] not in REPORT_STATUSES:
            raise ValidationError(f"Invalid status '{patch['status']}'", ["status"])

        changes = dict(patch)
        if "verified" in changes:
            if changes["verified"]:
                changes["verified_at"] = self._now()
            else:
                changes["verified_at"] = None
                changes.setdefault("verified_by", None)
        return changes

    async def update(self, report_id: str, patch: dict) -> HazardReport:
        """Apply an operator patch (status, assigned_to, verified, verified_by) in one write."""
        changes = self._patch_changes(patch)
        return await self._set(report_id, {"_id": _oid(report_id)}, changes, "update")

    async def resolve(
        self,
        report_id: str,
        resolved_at: datetime,
        response_time: int,
        patch: Optional[dict] = None,
    ) -> Optional[HazardReport]:
        """
        Compare-and-set: mark the report Resolved only if resolved_at is unset.

        The rest of the operator *patch* goes into the same write. Returns
        the updated report, or None when the report was already resolved
        (or no longer exists); in that case nothing is written.
        """
        changes = self._patch_changes(patch or {})
        oid = _oid(report_id)
        if oid is None:
            return None
        changes.update({
            "status": STATUS_RESOLVED,
            "resolved_at": resolved_at,
            "response_time": response_time,
            "updated_at": self._now(),
        })
        with _store_op("resolve"):
            doc = await self._col.find_one_and_update(
                {"_id": oid, "resolved_at": None},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        return _doc_to_report(doc) if doc else None

    async def delete(self, report_id: str) -> None:
        oid = _oid(report_id)
        if oid is None:
            raise NotFound()
        with _store_op("delete"):
            result = await self._col.delete_one({"_id": oid})
        if result.deleted_count == 0:
            raise NotFound()

    async def _set(self, report_id: str, query: dict, changes: dict, operation: str) -> HazardReport:
        if query["_id"] is None:
            raise NotFound()
        with _store_op(operation):
            doc = await self._col.find_one_and_update(
                query,
                {"$set": {**changes, "updated_at": self._now()}},
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            raise NotFound()
        return _doc_to_report(doc)

    # ── Reads ─────────────────────────────────────────────────────────────────

    async def get(self, report_id: str) -> HazardReport:
        oid = _oid(report_id)
        if oid is None:
            raise NotFound()
        with _store_op("get"):
            doc = await self._col.find_one({"_id": oid})
        if doc is None:
            raise NotFound()
        return _doc_to_report(doc)

    async def query(
        self,
        status: Optional[str] = None,
        severity: Optional[str] = None,
        hazard_type: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[list[HazardReport], int]:
        """Exact-match AND filter, single-field sort, page numbers start at 1."""
        query: dict = {}
        if status:
            query["status"] = status
        if severity:
            query["severity"] = severity
        if hazard_type:
            query["hazard_type"] = hazard_type

        field = SORT_FIELDS.get(sort_by, DEFAULT_SORT)
        direction = ASCENDING if sort_order == "asc" else DESCENDING
        skip = (max(page, 1) - 1) * page_size

        with _store_op("query"):
            total = await self._col.count_documents(query)
            cursor = (
                self._col.find(query)
                .sort([(field, direction), ("_id", direction)])
                .skip(skip)
                .limit(page_size)
            )
            reports = [_doc_to_report(doc) async for doc in cursor]
        return reports, total

    async def recent(self, limit: int = 10) -> list[HazardReport]:
        with _store_op("recent"):
            cursor = self._col.find({}).sort(_NEWEST_FIRST).limit(limit)
            return [_doc_to_report(doc) async for doc in cursor]

    async def find_near(
        self, lat: float, lng: float, radius_m: float, limit: int
    ) -> list[tuple[HazardReport, float]]:
        """
        Reports within *radius_m* metres of (lat, lng), nearest first.

        Returns (report, distance_m) pairs where distance_m is the index's
        own spherical distance.
        """
        pipeline = [
            {
                "$geoNear": {
                    "near": geo_point(lat, lng),
                    "distanceField": "distance_m",
                    "maxDistance": radius_m,
                    "spherical": True,
                    "key": "geo",
                }
            },
            {"$limit": limit},
        ]
        with _store_op("find_near"):
            return [
                (_doc_to_report(doc), doc["distance_m"])
                async for doc in self._col.aggregate(pipeline)
            ]

    async def scan(
        self,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> AsyncIterator[HazardReport]:
        """
        Lazily iterate reports in creation order, optionally bounded by
        created_after (inclusive) and created_before (exclusive).

        The cursor fetches in batches; breaking out of the loop closes it.
        """
        window = _created_window(created_after, created_before)
        cursor = self._col.find(window).sort(_OLDEST_FIRST).batch_size(_SCAN_BATCH_SIZE)
        try:
            with _store_op("scan"):
                async for doc in cursor:
                    yield _doc_to_report(doc)
        finally:
            await cursor.close()

    async def count(
        self,
        statuses: Optional[Iterable[str]] = None,
        resolved_after: Optional[datetime] = None,
        resolved_before: Optional[datetime] = None,
        created_after: Optional[datetime] = None,
    ) -> int:
        query = _created_window(created_after, None)
        if statuses is not None:
            query["status"] = {"$in": list(statuses)}
        resolved: dict = {}
        if resolved_after is not None:
            resolved["$gte"] = resolved_after
        if resolved_before is not None:
            resolved["$lt"] = resolved_before
        if resolved:
            query["resolved_at"] = resolved
        with _store_op("count"):
            return await self._col.count_documents(query)


def _created_window(after: Optional[datetime], before: Optional[datetime]) -> dict:
    bounds: dict = {}
    if after is not None:
        bounds["$gte"] = after
    if before is not None:
        bounds["$lt"] = before
    return {"created_at": bounds} if bounds else {}
