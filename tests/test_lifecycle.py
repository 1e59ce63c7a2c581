"""
test_lifecycle.py — Tests for ReportLifecycle (submission, status, verification).
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from pymongo.errors import PyMongoError

from fakes import submission
from resq.core.errors import NotFound, StoreError, ValidationError
from resq.services.lifecycle import response_minutes, severity_to_priority


class TestSeverityToPriority:
    @pytest.mark.parametrize(
        "severity,priority",
        [
            ("Low Risk", 1),
            ("Moderate Risk", 2),
            ("High Risk", 4),
            ("Critical Emergency", 5),
            ("Somewhat Spicy", 2),
        ],
    )
    def test_mapping(self, severity, priority):
        assert severity_to_priority(severity) == priority

    def test_response_minutes_rounds_to_nearest(self, clock):
        start = clock()
        assert response_minutes(start, start + timedelta(minutes=90)) == 90
        assert response_minutes(start, start + timedelta(seconds=89)) == 1
        assert response_minutes(start, start) == 0


class TestSubmit:
    async def test_critical_rip_current_becomes_active_priority_5(self, lifecycle, clock):
        report = await lifecycle.submit(submission())

        assert report.status == "Active"
        assert report.priority == 5
        assert report.resolved_at is None
        assert report.response_time is None
        assert report.verified is False
        assert report.source == "Web Form"
        assert report.created_at == clock()
        assert report.updated_at == clock()

    async def test_priority_derived_from_severity(self, lifecycle):
        report = await lifecycle.submit(submission(severity="Low Risk"))
        assert report.priority == 1

    async def test_explicit_priority_is_kept(self, lifecycle):
        report = await lifecycle.submit(submission(priority=3))
        assert report.priority == 3

    async def test_stores_geo_point_lng_first(self, lifecycle, reports):
        report = await lifecycle.submit(submission())
        assert reports.raw(report.id)["geo"] == {"type": "Point", "coordinates": [80.2707, 13.0827]}

    async def test_missing_fields_rejected_before_store(self, lifecycle, reports):
        body = submission()
        del body["severity"]
        body["location"] = {"lng": 80.27, "details": "Marina Beach"}

        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.submit(body)

        assert "severity" in exc_info.value.fields
        assert "location.lat" in exc_info.value.fields
        assert len(reports) == 0

    async def test_unknown_hazard_type_rejected(self, lifecycle, reports):
        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.submit(submission(hazardType="Sharks"))
        assert exc_info.value.fields == ["hazardType"]
        assert len(reports) == 0

    async def test_out_of_range_latitude_rejected(self, lifecycle):
        body = submission(location={"lat": 95, "lng": 80.27, "details": "Nowhere"})
        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.submit(body)
        assert exc_info.value.fields == ["location.lat"]

    async def test_more_than_five_attachments_rejected(self, lifecycle):
        evidence = [{"filename": f"f{i}.jpg", "url": f"/uploads/f{i}.jpg"} for i in range(6)]
        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.submit(submission(evidence=evidence))
        assert exc_info.value.fields == ["evidence"]

    async def test_description_over_limit_rejected(self, lifecycle):
        with pytest.raises(ValidationError):
            await lifecycle.submit(submission(description="x" * 1001))

    async def test_bad_contact_email_rejected(self, lifecycle):
        body = submission(contact={"name": "A", "email": "not-an-email"})
        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.submit(body)
        assert exc_info.value.fields == ["contact.email"]


class TestChangeStatus:
    async def test_resolve_records_time_and_response_minutes(self, lifecycle, clock):
        report = await lifecycle.submit(submission())
        clock.advance(minutes=90)

        resolved = await lifecycle.change_status(report.id, "Resolved")

        assert resolved.status == "Resolved"
        assert resolved.resolved_at == clock()
        assert resolved.response_time == 90

    async def test_second_resolve_keeps_first_stamp(self, lifecycle, clock):
        report = await lifecycle.submit(submission())
        clock.advance(minutes=30)
        first = await lifecycle.change_status(report.id, "Resolved")
        clock.advance(hours=2)

        second = await lifecycle.change_status(report.id, "Resolved")

        assert second.resolved_at == first.resolved_at
        assert second.response_time == 30

    async def test_reopen_and_resolve_again_keeps_first_stamp(self, lifecycle, clock):
        report = await lifecycle.submit(submission())
        clock.advance(minutes=10)
        first = await lifecycle.change_status(report.id, "Resolved")
        clock.advance(minutes=10)
        await lifecycle.change_status(report.id, "Closed")
        clock.advance(minutes=10)

        again = await lifecycle.change_status(report.id, "Resolved")

        assert again.status == "Resolved"
        assert again.resolved_at == first.resolved_at
        assert again.response_time == 10

    async def test_losing_the_compare_and_set_does_not_overwrite(self, lifecycle, store, clock):
        report = await lifecycle.submit(submission())
        clock.advance(minutes=5)
        first = await lifecycle.change_status(report.id, "Resolved")

        # A caller that read the report before the first resolution landed
        stale = first.model_copy(update={"resolved_at": None, "response_time": None})
        store.get = AsyncMock(return_value=stale)
        clock.advance(minutes=30)

        second = await lifecycle.change_status(report.id, "Resolved")

        assert second.resolved_at == first.resolved_at
        assert second.response_time == 5

    async def test_any_transition_is_allowed(self, lifecycle):
        report = await lifecycle.submit(submission())
        for status in ("Under Review", "Closed", "Active"):
            report = await lifecycle.change_status(report.id, status)
            assert report.status == status
        assert report.resolved_at is None

    async def test_invalid_status_rejected(self, lifecycle):
        report = await lifecycle.submit(submission())
        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.change_status(report.id, "Done")
        assert exc_info.value.fields == ["status"]

    async def test_unknown_report(self, lifecycle):
        with pytest.raises(NotFound):
            await lifecycle.change_status("65f000000000000000000000", "Resolved")

    async def test_updated_at_moves_forward(self, lifecycle, clock):
        report = await lifecycle.submit(submission())
        clock.advance(minutes=1)
        updated = await lifecycle.change_status(report.id, "Under Review")
        assert updated.updated_at == clock()
        assert updated.created_at == report.created_at


class TestVerifyAndUpdate:
    async def test_verify_stamps_verified_at(self, lifecycle, clock):
        report = await lifecycle.submit(submission())
        clock.advance(minutes=3)

        verified = await lifecycle.verify(report.id, "Coast Guard")

        assert verified.verified is True
        assert verified.verified_by == "Coast Guard"
        assert verified.verified_at == clock()

    async def test_apply_update_verified_true(self, lifecycle, clock):
        report = await lifecycle.submit(submission())
        updated = await lifecycle.apply_update(report.id, {"verified": True, "verifiedBy": "Ops"})
        assert updated.verified is True
        assert updated.verified_by == "Ops"
        assert updated.verified_at == clock()

    async def test_apply_update_assignment_only(self, lifecycle):
        report = await lifecycle.submit(submission())
        updated = await lifecycle.apply_update(report.id, {"assignedTo": "Team B"})
        assert updated.assigned_to == "Team B"
        assert updated.status == "Active"

    async def test_apply_update_status_resolves(self, lifecycle, clock):
        report = await lifecycle.submit(submission())
        clock.advance(minutes=45)
        updated = await lifecycle.apply_update(
            report.id, {"status": "Resolved", "assignedTo": "Team A"}, actor="ops-1",
        )
        assert updated.status == "Resolved"
        assert updated.assigned_to == "Team A"
        assert updated.response_time == 45

    async def test_apply_update_ignores_fields_outside_patch(self, lifecycle):
        report = await lifecycle.submit(submission())
        updated = await lifecycle.apply_update(report.id, {"priority": 1, "severity": "Low Risk"})
        assert updated.priority == 5
        assert updated.severity == "Critical Emergency"

    async def test_apply_update_empty_body_returns_report(self, lifecycle):
        report = await lifecycle.submit(submission())
        updated = await lifecycle.apply_update(report.id, {})
        assert updated.id == report.id

    async def test_apply_update_unknown_report(self, lifecycle):
        with pytest.raises(NotFound):
            await lifecycle.apply_update("65f000000000000000000000", {"assignedTo": "x"})

    async def test_reverify_keeps_existing_verifier(self, lifecycle, clock):
        report = await lifecycle.submit(submission())
        await lifecycle.apply_update(report.id, {"verified": True, "verifiedBy": "Alice"})
        clock.advance(minutes=5)

        again = await lifecycle.apply_update(report.id, {"verified": True})

        assert again.verified_by == "Alice"
        assert again.verified_at == clock()

    async def test_verify_without_name_keeps_existing_verifier(self, lifecycle):
        report = await lifecycle.submit(submission())
        await lifecycle.verify(report.id, "Coast Guard")

        again = await lifecycle.verify(report.id)

        assert again.verified_by == "Coast Guard"

    async def test_unverify_clears_stamp(self, lifecycle):
        report = await lifecycle.submit(submission())
        await lifecycle.verify(report.id, "Coast Guard")

        unverified = await lifecycle.apply_update(report.id, {"verified": False})

        assert unverified.verified is False
        assert unverified.verified_at is None
        assert unverified.verified_by is None


class TestSingleWrite:
    async def test_update_is_one_store_write(self, lifecycle, reports):
        report = await lifecycle.submit(submission())
        write = AsyncMock(wraps=reports.find_one_and_update)

        with patch.object(reports, "find_one_and_update", write):
            updated = await lifecycle.apply_update(
                report.id, {"verified": True, "verifiedBy": "Ops", "assignedTo": "Team A"},
            )

        assert write.await_count == 1
        assert updated.verified is True
        assert updated.assigned_to == "Team A"

    async def test_resolution_is_one_store_write(self, lifecycle, reports, clock):
        report = await lifecycle.submit(submission())
        clock.advance(minutes=15)
        write = AsyncMock(wraps=reports.find_one_and_update)

        with patch.object(reports, "find_one_and_update", write):
            updated = await lifecycle.apply_update(
                report.id, {"status": "Resolved", "verified": True, "assignedTo": "Team A"},
            )

        assert write.await_count == 1
        assert updated.status == "Resolved"
        assert updated.response_time == 15
        assert updated.verified is True
        assert updated.assigned_to == "Team A"

    async def test_failed_update_leaves_report_untouched(self, lifecycle, reports):
        report = await lifecycle.submit(submission())
        before = dict(reports.raw(report.id))
        failing = AsyncMock(side_effect=PyMongoError("not primary"))

        with patch.object(reports, "find_one_and_update", failing):
            with pytest.raises(StoreError):
                await lifecycle.apply_update(report.id, {"verified": True, "assignedTo": "ops"})

        assert reports.raw(report.id) == before
        assert reports.raw(report.id)["verified"] is False

    async def test_failed_resolution_leaves_report_untouched(self, lifecycle, reports, clock):
        report = await lifecycle.submit(submission())
        before = dict(reports.raw(report.id))
        clock.advance(minutes=10)
        failing = AsyncMock(side_effect=PyMongoError("not primary"))

        with patch.object(reports, "find_one_and_update", failing):
            with pytest.raises(StoreError):
                await lifecycle.apply_update(
                    report.id, {"status": "Resolved", "verified": True, "assignedTo": "ops"},
                )

        raw = reports.raw(report.id)
        assert raw == before
        assert raw["resolved_at"] is None
        assert raw["status"] == "Active"
