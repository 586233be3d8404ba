"""Report submission, duplicate detection and aggregation at the service layer."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from conftest import review
from spotted.core.constants import VIOLATION_TYPES
from spotted.core.exceptions import (
    AuthorizationDenied,
    InvalidStateChange,
    RecordNotFound,
    ValidationFailed,
)
from spotted.models import AuthAccount, Profile, Report, ViolationType
from spotted.schemas.report import ReportCreate
from spotted.services import provisioning, report_service
from spotted.services.catalog import compute_reward, resolve_fine

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


async def _identity(db, email="u@example.com"):
    profile = await provisioning.signup(db, email, "password-123", "Test User")
    return profile.id


async def _submit(db, user_id, violation_type="bike", **fields):
    data = ReportCreate(violation_type=violation_type, **fields)
    report, _ = await report_service.submit_report(db, user_id, data)
    return report


class TestReward:
    @pytest.mark.parametrize("type_id,fine", [(t[0], t[2]) for t in VIOLATION_TYPES])
    def test_reward_is_ten_percent_of_catalog_fine(self, run_db, type_id, fine):
        async def scenario(db):
            user_id = await _identity(db)
            return await _submit(db, user_id, type_id)

        report = run_db(scenario)
        assert report.fine_amount == fine
        assert report.reward_amount == (Decimal(fine) * Decimal("0.10")).quantize(Decimal("0.01"))

    def test_compute_reward_rounds_to_cents(self):
        assert compute_reward(175) == Decimal("17.50")
        assert compute_reward(115) == Decimal("11.50")
        assert compute_reward(1) == Decimal("0.10")
        assert compute_reward(5) == Decimal("0.50")

    def test_reward_is_frozen_when_catalog_fine_changes(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            report = await _submit(db, user_id, "bike")
            bike = await db.get(ViolationType, "bike")
            bike.fine = 500
            await db.commit()
            reloaded, _ = await report_service.get_report(db, user_id, report.id)
            return reloaded

        report = run_db(scenario)
        assert report.fine_amount == 175
        assert report.reward_amount == Decimal("17.50")

    def test_missing_catalog_fine_falls_back_to_default(self, run_db):
        async def scenario(db):
            return await resolve_fine(db, "no-such-kind")

        assert run_db(scenario) == 115

    def test_unknown_violation_type_is_a_field_error(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            with pytest.raises(ValidationFailed) as exc_info:
                await _submit(db, user_id, "no-such-kind")
            count = await db.scalar(select(func.count(Report.id)))
            return exc_info.value, count

        error, count = run_db(scenario)
        assert error.field == "violation_type"
        assert count == 0


class TestSubmission:
    def test_end_to_end_bike_report(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            report = await _submit(
                db, user_id, "bike", plate_number="abc-1234", latitude=40.6782, longitude=-73.9442
            )
            return user_id, report

        user_id, report = run_db(scenario)
        assert report.user_id == user_id
        assert report.plate_number == "ABC-1234"
        assert report.reward_amount == Decimal("17.50")
        assert report.status == "pending"
        assert report.id
        assert report.created_at.tzinfo is not None

    @pytest.mark.parametrize("requested", ["approved", "rejected", "pending"])
    def test_status_is_pending_whatever_the_caller_passes(self, run_db, requested):
        async def scenario(db):
            user_id = await _identity(db)
            return await _submit(db, user_id, "hydrant", status=requested)

        report = run_db(scenario)
        assert report.status == "pending"
        assert report.reviewed_at is None

    def test_reported_at_defaults_to_now(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            return await _submit(db, user_id)

        before = datetime.now(timezone.utc)
        report = run_db(scenario)
        assert report.reported_at >= before - timedelta(seconds=5)


class TestOwnership:
    def test_other_identity_sees_nothing(self, run_db):
        async def scenario(db):
            alice = await _identity(db, "alice@example.com")
            bob = await _identity(db, "bob@example.com")
            report = await _submit(db, alice)
            with pytest.raises(RecordNotFound):
                await report_service.get_report(db, bob, report.id)
            with pytest.raises(RecordNotFound):
                await report_service.update_report(db, bob, report.id, {"plate_number": "X"})
            return await report_service.list_reports(db, bob)

        assert run_db(scenario) == []

    def test_owner_updates_pending_report(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            report = await _submit(db, user_id)
            updated, _ = await report_service.update_report(
                db, user_id, report.id, {"plate_number": "xyz-5678", "location_text": "5th Ave"}
            )
            return updated

        report = run_db(scenario)
        assert report.plate_number == "XYZ-5678"
        assert report.location_text == "5th Ave"

    @pytest.mark.parametrize("outcome", ["approved", "rejected"])
    def test_owner_cannot_update_after_review(self, run_db, outcome):
        async def scenario(db):
            user_id = await _identity(db)
            report = await _submit(db, user_id, plate_number="abc-1234")
            await review(db, report.id, outcome)
            with pytest.raises(AuthorizationDenied):
                await report_service.update_report(db, user_id, report.id, {"plate_number": "NEW"})
            reloaded, _ = await report_service.get_report(db, user_id, report.id)
            return reloaded

        report = run_db(scenario)
        assert report.plate_number == "ABC-1234"
        assert report.status == outcome
        assert report.reviewed_at is not None

    def test_status_and_financial_fields_are_not_updatable(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            report_id = (await _submit(db, user_id)).id
            for field, value in (("status", "approved"), ("reward_amount", 99), ("user_id", "x")):
                with pytest.raises(ValidationFailed):
                    await report_service.update_report(db, user_id, report_id, {field: value})
                await db.rollback()
            reloaded, _ = await report_service.get_report(db, user_id, report_id)
            return reloaded

        report = run_db(scenario)
        assert report.status == "pending"
        assert report.reward_amount == Decimal("17.50")

    def test_deleting_the_account_cascades_to_reports(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            await _submit(db, user_id)
            await _submit(db, user_id, "hydrant")
            await db.delete(await db.get(AuthAccount, user_id))
            await db.commit()
            profiles = await db.scalar(select(func.count(Profile.id)))
            reports = await db.scalar(select(func.count(Report.id)))
            return profiles, reports

        assert run_db(scenario) == (0, 0)


class TestDuplicateCheck:
    def _scenario(self, second_delay, violation_type="bike", lat_offset=0.0005, with_coords=True):
        async def scenario(db):
            user_id = await _identity(db)
            coords = {"latitude": 40.6782, "longitude": -73.9442} if with_coords else {}
            await _submit(db, user_id, "bike", plate_number="abc-1234", reported_at=NOW, **coords)
            check_coords = {}
            if with_coords:
                check_coords = {"latitude": Decimal("40.6782") + Decimal(str(lat_offset)),
                                "longitude": Decimal("-73.9442")}
            return await report_service.check_duplicate(
                db,
                user_id,
                "ABC-1234",
                violation_type,
                reported_at=NOW + second_delay,
                **check_coords,
            )
        return scenario

    def test_same_plate_kind_and_spot_within_window(self, run_db):
        assert run_db(self._scenario(timedelta(minutes=10))) is True

    def test_just_under_two_hours_is_duplicate(self, run_db):
        assert run_db(self._scenario(timedelta(hours=1, minutes=59))) is True

    def test_two_hours_and_one_minute_is_not_duplicate(self, run_db):
        assert run_db(self._scenario(timedelta(hours=2, minutes=1))) is False

    def test_different_kind_is_not_duplicate(self, run_db):
        assert run_db(self._scenario(timedelta(minutes=10), violation_type="hydrant")) is False

    def test_outside_coordinate_tolerance_is_not_duplicate(self, run_db):
        assert run_db(self._scenario(timedelta(minutes=10), lat_offset=0.002)) is False

    def test_without_coordinates_only_plate_kind_and_time_count(self, run_db):
        assert run_db(self._scenario(timedelta(minutes=10), with_coords=False)) is True

    def test_plate_comparison_ignores_case(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            await _submit(db, user_id, "bike", plate_number="ABC-1234")
            return await report_service.check_duplicate(db, user_id, "abc-1234", "bike")

        assert run_db(scenario) is True

    def test_submission_does_not_block_duplicates(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            await _submit(db, user_id, "bike", plate_number="abc-1234")
            await _submit(db, user_id, "bike", plate_number="abc-1234")
            return await db.scalar(select(func.count(Report.id)))

        assert run_db(scenario) == 2


class TestStats:
    def test_no_reports_gives_zero_success_rate(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            return await report_service.get_stats(db, user_id)

        stats = run_db(scenario)
        assert stats["total_reports"] == 0
        assert stats["success_rate"] == 0
        assert stats["total_earned"] == 0
        assert stats["pending_earnings"] == 0

    def test_mixed_statuses(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            approved = await _submit(db, user_id, "bike")
            await _submit(db, user_id, "hydrant")
            rejected = await _submit(db, user_id, "crosswalk")
            await review(db, approved.id, "approved")
            await review(db, rejected.id, "rejected", reason="Plate not visible")
            return await report_service.get_stats(db, user_id)

        stats = run_db(scenario)
        assert stats["total_reports"] == 3
        assert stats["approved_reports"] == 1
        assert stats["pending_reports"] == 1
        assert stats["rejected_reports"] == 1
        assert stats["total_earned"] == Decimal("17.50")
        assert stats["pending_earnings"] == Decimal("11.50")
        assert stats["success_rate"] == Decimal("33.3")

    def test_stats_only_count_own_reports(self, run_db):
        async def scenario(db):
            alice = await _identity(db, "alice@example.com")
            bob = await _identity(db, "bob@example.com")
            await _submit(db, alice)
            await _submit(db, alice)
            await _submit(db, bob)
            return await report_service.get_stats(db, bob)

        stats = run_db(scenario)
        assert stats["total_reports"] == 1
        assert stats["pending_earnings"] == Decimal("17.50")


class TestStatusInvariants:
    def test_reviewed_report_cannot_move_again(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            report = await _submit(db, user_id)
            await review(db, report.id, "approved")
            with pytest.raises(ValueError):
                report.status = "pending"
            with pytest.raises(ValueError):
                report.status = "rejected"
            return report

        assert run_db(scenario).status == "approved"

    def test_invalid_status_value_is_rejected(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            report = await _submit(db, user_id)
            with pytest.raises(ValueError):
                report.status = "archived"
            return report

        assert run_db(scenario).status == "pending"

    def test_new_report_cannot_start_reviewed(self):
        with pytest.raises(InvalidStateChange):
            Report(status="approved")

    def test_rejection_reason_requires_rejected_status(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            report = await _submit(db, user_id)
            with pytest.raises(InvalidStateChange):
                report.rejection_reason = "Too blurry"
            await review(db, report.id, "rejected", reason="Too blurry")
            return report

        report = run_db(scenario)
        assert report.status == "rejected"
        assert report.rejection_reason == "Too blurry"

    def test_approved_report_carries_no_rejection_reason(self, run_db):
        async def scenario(db):
            user_id = await _identity(db)
            report = await _submit(db, user_id)
            await review(db, report.id, "approved")
            with pytest.raises(InvalidStateChange):
                report.rejection_reason = "Changed my mind"
            return report

        report = run_db(scenario)
        assert report.status == "approved"
        assert report.rejection_reason is None
