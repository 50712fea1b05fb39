"""Tests for license verdicts, renewal requests and renewal stacking."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from conftest import NOW, TENANT, add_license, day
from laundrypos.enums import PackageKind, RenewalStatus, Verdict
from laundrypos.errors import EntitlementDenied, PaymentAlreadyProcessed, PaymentNotFound
from laundrypos.models import License, Payment
from laundrypos.services import entitlement
from laundrypos.utils.dates import as_utc

# ---------------------------------------------------------------------------
# Verdicts
# ---------------------------------------------------------------------------


class TestComputeVerdict:
    @pytest.mark.parametrize("offset", [timedelta(0), timedelta(hours=1), timedelta(days=200)])
    def test_active_until_end(self, offset) -> None:
        assert entitlement.compute_verdict(NOW + offset, 3, NOW) is Verdict.ACTIVE

    def test_grace_after_end(self) -> None:
        assert entitlement.compute_verdict(day(-1), 3, NOW) is Verdict.GRACE

    def test_grace_at_exact_boundary(self) -> None:
        assert entitlement.compute_verdict(day(-3), 3, NOW) is Verdict.GRACE

    def test_expired_just_past_grace(self) -> None:
        end = NOW - timedelta(days=3, seconds=1)
        assert entitlement.compute_verdict(end, 3, NOW) is Verdict.EXPIRED

    def test_zero_grace(self) -> None:
        assert entitlement.compute_verdict(NOW - timedelta(seconds=1), 0, NOW) is Verdict.EXPIRED

    def test_naive_end_is_treated_as_utc(self) -> None:
        naive = day(1).replace(tzinfo=None)
        assert entitlement.compute_verdict(naive, 3, NOW) is Verdict.ACTIVE


class TestEvaluate:
    def test_no_license_is_expired(self, db) -> None:
        assert entitlement.evaluate(db, TENANT, now=NOW) is Verdict.EXPIRED

    def test_inactive_license_is_ignored(self, db) -> None:
        add_license(db, end_at=day(30), active=False)
        assert entitlement.evaluate(db, TENANT, now=NOW) is Verdict.EXPIRED

    def test_active_license(self, db) -> None:
        add_license(db, end_at=day(5))
        assert entitlement.evaluate(db, TENANT, now=NOW) is Verdict.ACTIVE

    def test_grace_license(self, db) -> None:
        add_license(db, end_at=day(-2))
        assert entitlement.evaluate(db, TENANT, now=NOW) is Verdict.GRACE

    def test_other_tenant_license_does_not_count(self, db) -> None:
        add_license(db, tenant_id="tenant-b", end_at=day(5))
        assert entitlement.evaluate(db, TENANT, now=NOW) is Verdict.EXPIRED

    def test_uses_latest_active_end(self, db) -> None:
        add_license(db, end_at=day(-20))
        add_license(db, end_at=day(20))
        assert entitlement.evaluate(db, TENANT, now=NOW) is Verdict.ACTIVE

    def test_lookup_failure_fails_closed(self) -> None:
        broken = MagicMock()
        broken.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        assert entitlement.evaluate(broken, TENANT, now=NOW) is Verdict.EXPIRED

    def test_require_active_rejects_grace(self, db) -> None:
        add_license(db, end_at=day(-1))
        with pytest.raises(EntitlementDenied) as exc_info:
            entitlement.require_active(db, TENANT, now=NOW)
        assert exc_info.value.verdict == "grace"


# ---------------------------------------------------------------------------
# Renewal requests
# ---------------------------------------------------------------------------


class TestRenewalRequest:
    def test_monthly_request(self, db) -> None:
        payment = entitlement.request_renewal(db, TENANT, PackageKind.MONTHLY)
        assert payment.status == RenewalStatus.PENDING_VERIFICATION.value
        assert payment.amount_idr == 50_000
        assert payment.package == "monthly"
        assert payment.method == "manual_transfer"

    def test_yearly_request_while_expired(self, db) -> None:
        assert entitlement.evaluate(db, TENANT) is Verdict.EXPIRED
        payment = entitlement.request_renewal(db, TENANT, PackageKind.YEARLY)
        assert payment.amount_idr == 500_000
        assert "Tahunan" in payment.notes


class TestResolvePackage:
    def test_structured_field_wins(self) -> None:
        payment = Payment(package="monthly", notes="paket tahunan")
        assert entitlement.resolve_package(payment) is PackageKind.MONTHLY

    @pytest.mark.parametrize("notes", ["Permintaan lisensi Tahunan (365 hari)", "YEARLY plan"])
    def test_legacy_note_marks_yearly(self, notes) -> None:
        assert entitlement.resolve_package(Payment(notes=notes)) is PackageKind.YEARLY

    def test_legacy_default_is_monthly(self) -> None:
        assert entitlement.resolve_package(Payment(notes=None)) is PackageKind.MONTHLY


# ---------------------------------------------------------------------------
# Approval and stacking
# ---------------------------------------------------------------------------


def _pending(db, package="monthly", notes=None) -> Payment:
    payment = Payment(tenant_id=TENANT, amount_idr=50_000, status="pending_verification", package=package, notes=notes)
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


def _active_rows(db):
    return db.query(License).filter(License.tenant_id == TENANT, License.active.is_(True)).all()


class TestApprovePayment:
    def test_stacks_on_remaining_validity(self, db) -> None:
        add_license(db, end_at=day(10))
        payment = _pending(db)

        lic = entitlement.approve_payment(db, payment.id, now=day(5))

        assert as_utc(lic.start_at) == day(10)
        assert as_utc(lic.end_at) == day(40)
        assert lic.grace_days == 3
        assert lic.status == "active"
        assert len(_active_rows(db)) == 1

    def test_starts_now_without_prior_license(self, db) -> None:
        payment = _pending(db)

        lic = entitlement.approve_payment(db, payment.id, now=day(5))

        assert as_utc(lic.start_at) == day(5)
        assert as_utc(lic.end_at) == day(35)

    def test_lapsed_license_starts_from_now(self, db) -> None:
        add_license(db, end_at=day(-10))
        payment = _pending(db)

        lic = entitlement.approve_payment(db, payment.id, now=NOW)

        assert as_utc(lic.start_at) == NOW
        assert as_utc(lic.end_at) == day(30)

    def test_yearly_duration(self, db) -> None:
        payment = _pending(db, package="yearly")
        lic = entitlement.approve_payment(db, payment.id, now=NOW)
        assert as_utc(lic.end_at) == day(365)
        assert lic.package == "yearly"

    def test_deactivates_every_previous_row(self, db) -> None:
        add_license(db, end_at=day(3))
        add_license(db, end_at=day(8))
        payment = _pending(db)

        lic = entitlement.approve_payment(db, payment.id, now=NOW)

        active = _active_rows(db)
        assert [row.id for row in active] == [lic.id]
        assert as_utc(lic.start_at) == day(8)

    def test_marks_payment_paid(self, db) -> None:
        payment = _pending(db)
        entitlement.approve_payment(db, payment.id, now=NOW)
        db.refresh(payment)
        assert payment.status == "paid"
        assert as_utc(payment.paid_at) == NOW

    def test_cannot_approve_twice(self, db) -> None:
        payment = _pending(db)
        entitlement.approve_payment(db, payment.id, now=NOW)
        with pytest.raises(PaymentAlreadyProcessed):
            entitlement.approve_payment(db, payment.id, now=NOW)
        assert len(_active_rows(db)) == 1

    def test_unknown_payment(self, db) -> None:
        with pytest.raises(PaymentNotFound):
            entitlement.approve_payment(db, 999, now=NOW)

    def test_renewal_restores_write_access(self, db) -> None:
        add_license(db, end_at=day(-10))
        assert entitlement.evaluate(db, TENANT, now=NOW) is Verdict.EXPIRED
        entitlement.approve_payment(db, _pending(db).id, now=NOW)
        assert entitlement.evaluate(db, TENANT, now=NOW) is Verdict.ACTIVE


class TestRejectAndGrant:
    def test_reject_is_terminal(self, db) -> None:
        payment = _pending(db)
        rejected = entitlement.reject_payment(db, payment.id)
        assert rejected.status == "rejected"
        with pytest.raises(PaymentAlreadyProcessed):
            entitlement.approve_payment(db, payment.id, now=NOW)
        with pytest.raises(PaymentAlreadyProcessed):
            entitlement.reject_payment(db, payment.id)
        assert _active_rows(db) == []

    def test_grant_starts_now(self, db) -> None:
        lic = entitlement.grant_license(db, TENANT, PackageKind.MONTHLY, now=NOW)
        assert as_utc(lic.start_at) == NOW
        assert as_utc(lic.end_at) == day(30)
        assert entitlement.evaluate(db, TENANT, now=NOW) is Verdict.ACTIVE

    def test_list_payments_newest_first(self, db) -> None:
        first = entitlement.request_renewal(db, TENANT, PackageKind.MONTHLY)
        second = entitlement.request_renewal(db, TENANT, PackageKind.YEARLY)
        ids = [p.id for p in entitlement.list_payments(db, TENANT)]
        assert ids == [second.id, first.id]
