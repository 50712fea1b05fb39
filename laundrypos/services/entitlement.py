# laundrypos/services/entitlement.py
# License entitlement: verdict computation, renewal requests and approval (stacking)
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from laundrypos.config import GRACE_DAYS, PACKAGE_LABEL, PACKAGE_PRICE
from laundrypos.enums import PackageKind, RenewalStatus, Verdict
from laundrypos.errors import EntitlementDenied, PaymentAlreadyProcessed, PaymentNotFound
from laundrypos.models import License, Payment
from laundrypos.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

YEARLY_NOTE_MARKERS = ("tahunan", "yearly")


def compute_verdict(end_at: datetime, grace_days: int, now: datetime) -> Verdict:
    end_at = as_utc(end_at)
    grace_end = end_at + timedelta(days=grace_days or 0)
    if now <= end_at:
        return Verdict.ACTIVE
    if now <= grace_end:
        return Verdict.GRACE
    return Verdict.EXPIRED


def get_license_info(db: Session, tenant_id: str) -> Optional[License]:
    """Most recent active license row for the tenant, or None."""
    return (
        db.query(License)
        .filter(License.tenant_id == tenant_id, License.active.is_(True))
        .order_by(License.end_at.desc())
        .first()
    )


def evaluate(db: Session, tenant_id: str, now: Optional[datetime] = None) -> Verdict:
    """Current verdict for the tenant. Missing rows and lookup errors give EXPIRED."""
    now = as_utc(now) if now else utcnow()
    try:
        lic = get_license_info(db, tenant_id)
    except Exception:
        logger.exception("License lookup failed for tenant %s, treating as expired", tenant_id)
        return Verdict.EXPIRED
    if lic is None:
        return Verdict.EXPIRED
    return compute_verdict(lic.end_at, lic.grace_days, now)


def require_active(db: Session, tenant_id: str, now: Optional[datetime] = None) -> None:
    verdict = evaluate(db, tenant_id, now=now)
    if verdict is not Verdict.ACTIVE:
        logger.info("Write rejected for tenant %s: license %s", tenant_id, verdict.value)
        raise EntitlementDenied(tenant_id, verdict.value)


def resolve_package(payment: Payment) -> PackageKind:
    if payment.package:
        return PackageKind(payment.package)
    # legacy rows predate the package column; fall back to the note text
    notes = (payment.notes or "").lower()
    if any(marker in notes for marker in YEARLY_NOTE_MARKERS):
        return PackageKind.YEARLY
    return PackageKind.MONTHLY


def request_renewal(db: Session, tenant_id: str, package: PackageKind) -> Payment:
    """Record a renewal request. Allowed whatever the current verdict is."""
    payment = Payment(
        tenant_id=tenant_id,
        amount_idr=PACKAGE_PRICE[package.value],
        method="manual_transfer",
        status=RenewalStatus.PENDING_VERIFICATION.value,
        package=package.value,
        notes=f"Permintaan lisensi {PACKAGE_LABEL[package.value]}",
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    logger.info("Renewal requested by tenant %s (%s)", tenant_id, package.value)
    return payment


def _install_license(db: Session, tenant_id: str, package: PackageKind, start_at: datetime) -> License:
    # caller commits; deactivate + insert must land in the same transaction
    db.execute(
        update(License)
        .where(License.tenant_id == tenant_id)
        .values(active=False)
        .execution_options(synchronize_session=False)
    )
    lic = License(
        tenant_id=tenant_id,
        package=package.value,
        start_at=start_at,
        end_at=start_at + timedelta(days=package.days),
        grace_days=GRACE_DAYS,
        active=True,
        status=Verdict.ACTIVE.value,
    )
    db.add(lic)
    return lic


def _finish(db: Session, lic: License) -> License:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(lic)
    return lic


def grant_license(db: Session, tenant_id: str, package: PackageKind, now: Optional[datetime] = None) -> License:
    """Issue the initial license for a newly onboarded tenant."""
    now = as_utc(now) if now else utcnow()
    lic = _finish(db, _install_license(db, tenant_id, package, now))
    logger.info("Granted %s license to tenant %s until %s", package.value, tenant_id, lic.end_at)
    return lic


def approve_payment(db: Session, payment_id: int, now: Optional[datetime] = None) -> License:
    """Mark a pending renewal paid and stack a new license on top of the current one."""
    now = as_utc(now) if now else utcnow()
    payment = db.get(Payment, payment_id)
    if payment is None:
        raise PaymentNotFound(f"Payment {payment_id} not found")

    marked = db.execute(
        update(Payment)
        .where(Payment.id == payment_id, Payment.status == RenewalStatus.PENDING_VERIFICATION.value)
        .values(status=RenewalStatus.PAID.value, paid_at=now)
        .execution_options(synchronize_session=False)
    )
    if marked.rowcount == 0:
        db.rollback()
        raise PaymentAlreadyProcessed(f"Payment {payment_id} is already {payment.status}")

    package = resolve_package(payment)
    current = get_license_info(db, payment.tenant_id)
    start_at = now
    if current is not None:
        start_at = max(now, as_utc(current.end_at))

    lic = _finish(db, _install_license(db, payment.tenant_id, package, start_at))
    logger.info(
        "Payment %s approved: tenant %s licensed %s until %s",
        payment_id,
        payment.tenant_id,
        package.value,
        lic.end_at,
    )
    return lic


def reject_payment(db: Session, payment_id: int) -> Payment:
    payment = db.get(Payment, payment_id)
    if payment is None:
        raise PaymentNotFound(f"Payment {payment_id} not found")
    if payment.status != RenewalStatus.PENDING_VERIFICATION.value:
        raise PaymentAlreadyProcessed(f"Payment {payment_id} is already {payment.status}")
    payment.status = RenewalStatus.REJECTED.value
    db.add(payment)
    db.commit()
    db.refresh(payment)
    logger.info("Payment %s rejected", payment_id)
    return payment


def list_payments(db: Session, tenant_id: str, limit: int = 10):
    return (
        db.query(Payment)
        .filter(Payment.tenant_id == tenant_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .limit(limit)
        .all()
    )
