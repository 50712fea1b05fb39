# laundrypos/services/vouchers.py
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from laundrypos.enums import DiscountType
from laundrypos.errors import VoucherRejected
from laundrypos.models import Voucher
from laundrypos.services.settings import feature_enabled


def normalize_code(code: str) -> str:
    return code.strip().upper()


def compute_discount(voucher: Voucher, subtotal: int) -> int:
    if voucher.discount_type == DiscountType.PERCENT.value:
        # half-up rounding to whole rupiah
        return (subtotal * voucher.value + 50) // 100
    return voucher.value


def validate_voucher(voucher: Optional[Voucher], subtotal: int, today: date) -> int:
    """Return the discount this voucher gives on ``subtotal`` or raise VoucherRejected."""
    if voucher is None or not voucher.active:
        raise VoucherRejected("Voucher is not valid")
    if voucher.expires_on is not None and voucher.expires_on < today:
        raise VoucherRejected(f"Voucher {voucher.code} has expired")
    if subtotal < voucher.min_order:
        raise VoucherRejected(f"Minimum order for {voucher.code} is Rp {voucher.min_order}")
    if voucher.quota is not None and voucher.quota <= 0:
        raise VoucherRejected(f"Voucher {voucher.code} has been used up")
    return min(compute_discount(voucher, subtotal), subtotal)


def find_voucher(db: Session, tenant_id: str, code: str, for_update: bool = False) -> Optional[Voucher]:
    query = db.query(Voucher).filter(Voucher.tenant_id == tenant_id, Voucher.code == normalize_code(code))
    if for_update:
        query = query.with_for_update()
    return query.first()


def ensure_enabled(db: Session, tenant_id: str) -> None:
    if not feature_enabled(db, tenant_id, "feature_voucher"):
        raise VoucherRejected("Vouchers are disabled for this outlet")


def check_voucher(db: Session, tenant_id: str, code: str, subtotal: int, today: date) -> int:
    """Pre-submit preview; create_order validates again before it commits."""
    ensure_enabled(db, tenant_id)
    return validate_voucher(find_voucher(db, tenant_id, code), subtotal, today)


def list_vouchers(db: Session, tenant_id: str):
    return db.query(Voucher).filter(Voucher.tenant_id == tenant_id).order_by(Voucher.id.desc()).all()


def create_voucher(db: Session, tenant_id: str, data) -> Voucher:
    voucher = Voucher(
        tenant_id=tenant_id,
        code=normalize_code(data.code),
        discount_type=data.discount_type.value,
        value=data.value,
        min_order=data.min_order,
        quota=data.quota,
        expires_on=data.expires_on,
        active=True,
    )
    db.add(voucher)
    db.commit()
    db.refresh(voucher)
    return voucher


def set_voucher_active(db: Session, tenant_id: str, voucher_id: int, active: bool) -> Optional[Voucher]:
    voucher = db.query(Voucher).filter(Voucher.tenant_id == tenant_id, Voucher.id == voucher_id).first()
    if voucher is None:
        return None
    voucher.active = active
    db.add(voucher)
    db.commit()
    db.refresh(voucher)
    return voucher
