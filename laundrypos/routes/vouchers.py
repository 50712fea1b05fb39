# laundrypos/routes/vouchers.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from laundrypos.auth import Actor, get_actor, require_writer
from laundrypos.database import get_db
from laundrypos.schemas import VoucherCheck, VoucherCheckResponse, VoucherCreate, VoucherOut
from laundrypos.services import vouchers
from laundrypos.services.entitlement import require_active
from laundrypos.utils.dates import utcnow

router = APIRouter(prefix="/tenants/{tenant_id}/vouchers", tags=["vouchers"])


@router.get("", response_model=List[VoucherOut])
def list_vouchers(tenant_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return vouchers.list_vouchers(db, tenant_id)


@router.post("", response_model=VoucherOut, status_code=status.HTTP_201_CREATED)
def create_voucher(tenant_id: str, data: VoucherCreate, actor: Actor = Depends(require_writer), db: Session = Depends(get_db)):
    require_active(db, tenant_id)
    try:
        return vouchers.create_voucher(db, tenant_id, data)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Voucher code already exists")


@router.post("/check", response_model=VoucherCheckResponse)
def check_voucher(tenant_id: str, req: VoucherCheck, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    discount = vouchers.check_voucher(db, tenant_id, req.code, req.subtotal, utcnow().date())
    return VoucherCheckResponse(code=vouchers.normalize_code(req.code), discount_idr=discount)


@router.post("/{voucher_id}/active", response_model=VoucherOut)
def set_active(tenant_id: str, voucher_id: int, active: bool, actor: Actor = Depends(require_writer), db: Session = Depends(get_db)):
    require_active(db, tenant_id)
    voucher = vouchers.set_voucher_active(db, tenant_id, voucher_id, active)
    if voucher is None:
        raise HTTPException(status_code=404, detail="Voucher not found")
    return voucher
