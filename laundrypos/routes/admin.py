# laundrypos/routes/admin.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from laundrypos.config import get_settings
from laundrypos.database import get_db
from laundrypos.enums import RenewalStatus
from laundrypos.models import License, Payment
from laundrypos.schemas import FeatureToggle, GrantRequest, LicenseOut, PaymentOut
from laundrypos.services import entitlement, orders, settings

router = APIRouter(prefix="/admin", tags=["admin"])


def verify_admin(token: Optional[str]):
    expected = get_settings().admin_token
    if not expected or token != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.post("/grant_license", response_model=LicenseOut, status_code=status.HTTP_201_CREATED)
def grant_license(req: GrantRequest, x_admin_token: Optional[str] = Header(None), db: Session = Depends(get_db)):
    """Initial license for a newly onboarded tenant."""
    verify_admin(x_admin_token)
    return entitlement.grant_license(db, req.tenant_id, req.package)


@router.get("/payments", response_model=List[PaymentOut])
def list_payments(pending_only: bool = True, x_admin_token: Optional[str] = Header(None), db: Session = Depends(get_db)):
    verify_admin(x_admin_token)
    query = db.query(Payment)
    if pending_only:
        query = query.filter(Payment.status == RenewalStatus.PENDING_VERIFICATION.value)
    return query.order_by(Payment.created_at.desc(), Payment.id.desc()).all()


@router.post("/payments/{payment_id}/approve", response_model=LicenseOut)
def approve_payment(payment_id: int, x_admin_token: Optional[str] = Header(None), db: Session = Depends(get_db)):
    verify_admin(x_admin_token)
    return entitlement.approve_payment(db, payment_id)


@router.post("/payments/{payment_id}/reject", response_model=PaymentOut)
def reject_payment(payment_id: int, x_admin_token: Optional[str] = Header(None), db: Session = Depends(get_db)):
    verify_admin(x_admin_token)
    return entitlement.reject_payment(db, payment_id)


@router.get("/list_licenses")
def list_licenses(x_admin_token: Optional[str] = Header(None), db: Session = Depends(get_db)):
    verify_admin(x_admin_token)
    items = db.query(License).filter(License.active.is_(True)).order_by(License.tenant_id).all()
    out = []
    for lic in items:
        out.append({
            "tenant_id": lic.tenant_id,
            "package": lic.package,
            "end_at": lic.end_at.isoformat(),
            "verdict": entitlement.evaluate(db, lic.tenant_id).value,
        })
    return {"licenses": out}


@router.put("/tenants/{tenant_id}/features")
def set_feature(tenant_id: str, toggle: FeatureToggle, x_admin_token: Optional[str] = Header(None), db: Session = Depends(get_db)):
    verify_admin(x_admin_token)
    if toggle.key not in settings.FEATURE_KEYS:
        raise HTTPException(status_code=400, detail=f"Unknown feature {toggle.key}")
    settings.set_setting(db, tenant_id, toggle.key, toggle.enabled)
    return settings.feature_map(db, tenant_id)


@router.post("/tenants/{tenant_id}/repair_history")
def repair_history(tenant_id: str, x_admin_token: Optional[str] = Header(None), db: Session = Depends(get_db)):
    verify_admin(x_admin_token)
    repaired = orders.repair_history(db, tenant_id)
    return {"repaired": repaired}
