# laundrypos/routes/licenses.py
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from laundrypos.auth import Actor, get_actor, require_writer
from laundrypos.database import get_db
from laundrypos.enums import Verdict
from laundrypos.schemas import LicenseOut, LicenseStatusResponse, PaymentOut, RenewalRequest
from laundrypos.services import entitlement

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants/{tenant_id}/license", tags=["license"])


@router.get("", response_model=LicenseStatusResponse)
def license_status(tenant_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    verdict = entitlement.evaluate(db, tenant_id)
    try:
        lic = entitlement.get_license_info(db, tenant_id)
    except SQLAlchemyError:
        logger.exception("License lookup failed for tenant %s", tenant_id)
        db.rollback()
        return LicenseStatusResponse(tenant_id=tenant_id, verdict=Verdict.EXPIRED)
    return LicenseStatusResponse(
        tenant_id=tenant_id,
        verdict=verdict,
        license=LicenseOut.model_validate(lic) if lic else None,
    )


@router.post("/renewals", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
def request_renewal(tenant_id: str, req: RenewalRequest, actor: Actor = Depends(require_writer), db: Session = Depends(get_db)):
    # licensing requests stay writable even when the license has expired
    return entitlement.request_renewal(db, tenant_id, req.package)


@router.get("/payments", response_model=List[PaymentOut])
def list_payments(tenant_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return entitlement.list_payments(db, tenant_id)
