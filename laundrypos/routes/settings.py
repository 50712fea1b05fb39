# laundrypos/routes/settings.py
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from laundrypos.auth import Actor, get_actor, require_writer
from laundrypos.database import get_db
from laundrypos.schemas import AuditEntryOut, MessageLogOut, TemplatesUpdate
from laundrypos.services import audit, notifier, settings

router = APIRouter(prefix="/tenants/{tenant_id}/settings", tags=["settings"])


@router.get("/features")
def get_features(tenant_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> Dict[str, bool]:
    return settings.feature_map(db, tenant_id)


@router.get("/templates")
def get_templates(tenant_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)) -> Dict[str, str]:
    return notifier.get_templates(db, tenant_id)


@router.put("/templates")
def put_templates(tenant_id: str, req: TemplatesUpdate, actor: Actor = Depends(require_writer), db: Session = Depends(get_db)) -> Dict[str, str]:
    stored = {status.value: text for status, text in req.templates.items()}
    settings.set_setting(db, tenant_id, settings.TEMPLATES_KEY, stored)
    return notifier.get_templates(db, tenant_id)


@router.get("/wa-logs", response_model=List[MessageLogOut])
def wa_logs(tenant_id: str, success: Optional[bool] = None, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return notifier.list_message_logs(db, tenant_id, success=success)


@router.get("/audit-logs", response_model=List[AuditEntryOut])
def audit_logs(tenant_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return audit.list_entries(db, tenant_id)
