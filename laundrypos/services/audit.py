# laundrypos/services/audit.py
from typing import Any, Optional

from sqlalchemy.orm import Session

from laundrypos.models import AuditLog


def record(
    db: Session,
    tenant_id: str,
    actor_id: Optional[str],
    action: str,
    entity: str,
    entity_id: Any,
    old_data: Optional[dict] = None,
    new_data: Optional[dict] = None,
) -> AuditLog:
    """Stage an audit row in the caller's transaction (the caller commits)."""
    entry = AuditLog(
        tenant_id=tenant_id,
        actor_id=actor_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        old_data=old_data,
        new_data=new_data,
    )
    db.add(entry)
    return entry


def list_entries(db: Session, tenant_id: str, limit: int = 100):
    return (
        db.query(AuditLog)
        .filter(AuditLog.tenant_id == tenant_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )
