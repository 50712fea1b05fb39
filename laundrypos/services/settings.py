# laundrypos/services/settings.py
# Per-tenant key/value settings: feature toggles and message templates
from typing import Any

from sqlalchemy.orm import Session

from laundrypos.models import TenantSetting

FEATURE_KEYS = ("feature_wa", "feature_poin", "feature_voucher")
TEMPLATES_KEY = "wa_templates"


def get_setting(db: Session, tenant_id: str, key: str, default: Any = None) -> Any:
    row = (
        db.query(TenantSetting)
        .filter(TenantSetting.tenant_id == tenant_id, TenantSetting.key == key)
        .first()
    )
    if row is None or row.value is None:
        return default
    return row.value


def set_setting(db: Session, tenant_id: str, key: str, value: Any) -> TenantSetting:
    row = (
        db.query(TenantSetting)
        .filter(TenantSetting.tenant_id == tenant_id, TenantSetting.key == key)
        .first()
    )
    if row is None:
        row = TenantSetting(tenant_id=tenant_id, key=key)
    row.value = value
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def feature_enabled(db: Session, tenant_id: str, key: str) -> bool:
    # toggles are on unless explicitly switched off
    return get_setting(db, tenant_id, key, True) is not False


def feature_map(db: Session, tenant_id: str) -> dict:
    return {key: feature_enabled(db, tenant_id, key) for key in FEATURE_KEYS}
