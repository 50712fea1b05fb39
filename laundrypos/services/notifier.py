# laundrypos/services/notifier.py
# WhatsApp status notifications through the HTTP gateway.
# Requirements: requests
import logging
import re
from typing import Callable, Dict, Optional, Tuple

import requests
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from laundrypos.config import get_settings
from laundrypos.enums import OrderStatus, PaymentStatus
from laundrypos.models import WaMessageLog
from laundrypos.services.settings import TEMPLATES_KEY, feature_enabled, get_setting

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES: Dict[str, str] = {
    OrderStatus.RECEIVED.value: (
        "Halo *{{nama}}*,\n\nPesanan laundry Anda telah kami terima!\n\n"
        "*Kode:* {{kode}}\n*Status:* {{status}}\n\nTerima kasih telah menggunakan layanan kami!"
    ),
    OrderStatus.WASHING.value: (
        "Halo *{{nama}}*,\n\nPesanan laundry Anda sedang dalam proses pencucian.\n\n"
        "*Kode:* {{kode}}\n*Status:* {{status}}\n\nTerima kasih!"
    ),
    OrderStatus.READY.value: (
        "Halo *{{nama}}*,\n\nPesanan laundry Anda sudah selesai dan siap diambil!\n\n"
        "*Kode:* {{kode}}\n*Status:* {{status}}\n*Pembayaran:* {{status_bayar}} ({{nominal}})\n\nTerima kasih!"
    ),
    OrderStatus.PICKED_UP.value: (
        "Halo *{{nama}}*,\n\nTerima kasih sudah mengambil laundry Anda. Sampai jumpa lagi!\n\n"
        "*Kode:* {{kode}}\n*Status:* {{status}}"
    ),
}

PAYMENT_LABEL = {
    PaymentStatus.PAID.value: "Lunas",
    PaymentStatus.UNPAID.value: "Belum Bayar",
    PaymentStatus.PARTIAL.value: "DP",
}

_PLACEHOLDER = re.compile(r"\{\{(nama|kode|status|status_bayar|nominal)\}\}")


class OrderNotice(BaseModel):
    """Snapshot of what a status message needs; taken before the request session closes."""

    tenant_id: str
    order_code: str
    status: OrderStatus
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    payment_status: Optional[str] = None
    total_idr: Optional[int] = None


def format_phone(phone: Optional[str]) -> str:
    """Normalise an Indonesian number to the 62xxx international form."""
    if not phone:
        return ""
    digits = re.sub(r"\D", "", phone)
    if digits.startswith("0"):
        digits = "62" + digits[1:]
    if not digits.startswith("62"):
        digits = "62" + digits
    return digits


def format_idr(amount: Optional[int]) -> str:
    if amount is None:
        return "-"
    return "Rp " + f"{int(amount):,}".replace(",", ".")


def render_template(template: str, values: Dict[str, Optional[str]]) -> str:
    defaults = {"nama": "Pelanggan"}

    def repl(match: re.Match) -> str:
        key = match.group(1)
        return values.get(key) or defaults.get(key, "-")

    return _PLACEHOLDER.sub(repl, template)


def get_templates(db: Session, tenant_id: str) -> Dict[str, str]:
    templates = dict(DEFAULT_TEMPLATES)
    try:
        custom = get_setting(db, tenant_id, TEMPLATES_KEY)
    except SQLAlchemyError:
        logger.warning("Could not load message templates for tenant %s, using defaults", tenant_id)
        return templates
    if isinstance(custom, dict):
        templates.update({k: v for k, v in custom.items() if k in templates and v})
    return templates


def build_message(db: Session, notice: OrderNotice) -> str:
    template = get_templates(db, notice.tenant_id)[notice.status.value]
    return render_template(template, {
        "nama": notice.customer_name,
        "kode": notice.order_code,
        "status": notice.status.label,
        "status_bayar": PAYMENT_LABEL.get(notice.payment_status or "", notice.payment_status),
        "nominal": format_idr(notice.total_idr),
    })


def post_message(phone: str, message: str) -> Tuple[bool, Optional[str]]:
    settings = get_settings()
    headers = {"Content-Type": "application/json", "X-API-KEY": settings.wa_api_key}
    payload = {"phone": phone, "message": message, "owner_email": settings.owner_email}
    try:
        r = requests.post(settings.wa_api_url, headers=headers, json=payload, timeout=settings.wa_timeout)
    except requests.RequestException as exc:
        logger.error("WA gateway unreachable: %s", exc)
        return False, str(exc)
    if not r.ok:
        logger.error("WA gateway error %s: %s", r.status_code, r.text)
        return False, f"HTTP {r.status_code}: {r.text}"
    return True, None


def _record(db: Session, notice: OrderNotice, phone: str, message: str, ok: bool, error: Optional[str]) -> None:
    try:
        db.add(WaMessageLog(
            tenant_id=notice.tenant_id,
            order_code=notice.order_code,
            phone=phone,
            message=message,
            is_success=ok,
            error=error,
        ))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not record WA message log for order %s", notice.order_code)


def send_order_notice(db: Session, notice: OrderNotice) -> bool:
    """Send the status message for an order. Never raises; returns whether it went out."""
    settings = get_settings()
    if not (settings.wa_api_url and settings.wa_api_key and settings.owner_email):
        logger.warning("WA gateway is not configured, skipping notice for %s", notice.order_code)
        return False
    if not notice.customer_phone:
        logger.warning("No phone number for order %s, WA notice not sent", notice.order_code)
        return False
    try:
        if not feature_enabled(db, notice.tenant_id, "feature_wa"):
            logger.info("WA notices disabled for tenant %s", notice.tenant_id)
            return False
    except SQLAlchemyError:
        logger.warning("Could not read WA toggle for tenant %s", notice.tenant_id)

    phone = format_phone(notice.customer_phone)
    message = build_message(db, notice)
    ok, error = post_message(phone, message)
    _record(db, notice, phone, message, ok, error)
    if ok:
        logger.info("WA notice sent for order %s (%s)", notice.order_code, notice.status.value)
    return ok


def dispatch_notice(session_factory: Callable[[], Session], notice: OrderNotice) -> None:
    """Background entry point: runs after the response with a session of its own."""
    db = session_factory()
    try:
        send_order_notice(db, notice)
    except Exception:
        logger.exception("WA notice for order %s failed", notice.order_code)
    finally:
        db.close()


def list_message_logs(db: Session, tenant_id: str, success: Optional[bool] = None, limit: int = 100):
    query = db.query(WaMessageLog).filter(WaMessageLog.tenant_id == tenant_id)
    if success is not None:
        query = query.filter(WaMessageLog.is_success.is_(success))
    return query.order_by(WaMessageLog.created_at.desc(), WaMessageLog.id.desc()).limit(limit).all()
