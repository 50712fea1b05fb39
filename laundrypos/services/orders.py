# laundrypos/services/orders.py
# Order lifecycle: checkout, forward-only stage transitions, scan advance, deletion
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from laundrypos.config import POINT_UNIT_IDR
from laundrypos.enums import OrderStatus, PaymentStatus
from laundrypos.errors import CustomerNotFound, InvalidPayment, InvalidTransition, OrderNotFound
from laundrypos.models import Customer, Order, OrderItem, OrderStatusLog
from laundrypos.schemas import OrderCreate, OrderEdit
from laundrypos.services import audit
from laundrypos.services.entitlement import require_active
from laundrypos.services.notifier import OrderNotice
from laundrypos.services.settings import feature_enabled
from laundrypos.services.vouchers import ensure_enabled, find_voucher, validate_voucher
from laundrypos.utils.codes import generate_order_code
from laundrypos.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)
integrity_logger = logging.getLogger("laundrypos.integrity")


@dataclass
class TransitionResult:
    order: Order
    previous: OrderStatus
    changed: bool


@dataclass
class CreateResult:
    order: Order
    discount: int
    points: int


def order_snapshot(order: Order) -> dict:
    return {
        "id": order.id,
        "code": order.code,
        "customer_id": order.customer_id,
        "total_idr": order.total_idr,
        "status": order.status,
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "paid_idr": order.paid_idr,
        "advance_idr": order.advance_idr,
        "note": order.note,
    }


def points_for(total: int) -> int:
    return max(total, 0) // POINT_UNIT_IDR


def get_order(db: Session, tenant_id: str, order_id: int) -> Order:
    order = db.query(Order).filter(Order.tenant_id == tenant_id, Order.id == order_id).first()
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found")
    return order


def find_by_code(db: Session, tenant_id: str, code: str) -> Order:
    code = code.strip()
    order = (
        db.query(Order)
        .filter(Order.tenant_id == tenant_id, or_(Order.code == code, Order.barcode_value == code))
        .first()
    )
    if order is None:
        raise OrderNotFound(f'Order code "{code}" not found')
    return order


def list_orders(db: Session, tenant_id: str, status_filter: Optional[str] = None, limit: int = 200) -> List[Order]:
    query = db.query(Order).filter(Order.tenant_id == tenant_id)
    if status_filter == "active":
        query = query.filter(Order.status != OrderStatus.PICKED_UP.value)
    elif status_filter:
        query = query.filter(Order.status == OrderStatus(status_filter).value)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()


def history(db: Session, tenant_id: str, order_id: int) -> List[OrderStatusLog]:
    get_order(db, tenant_id, order_id)
    return (
        db.query(OrderStatusLog)
        .filter(OrderStatusLog.tenant_id == tenant_id, OrderStatusLog.order_id == order_id)
        .order_by(OrderStatusLog.created_at.asc(), OrderStatusLog.id.asc())
        .all()
    )


def notice_for(db: Session, order: Order) -> OrderNotice:
    customer = db.get(Customer, order.customer_id) if order.customer_id else None
    return OrderNotice(
        tenant_id=order.tenant_id,
        order_code=order.code,
        status=OrderStatus(order.status),
        customer_name=customer.name if customer else None,
        customer_phone=customer.phone if customer else None,
        payment_status=order.payment_status,
        total_idr=order.total_idr,
    )


def _apply(db: Session, order: Order, target: OrderStatus, note: Optional[str], now: datetime) -> TransitionResult:
    current = OrderStatus(order.status)
    if target is current:
        return TransitionResult(order=order, previous=current, changed=False)
    if current.successor() is not target:
        logger.warning("Rejected transition of order %s: %s -> %s", order.code, current.value, target.value)
        raise InvalidTransition(current.value, target.value)

    # conditional update closes the double-advance race (scan and manual entry together)
    moved = db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == current.value)
        .values(status=target.value, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if moved.rowcount == 0:
        db.rollback()
        db.refresh(order)
        logger.warning("Order %s changed concurrently, now %s", order.code, order.status)
        raise InvalidTransition(order.status, target.value)

    db.add(OrderStatusLog(
        tenant_id=order.tenant_id,
        order_id=order.id,
        old_status=current.value,
        new_status=target.value,
        note=note,
        created_at=now,
    ))
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    logger.info("Order %s moved %s -> %s", order.code, current.value, target.value)
    return TransitionResult(order=order, previous=current, changed=True)


def transition(
    db: Session,
    tenant_id: str,
    order_id: int,
    target: OrderStatus,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TransitionResult:
    """Advance an order to ``target``, which must be its immediate successor.

    A target equal to the current stage is a no-op. The status update and the
    history entry commit together.
    """
    now = as_utc(now) if now else utcnow()
    require_active(db, tenant_id, now=now)
    order = get_order(db, tenant_id, order_id)
    return _apply(db, order, OrderStatus(target), note, now)


def advance(db: Session, tenant_id: str, code: str, now: Optional[datetime] = None) -> TransitionResult:
    """Scan-driven advance: move the order found by code or barcode one stage on."""
    now = as_utc(now) if now else utcnow()
    order = find_by_code(db, tenant_id, code)
    require_active(db, tenant_id, now=now)
    current = OrderStatus(order.status)
    target = current.successor()
    if target is None:
        return TransitionResult(order=order, previous=current, changed=False)
    return _apply(db, order, target, None, now)


def settle_payment(requested: PaymentStatus, advance: int, total: int):
    """Payment status and amount paid at checkout.

    A down payment that covers the whole total settles the order.
    """
    if requested is PaymentStatus.PAID or (advance > 0 and advance >= total):
        return PaymentStatus.PAID, total
    if advance > 0:
        return PaymentStatus.PARTIAL, advance
    if requested is PaymentStatus.PARTIAL:
        raise InvalidPayment("A partial payment needs a down payment amount")
    return PaymentStatus.UNPAID, 0


def _resolve_customer(db: Session, tenant_id: str, draft: OrderCreate) -> Customer:
    if draft.customer_id is not None:
        customer = (
            db.query(Customer)
            .filter(Customer.tenant_id == tenant_id, Customer.id == draft.customer_id)
            .first()
        )
        if customer is None:
            raise CustomerNotFound(f"Customer {draft.customer_id} not found")
        return customer

    new = draft.new_customer
    phone = new.phone.strip()
    customer = db.query(Customer).filter(Customer.tenant_id == tenant_id, Customer.phone == phone).first()
    if customer is None:
        customer = Customer(tenant_id=tenant_id, phone=phone, points_balance=0)
    customer.name = new.name.strip()
    customer.address = (new.address or "").strip() or None
    db.add(customer)
    db.flush()
    return customer


def create_order(
    db: Session,
    tenant_id: str,
    actor_id: Optional[str],
    draft: OrderCreate,
    now: Optional[datetime] = None,
) -> CreateResult:
    now = as_utc(now) if now else utcnow()
    require_active(db, tenant_id, now=now)

    try:
        customer = _resolve_customer(db, tenant_id, draft)

        subtotal = draft.subtotal
        discount = 0
        if draft.voucher_code:
            ensure_enabled(db, tenant_id)
            voucher = find_voucher(db, tenant_id, draft.voucher_code, for_update=True)
            discount = validate_voucher(voucher, subtotal, now.date())
            voucher.quota -= 1
            db.add(voucher)
        total = max(subtotal - discount, 0)
        payment_status, paid = settle_payment(draft.payment_status, draft.advance_idr, total)

        code = generate_order_code(now)
        order = Order(
            tenant_id=tenant_id,
            code=code,
            barcode_value=code,
            customer_id=customer.id,
            total_idr=total,
            status=OrderStatus.RECEIVED.value,
            payment_status=payment_status.value,
            payment_method=draft.payment_method,
            paid_idr=paid,
            advance_idr=draft.advance_idr,
            note=draft.note or None,
            created_by=actor_id,
            created_at=now,
            updated_at=now,
        )
        db.add(order)
        db.flush()

        for item in draft.items:
            db.add(OrderItem(
                tenant_id=tenant_id,
                order_id=order.id,
                service_id=item.service_id,
                item_name=item.item_name,
                unit_price=item.unit_price,
                quantity=item.quantity,
                unit=item.unit,
                subtotal=item.subtotal,
            ))

        points = points_for(total) if feature_enabled(db, tenant_id, "feature_poin") else 0
        if points:
            db.execute(
                update(Customer)
                .where(Customer.id == customer.id)
                .values(points_balance=Customer.points_balance + points)
                .execution_options(synchronize_session=False)
            )

        audit.record(db, tenant_id, actor_id, "CREATE_ORDER", "orders", order.id, new_data=order_snapshot(order))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info("Order %s created for tenant %s: total %s, %s points", order.code, tenant_id, total, points)
    return CreateResult(order=order, discount=discount, points=points)


def delete_order(db: Session, tenant_id: str, actor_id: Optional[str], order_id: int) -> str:
    """Delete an order and its line items. Not gated on the license verdict."""
    order = get_order(db, tenant_id, order_id)
    code = order.code
    try:
        audit.record(db, tenant_id, actor_id, "DELETE_ORDER", "orders", order_id, old_data={"code": code})
        db.flush()
        db.query(OrderItem).filter(OrderItem.order_id == order_id).delete(synchronize_session=False)
        db.delete(order)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Order %s deleted by %s", code, actor_id)
    return code


def edit_order(db: Session, tenant_id: str, order_id: int, changes: OrderEdit, now: Optional[datetime] = None) -> Order:
    """Administrative edit of payment and note fields; the stage is left alone."""
    require_active(db, tenant_id, now=now)
    order = get_order(db, tenant_id, order_id)
    fields = changes.model_dump(exclude_unset=True)
    if "note" in fields:
        order.note = fields["note"] or None
    if fields.get("payment_status") is not None:
        order.payment_status = PaymentStatus(fields["payment_status"]).value
    if fields.get("payment_method") is not None:
        order.payment_method = fields["payment_method"]
    if fields.get("paid_idr") is not None:
        order.paid_idr = fields["paid_idr"]
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def mark_paid(db: Session, tenant_id: str, order_id: int, now: Optional[datetime] = None) -> Order:
    require_active(db, tenant_id, now=now)
    order = get_order(db, tenant_id, order_id)
    order.payment_status = PaymentStatus.PAID.value
    order.paid_idr = order.total_idr
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def _stage_path(status: OrderStatus) -> List[OrderStatus]:
    """Stages an order passed through to reach ``status``, oldest first."""
    path = [status]
    while path[-1].predecessor() is not None:
        path.append(path[-1].predecessor())
    return path[::-1]


def repair_history(db: Session, tenant_id: str, now: Optional[datetime] = None) -> List[str]:
    """Append every missing history entry between ``received`` and each order's current stage.

    Returns the codes of the repaired orders.
    """
    now = as_utc(now) if now else utcnow()
    repaired = []
    orders = (
        db.query(Order)
        .filter(Order.tenant_id == tenant_id, Order.status != OrderStatus.RECEIVED.value)
        .all()
    )
    for order in orders:
        logged = {
            row.new_status
            for row in db.query(OrderStatusLog.new_status).filter(OrderStatusLog.order_id == order.id)
        }
        path = _stage_path(OrderStatus(order.status))
        missing = [(old, new) for old, new in zip(path, path[1:]) if new.value not in logged]
        if not missing:
            continue
        integrity_logger.warning(
            "History gap: order %s is %s, missing %s",
            order.code, order.status, ", ".join(f"{old.value}->{new.value}" for old, new in missing),
        )
        for old, new in missing:
            db.add(OrderStatusLog(
                tenant_id=tenant_id,
                order_id=order.id,
                old_status=old.value,
                new_status=new.value,
                note="reconciled",
                created_at=now,
            ))
        repaired.append(order.code)
    db.commit()
    return repaired
