# laundrypos/routes/orders.py
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from laundrypos.auth import Actor, get_actor, require_writer
from laundrypos.database import get_db, get_session_factory
from laundrypos.enums import OrderStatus
from laundrypos.schemas import (
    HistoryEntryOut,
    OrderCreate,
    OrderCreated,
    OrderEdit,
    OrderOut,
    ScanRequest,
    TransitionRequest,
    TransitionResponse,
)
from laundrypos.services import orders
from laundrypos.services.notifier import dispatch_notice

router = APIRouter(prefix="/tenants/{tenant_id}/orders", tags=["orders"])

STATUS_FILTER = "^(active|" + "|".join(s.value for s in OrderStatus) + ")$"


def _respond(db: Session, result: orders.TransitionResult, background: BackgroundTasks, session_factory) -> TransitionResponse:
    order = result.order
    if result.changed:
        # fire-and-forget; a failed notice never undoes the transition
        background.add_task(dispatch_notice, session_factory, orders.notice_for(db, order))
        message = f"Status updated: {OrderStatus(order.status).label}"
    elif order.status == OrderStatus.PICKED_UP.value:
        message = f"Order {order.code} is already complete"
    else:
        message = "Status unchanged"
    return TransitionResponse(
        order=OrderOut.model_validate(order),
        previous_status=result.previous,
        changed=result.changed,
        message=message,
    )


@router.get("", response_model=List[OrderOut])
def list_orders(tenant_id: str, status_filter: Optional[str] = Query(None, pattern=STATUS_FILTER), actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """``status_filter`` is a stage name or ``active`` (everything not yet picked up)."""
    return orders.list_orders(db, tenant_id, status_filter)


@router.post("", response_model=OrderCreated, status_code=status.HTTP_201_CREATED)
def create_order(tenant_id: str, draft: OrderCreate, actor: Actor = Depends(require_writer), db: Session = Depends(get_db)):
    result = orders.create_order(db, tenant_id, actor.id, draft)
    return OrderCreated(
        order=OrderOut.model_validate(result.order),
        discount_idr=result.discount,
        points_awarded=result.points,
    )


@router.post("/scan", response_model=TransitionResponse)
def scan(
    tenant_id: str,
    req: ScanRequest,
    background: BackgroundTasks,
    actor: Actor = Depends(require_writer),
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
):
    result = orders.advance(db, tenant_id, req.code)
    return _respond(db, result, background, session_factory)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(tenant_id: str, order_id: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return orders.get_order(db, tenant_id, order_id)


@router.post("/{order_id}/transition", response_model=TransitionResponse)
def transition(
    tenant_id: str,
    order_id: int,
    req: TransitionRequest,
    background: BackgroundTasks,
    actor: Actor = Depends(require_writer),
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
):
    result = orders.transition(db, tenant_id, order_id, req.target_status, note=req.note)
    return _respond(db, result, background, session_factory)


@router.get("/{order_id}/history", response_model=List[HistoryEntryOut])
def order_history(tenant_id: str, order_id: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return orders.history(db, tenant_id, order_id)


@router.patch("/{order_id}", response_model=OrderOut)
def edit_order(tenant_id: str, order_id: int, changes: OrderEdit, actor: Actor = Depends(require_writer), db: Session = Depends(get_db)):
    return orders.edit_order(db, tenant_id, order_id, changes)


@router.post("/{order_id}/mark-paid", response_model=OrderOut)
def mark_paid(tenant_id: str, order_id: int, actor: Actor = Depends(require_writer), db: Session = Depends(get_db)):
    return orders.mark_paid(db, tenant_id, order_id)


@router.delete("/{order_id}")
def delete_order(tenant_id: str, order_id: int, actor: Actor = Depends(require_writer), db: Session = Depends(get_db)):
    code = orders.delete_order(db, tenant_id, actor.id, order_id)
    return {"ok": True, "code": code}
