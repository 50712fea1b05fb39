# laundrypos/models.py
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

from laundrypos.utils.dates import utcnow

Base = declarative_base()


class License(Base):
    __tablename__ = "licenses"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Text, nullable=False, index=True)
    package = Column(Text, nullable=False)  # monthly / yearly
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    grace_days = Column(Integer, nullable=False, default=3)
    active = Column(Boolean, nullable=False, default=True)
    status = Column(Text, nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), default=utcnow)


class Payment(Base):
    __tablename__ = "payments"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Text, nullable=False, index=True)
    amount_idr = Column(Integer, nullable=False)
    method = Column(Text, nullable=False, default="manual_transfer")
    status = Column(Text, nullable=False, default="pending_verification")
    package = Column(Text, nullable=True)  # null on legacy rows, see resolve_package
    notes = Column(Text, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("tenant_id", "phone"),)
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    phone = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    points_balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Text, nullable=False, index=True)
    code = Column(Text, unique=True, nullable=False, index=True)
    barcode_value = Column(Text, nullable=True, index=True)
    customer_id = Column(Integer, nullable=True)  # FK not declared for portability
    total_idr = Column(Integer, nullable=False, default=0)
    status = Column(Text, nullable=False, default="received")
    payment_status = Column(Text, nullable=False, default="unpaid")
    payment_method = Column(Text, nullable=True)
    paid_idr = Column(Integer, nullable=False, default=0)
    advance_idr = Column(Integer, nullable=False, default=0)
    note = Column(Text, nullable=True)
    created_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Text, nullable=False)
    order_id = Column(Integer, nullable=False, index=True)
    service_id = Column(Text, nullable=True)
    item_name = Column(Text, nullable=False)
    unit_price = Column(Float, nullable=False)
    quantity = Column(Float, nullable=False)
    unit = Column(Text, nullable=False, default="kg")
    subtotal = Column(Integer, nullable=False)


class OrderStatusLog(Base):
    """Append-only; rows outlive the order they describe."""

    __tablename__ = "order_status_logs"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Text, nullable=False)
    order_id = Column(Integer, nullable=False, index=True)
    old_status = Column(Text, nullable=True)
    new_status = Column(Text, nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class Voucher(Base):
    __tablename__ = "vouchers"
    __table_args__ = (UniqueConstraint("tenant_id", "code"),)
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Text, nullable=False, index=True)
    code = Column(Text, nullable=False)
    discount_type = Column(Text, nullable=False, default="fixed")  # fixed / percent
    value = Column(Integer, nullable=False)
    min_order = Column(Integer, nullable=False, default=0)
    quota = Column(Integer, nullable=False, default=999)
    expires_on = Column(Date, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class TenantSetting(Base):
    __tablename__ = "tenant_settings"
    __table_args__ = (UniqueConstraint("tenant_id", "key"),)
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Text, nullable=False, index=True)
    key = Column(Text, nullable=False)
    value = Column(JSON, nullable=True)


class AuditLog(Base):
    __tablename__ = "audit_logs"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Text, nullable=False, index=True)
    actor_id = Column(Text, nullable=True)
    action = Column(Text, nullable=False)
    entity = Column(Text, nullable=False)
    entity_id = Column(Text, nullable=True)
    old_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class WaMessageLog(Base):
    __tablename__ = "wa_message_logs"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Text, nullable=False, index=True)
    order_code = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    message = Column(Text, nullable=True)
    is_success = Column(Boolean, nullable=False, default=False)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
