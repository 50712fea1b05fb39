# laundrypos/schemas.py
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from laundrypos.enums import DiscountType, OrderStatus, PackageKind, PaymentStatus, Verdict


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------------------------
# Licensing
class LicenseOut(ORMModel):
    id: int
    tenant_id: str
    package: str
    start_at: datetime
    end_at: datetime
    grace_days: int
    active: bool
    status: str


class LicenseStatusResponse(BaseModel):
    tenant_id: str
    verdict: Verdict
    license: Optional[LicenseOut] = None


class RenewalRequest(BaseModel):
    package: PackageKind = PackageKind.MONTHLY


class GrantRequest(BaseModel):
    tenant_id: str = Field(min_length=1)
    package: PackageKind = PackageKind.MONTHLY


class PaymentOut(ORMModel):
    id: int
    tenant_id: str
    amount_idr: int
    method: str
    status: str
    package: Optional[str] = None
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


# ---------------------------
# Orders
class CartItem(BaseModel):
    service_id: Optional[str] = None
    item_name: str = "Layanan Custom"
    quantity: float = Field(gt=0)
    unit: str = "kg"
    subtotal: int = Field(ge=0)

    @property
    def unit_price(self) -> float:
        return self.subtotal / self.quantity


class NewCustomer(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    address: Optional[str] = None


class OrderCreate(BaseModel):
    customer_id: Optional[int] = None
    new_customer: Optional[NewCustomer] = None
    items: List[CartItem] = Field(min_length=1)
    voucher_code: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    payment_method: str = "tunai"
    advance_idr: int = Field(default=0, ge=0)
    note: Optional[str] = None

    @model_validator(mode="after")
    def _one_customer(self) -> "OrderCreate":
        if (self.customer_id is None) == (self.new_customer is None):
            raise ValueError("Provide exactly one of customer_id or new_customer")
        return self

    @property
    def subtotal(self) -> int:
        return sum(item.subtotal for item in self.items)


class OrderEdit(BaseModel):
    note: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = None
    paid_idr: Optional[int] = Field(default=None, ge=0)


class TransitionRequest(BaseModel):
    target_status: OrderStatus
    note: Optional[str] = None


class ScanRequest(BaseModel):
    code: str = Field(min_length=1)


class OrderOut(ORMModel):
    id: int
    tenant_id: str
    code: str
    customer_id: Optional[int] = None
    total_idr: int
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: Optional[str] = None
    paid_idr: int
    advance_idr: int
    note: Optional[str] = None
    created_at: Optional[datetime] = None


class OrderCreated(BaseModel):
    order: OrderOut
    discount_idr: int
    points_awarded: int


class TransitionResponse(BaseModel):
    order: OrderOut
    previous_status: OrderStatus
    changed: bool
    message: str


class HistoryEntryOut(ORMModel):
    old_status: Optional[str] = None
    new_status: str
    note: Optional[str] = None
    created_at: Optional[datetime] = None


# ---------------------------
# Vouchers
class VoucherCheck(BaseModel):
    code: str = Field(min_length=1)
    subtotal: int = Field(ge=0)


class VoucherCheckResponse(BaseModel):
    code: str
    discount_idr: int


class VoucherCreate(BaseModel):
    code: str = Field(min_length=1)
    discount_type: DiscountType = DiscountType.FIXED
    value: int = Field(gt=0)
    min_order: int = Field(default=0, ge=0)
    quota: int = Field(default=999, ge=0)
    expires_on: Optional[date] = None


class VoucherOut(ORMModel):
    id: int
    code: str
    discount_type: str
    value: int
    min_order: int
    quota: int
    expires_on: Optional[date] = None
    active: bool


# ---------------------------
# Settings / logs
class FeatureToggle(BaseModel):
    key: str
    enabled: bool


class TemplatesUpdate(BaseModel):
    templates: Dict[OrderStatus, str]


class MessageLogOut(ORMModel):
    order_code: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None
    is_success: bool
    error: Optional[str] = None
    created_at: Optional[datetime] = None


class AuditEntryOut(ORMModel):
    actor_id: Optional[str] = None
    action: str
    entity: str
    entity_id: Optional[str] = None
    old_data: Optional[dict] = None
    new_data: Optional[dict] = None
    created_at: Optional[datetime] = None
