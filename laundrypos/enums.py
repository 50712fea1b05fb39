# laundrypos/enums.py
from enum import Enum
from typing import Optional

from laundrypos.config import MONTHLY_DAYS, YEARLY_DAYS


class Verdict(str, Enum):
    ACTIVE = "active"
    GRACE = "grace"
    EXPIRED = "expired"


class OrderStatus(str, Enum):
    """The four counter stages, declared in their forward order."""

    RECEIVED = "received"
    WASHING = "washing"
    READY = "ready"
    PICKED_UP = "picked_up"

    def successor(self) -> Optional["OrderStatus"]:
        return _SUCCESSOR[self]

    def predecessor(self) -> Optional["OrderStatus"]:
        for status, nxt in _SUCCESSOR.items():
            if nxt is self:
                return status
        return None

    @property
    def label(self) -> str:
        return _LABEL[self]


_SUCCESSOR = {
    OrderStatus.RECEIVED: OrderStatus.WASHING,
    OrderStatus.WASHING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.PICKED_UP,
    OrderStatus.PICKED_UP: None,
}

_LABEL = {
    OrderStatus.RECEIVED: "Pesanan Masuk",
    OrderStatus.WASHING: "Sedang Dicuci",
    OrderStatus.READY: "Selesai Dicuci",
    OrderStatus.PICKED_UP: "Sudah Diambil",
}


class PaymentStatus(str, Enum):
    """Settlement state of an order."""

    PAID = "paid"
    UNPAID = "unpaid"
    PARTIAL = "partial"


class RenewalStatus(str, Enum):
    """State of a license renewal payment; anything but pending is terminal."""

    PENDING_VERIFICATION = "pending_verification"
    PAID = "paid"
    REJECTED = "rejected"


class PackageKind(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def days(self) -> int:
        return YEARLY_DAYS if self is PackageKind.YEARLY else MONTHLY_DAYS


class DiscountType(str, Enum):
    FIXED = "fixed"
    PERCENT = "percent"


class ActorRole(str, Enum):
    OWNER = "owner"
    STAFF = "staff"
    VIEWER = "viewer"

    @property
    def can_write(self) -> bool:
        return self is not ActorRole.VIEWER
