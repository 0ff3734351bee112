"""Enum definitions for store service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class PaymentMethod(str, enum.Enum):
    GATEWAY = "gateway"
    COD = "cod"


class PaymentStatus(str, enum.Enum):
    AWAITING_PAYMENT = "awaiting_payment"
    COD_PENDING = "cod_pending"
    PAID = "paid"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Orders in these states can no longer change status.
FINAL_ORDER_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


class LedgerStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class ShippingPaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class PricingMode(str, enum.Enum):
    """How cart lines are priced; not persisted."""

    RETAIL = "retail"
    WHOLESALE = "wholesale"

    @classmethod
    def parse(cls, raw):
        """Anything other than ``wholesale`` prices at retail."""
        if raw and raw.strip().lower() == cls.WHOLESALE.value:
            return cls.WHOLESALE
        return cls.RETAIL
