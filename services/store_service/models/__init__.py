"""Store Service models package."""

from services.store_service.models.commerce import Order, Payment
from services.store_service.models.enums import (
    FINAL_ORDER_STATUSES,
    LedgerStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PricingMode,
    ShippingPaymentStatus,
)

__all__ = [
    "FINAL_ORDER_STATUSES",
    "LedgerStatus",
    "Order",
    "OrderStatus",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "PricingMode",
    "ShippingPaymentStatus",
]
