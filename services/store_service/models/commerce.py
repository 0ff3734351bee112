"""Store commerce models: orders and the payment ledger."""

import random
import time
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import (
    LedgerStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    enum_values,
)
from sqlalchemy import JSON, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, Numeric, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


# ============================================================================
# ORDER MODEL
# ============================================================================


class Order(Base):
    """Orders. Created once, mutated only through lifecycle transitions."""

    __tablename__ = "store_orders"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    order_number: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)

    # Gateway-facing transaction id (PAY_... for gateway, cod_... for cash)
    payment_order_id: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False, index=True
    )

    # Snapshots taken at creation time
    items: Mapped[list] = mapped_column(JSONDocument, nullable=False)
    shipping_address: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    billing_address: Mapped[Optional[dict]] = mapped_column(
        JSONDocument, nullable=True
    )

    # Pricing, computed once and never re-derived from live prices
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    shipping_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=0, server_default="0"
    )
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="INR", nullable=False)

    # Tax-invoice block
    # {"want_invoice": true, "gstin": "...", "tax_percent": 18, "tax_base": ..., ...}
    gst: Mapped[Optional[dict]] = mapped_column(JSONDocument, nullable=True)

    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(
            PaymentMethod,
            values_callable=enum_values,
            name="store_payment_method_enum",
        ),
        nullable=False,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(
            PaymentStatus,
            values_callable=enum_values,
            name="store_payment_status_enum",
        ),
        default=PaymentStatus.AWAITING_PAYMENT,
        nullable=False,
    )
    order_status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            values_callable=enum_values,
            name="store_order_status_enum",
        ),
        default=OrderStatus.PENDING,
        nullable=False,
    )
    # Mirrors order_status for clients that read the legacy field
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            values_callable=enum_values,
            name="store_order_status_enum",
        ),
        default=OrderStatus.PENDING,
        nullable=False,
    )

    # Fulfilment
    tracking_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    carrier_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tracking_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    # {"length_cm": .., "breadth_cm": .., "height_cm": .., "weight_kg": .., "images": [..]}
    shipping_package: Mapped[Optional[dict]] = mapped_column(
        JSONDocument, nullable=True
    )
    # Secondary gateway transaction for the post-packing shipping surcharge
    shipping_payment: Mapped[Optional[dict]] = mapped_column(
        JSONDocument, nullable=True
    )

    customer_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    shipped_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        Index("ix_store_orders_user_id_created_at", "user_id", "created_at"),
    )

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-auditable order number like NK1760870000123042."""
        return f"NK{int(time.time() * 1000)}{random.randint(0, 999):03d}"

    def __repr__(self):
        return f"<Order {self.order_number} {self.payment_status.value}>"


# ============================================================================
# PAYMENT LEDGER MODEL
# ============================================================================


class Payment(Base):
    """One ledger row per gateway/COD transaction id."""

    __tablename__ = "store_payments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    transaction_id: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False
    )
    order_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)

    # Denormalized payer snapshot
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    user_email: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(
            PaymentMethod,
            values_callable=enum_values,
            name="store_payment_method_enum",
        ),
        nullable=False,
    )
    status: Mapped[LedgerStatus] = mapped_column(
        SAEnum(
            LedgerStatus,
            values_callable=enum_values,
            name="store_ledger_status_enum",
        ),
        default=LedgerStatus.PENDING,
        nullable=False,
    )

    payment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        Index("ix_store_payments_user_id_status", "user_id", "status"),
        Index("ix_store_payments_status_payment_date", "status", "payment_date"),
    )

    def __repr__(self):
        return f"<Payment {self.transaction_id} {self.status.value}>"
