"""Pydantic schemas for store service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from services.store_service.models import (
    LedgerStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PricingMode,
    ShippingPaymentStatus,
)

# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemAdd(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=64)
    # Anything below 1 is treated as 1 when reserving
    quantity: int = 1


class CartItemUpdate(BaseModel):
    # Zero or negative removes the item
    quantity: int


class CartLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    name: str
    price: Decimal
    quantity: int
    stock_quantity: int
    image: Optional[str] = None
    min_quantity: int = 1
    line_total: Decimal


class CartResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entries: list[CartLineResponse] = []
    total_amount: Decimal = Decimal("0")
    item_count: int = 0
    mode: PricingMode = PricingMode.RETAIL


# ============================================================================
# WISHLIST SCHEMAS
# ============================================================================


class WishlistItemAdd(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=64)


class WishlistProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    price: Decimal
    in_stock: bool
    image: Optional[str] = None


class WishlistResponse(BaseModel):
    items: list[WishlistProductResponse] = []


# ============================================================================
# ORDER DRAFT SCHEMAS
# ============================================================================


class AddressIn(BaseModel):
    full_name: str = ""
    phone_number: str = ""
    email: str = ""
    address_line1: str = ""
    address_line2: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    landmark: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return ""
        return str(v).strip()


class OrderItemIn(BaseModel):
    product_id: str = Field(..., min_length=1)
    name: str = ""
    quantity: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0)
    image: Optional[str] = None


class DraftTotals(BaseModel):
    """Client-computed totals. Either all four are sent or none."""

    subtotal: Decimal = Field(..., ge=0)
    tax: Decimal = Field(..., ge=0)
    shipping: Decimal = Field(..., ge=0)
    total: Decimal = Field(..., ge=0)


class GstRequest(BaseModel):
    want_invoice: bool = False
    gstin: Optional[str] = None
    legal_name: Optional[str] = None
    place_of_supply: Optional[str] = None
    email: Optional[str] = None
    requested_at: Optional[datetime] = None


class OrderDraft(BaseModel):
    items: list[OrderItemIn] = []
    shipping_address: AddressIn = Field(default_factory=AddressIn)
    billing_address: Optional[AddressIn] = None
    totals: Optional[DraftTotals] = None
    gst: Optional[GstRequest] = None
    gst_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    customer_notes: Optional[str] = Field(None, max_length=1000)


class OrderCreate(BaseModel):
    amount: Decimal
    currency: str = Field("INR", max_length=8)
    payment_method: PaymentMethod
    order_data: OrderDraft


class OrderCreateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: uuid.UUID
    order_number: str
    transaction_id: str
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    order_status: OrderStatus
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
    currency: str
    redirect_url: Optional[str] = None


class VerifyRequest(BaseModel):
    transaction_id: str = Field(..., min_length=1, max_length=100)
    payment_method: PaymentMethod


class VerifyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    verified: bool
    status: str
    already_paid: bool = False
    order_id: Optional[uuid.UUID] = None
    order_number: Optional[str] = None


# ============================================================================
# ORDER VIEW SCHEMAS
# ============================================================================


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    user_id: str
    payment_order_id: str
    items: list[dict]
    shipping_address: dict
    billing_address: Optional[dict] = None
    subtotal: Decimal
    tax: Decimal
    shipping_fee: Decimal
    total: Decimal
    currency: str
    gst: Optional[dict] = None
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    order_status: OrderStatus
    status: OrderStatus
    tracking_number: Optional[str] = None
    carrier_name: Optional[str] = None
    tracking_url: Optional[str] = None
    shipping_package: Optional[dict] = None
    shipping_payment: Optional[dict] = None
    customer_notes: Optional[str] = None
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AdminOrderResponse(OrderResponse):
    admin_notes: Optional[str] = None


class PaymentStatusResponse(BaseModel):
    payment: PaymentStatus
    order: OrderStatus
    total: Decimal
    payment_method: PaymentMethod
    created_at: datetime
    paid_at: Optional[datetime] = None


class ReturnEligibilityResponse(BaseModel):
    order_number: str
    eligible: bool
    window_days: int
    delivered_at: Optional[datetime] = None
    deadline: Optional[datetime] = None


# ============================================================================
# ADMIN FULFILMENT SCHEMAS
# ============================================================================


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    tracking_number: Optional[str] = Field(None, max_length=100)
    carrier_name: Optional[str] = Field(None, max_length=100)
    tracking_url: Optional[str] = Field(None, max_length=500)
    admin_notes: Optional[str] = None


class PackageIn(BaseModel):
    length_cm: Decimal = Field(..., gt=0)
    breadth_cm: Decimal = Field(..., gt=0)
    height_cm: Decimal = Field(..., gt=0)
    weight_kg: Decimal = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=500)
    images: list[str] = Field(default_factory=list, max_length=5)
    # Extra shipping charge collected through a second gateway transaction
    shipping_charge: Optional[Decimal] = Field(None, ge=0)
    currency: str = Field("INR", max_length=8)


class ShippingPaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    currency: str = Field("INR", max_length=8)


class ShippingPaymentResponse(BaseModel):
    link_id: str
    short_url: Optional[str] = None
    status: ShippingPaymentStatus
    currency: str
    amount: Decimal
    amount_paid: Decimal = Decimal("0")
    payment_ids: list[str] = []
    created_at: datetime
    paid_at: Optional[datetime] = None


# ============================================================================
# PAYMENT LEDGER SCHEMAS
# ============================================================================


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    transaction_id: str
    order_id: str
    user_id: str
    user_name: str
    user_email: str
    amount: Decimal
    payment_method: PaymentMethod
    status: LedgerStatus
    payment_date: datetime
    created_at: datetime
    updated_at: datetime


class LedgerSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_amount: Decimal
    count: int


class TodayPaymentsResponse(LedgerSummaryResponse):
    start: datetime
    end: datetime
    payments: list[PaymentResponse] = []
