"""Admin store router: order fulfilment and the payment ledger."""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import as_utc
from libs.common.errors import ValidationError
from libs.db.session import get_async_db
from services.store_service.models import OrderStatus
from services.store_service.routers._helpers import get_order_manager
from services.store_service.schemas import (
    AdminOrderResponse,
    LedgerSummaryResponse,
    OrderStatusUpdate,
    PackageIn,
    PaymentResponse,
    ShippingPaymentCreate,
    ShippingPaymentResponse,
    TodayPaymentsResponse,
)
from services.store_service.services import payment_ledger
from services.store_service.services.order_lifecycle import OrderLifecycleManager
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])


# ============================================================================
# ORDERS
# ============================================================================


@router.get("/orders", response_model=list[AdminOrderResponse])
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    _admin: AuthUser = Depends(require_admin),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    return await manager.list_all(status)


@router.get("/orders/{order_id}", response_model=AdminOrderResponse)
async def get_order(
    order_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    return await manager.get_by_id(order_id)


@router.patch("/orders/{order_id}/status", response_model=AdminOrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    update_in: OrderStatusUpdate,
    _admin: AuthUser = Depends(require_admin),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    """Move an order along. Delivered and cancelled orders are final."""
    return await manager.update_status(
        order_id,
        update_in.status,
        tracking_number=update_in.tracking_number,
        carrier_name=update_in.carrier_name,
        tracking_url=update_in.tracking_url,
        admin_notes=update_in.admin_notes,
    )


@router.post("/orders/{order_id}/package", response_model=AdminOrderResponse)
async def package_order(
    order_id: uuid.UUID,
    package_in: PackageIn,
    _admin: AuthUser = Depends(require_admin),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    """Record package details; a positive ``shipping_charge`` opens a payment link."""
    return await manager.package(order_id, package_in)


@router.post(
    "/orders/{order_id}/shipping-payment", response_model=ShippingPaymentResponse
)
async def create_shipping_payment(
    order_id: uuid.UUID,
    payment_in: ShippingPaymentCreate,
    _admin: AuthUser = Depends(require_admin),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    return await manager.create_shipping_payment(
        order_id, payment_in.amount, payment_in.currency
    )


@router.post(
    "/orders/{order_id}/shipping-payment/verify",
    response_model=ShippingPaymentResponse,
)
async def verify_shipping_payment(
    order_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    return await manager.verify_shipping_payment(order_id)


# ============================================================================
# PAYMENT LEDGER
# ============================================================================


@router.get("/payments", response_model=list[PaymentResponse])
async def list_payments(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """All ledger rows, newest first."""
    return await payment_ledger.list_all(db)


@router.get("/payments/summary", response_model=LedgerSummaryResponse)
async def payments_summary(
    start: datetime = Query(...),
    end: datetime = Query(...),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Completed payment total and count within [start, end]."""
    if as_utc(start) > as_utc(end):
        raise ValidationError("start must not be after end")
    summary = await payment_ledger.aggregate_completed_between(db, start, end)
    return LedgerSummaryResponse.model_validate(summary)


@router.get("/payments/today", response_model=TodayPaymentsResponse)
async def payments_today(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return TodayPaymentsResponse.model_validate(await payment_ledger.today_summary(db))
