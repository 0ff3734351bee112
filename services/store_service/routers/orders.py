"""Store orders router: checkout, payment verification and order history."""

from fastapi import APIRouter, Depends, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.rate_limit import payment_limit
from services.store_service.routers._helpers import get_order_manager
from services.store_service.schemas import (
    OrderCreate,
    OrderCreateResponse,
    OrderResponse,
    PaymentStatusResponse,
    ReturnEligibilityResponse,
    VerifyRequest,
    VerifyResponse,
)
from services.store_service.services.order_lifecycle import (
    OrderLifecycleManager,
    is_return_eligible,
    return_deadline,
)

router = APIRouter(tags=["store"])


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post(
    "/orders",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
@payment_limit
async def create_order(
    request: Request,
    order_in: OrderCreate,
    current_user: AuthUser = Depends(get_current_user),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    """
    Create a pending order.

    Gateway orders come back with ``redirect_url`` for the hosted pay page.
    Cash-on-delivery orders are created without contacting the gateway.
    """
    created = await manager.create(
        current_user,
        amount=order_in.amount,
        currency=order_in.currency,
        payment_method=order_in.payment_method,
        draft=order_in.order_data,
    )
    return OrderCreateResponse.model_validate(created)


@router.post("/orders/verify", response_model=VerifyResponse)
@payment_limit
async def verify_payment(
    request: Request,
    verify_in: VerifyRequest,
    current_user: AuthUser = Depends(get_current_user),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    """Confirm the order if its payment went through. Safe to retry."""
    result = await manager.verify(
        current_user, verify_in.transaction_id, verify_in.payment_method
    )
    return VerifyResponse.model_validate(result)


# ============================================================================
# ORDER HISTORY
# ============================================================================


@router.get("/orders", response_model=list[OrderResponse])
async def list_my_orders(
    current_user: AuthUser = Depends(get_current_user),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    """List current user's orders, newest first."""
    return await manager.list_for_user(current_user.user_id)


@router.get("/orders/{order_number}", response_model=OrderResponse)
async def get_my_order(
    order_number: str,
    current_user: AuthUser = Depends(get_current_user),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    return await manager.get_for_user(current_user, order_number)


@router.get(
    "/orders/{order_number}/payment-status", response_model=PaymentStatusResponse
)
async def get_payment_status(
    order_number: str,
    current_user: AuthUser = Depends(get_current_user),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    return await manager.payment_status(current_user, order_number)


@router.get(
    "/orders/{order_number}/return-eligibility",
    response_model=ReturnEligibilityResponse,
)
async def get_return_eligibility(
    order_number: str,
    current_user: AuthUser = Depends(get_current_user),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    """Whether a delivered order is still inside the return window."""
    order = await manager.get_for_user(current_user, order_number)
    return ReturnEligibilityResponse(
        order_number=order.order_number,
        eligible=is_return_eligible(order),
        window_days=get_settings().RETURN_WINDOW_DAYS,
        delivered_at=order.delivered_at,
        deadline=return_deadline(order),
    )
