"""Order lifecycle: creation, payment verification and fulfilment transitions.

SQL is the source of truth for orders and the payment ledger. The only
transition that can race is pending -> confirmed on verification; it is a
compare-and-set (``UPDATE ... WHERE payment_status != 'paid'``) so exactly
one caller applies the payment side effects.
"""

import random
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import redis.asyncio as aioredis
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.currency import rupees_to_paise, to_money
from libs.common.datetime_utils import as_utc, utc_now
from libs.common.errors import (
    ForbiddenError,
    GatewayError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from libs.common.logging import get_logger
from services.store_service.models import (
    FINAL_ORDER_STATUSES,
    LedgerStatus,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ShippingPaymentStatus,
)
from services.store_service.phonepe_client import PhonePeClient, StatusResult
from services.store_service.schemas import OrderDraft, PackageIn
from services.store_service.services import notifications, payment_ledger
from services.store_service.services.cart_store import clear_user_cart
from services.store_service.services.notifications import EventNotifier
from services.store_service.services.pricing import (
    build_gst_block,
    compute_totals,
    resolve_addresses,
)
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

PAYMENT_PENDING = "payment_pending"
PAYMENT_SUCCESS = "payment_success"

# Moving into these states requires a settled (or cash-on-delivery) payment
PAYMENT_REQUIRED_STATUSES = frozenset(
    {OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.DELIVERED}
)
PACKABLE_STATUSES = frozenset(
    {OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.DELIVERED}
)
MAX_PACKAGE_IMAGES = 5


def gateway_transaction_id(prefix: str, order_number: str) -> str:
    """``PAY_<order>_<6 digits>`` or ``SHIP_<order>_<6 digits>``."""
    return f"{prefix}_{order_number}_{random.randint(0, 999999):06d}"


def cod_transaction_id(user_id: str) -> str:
    return f"cod_{str(int(time.time() * 1000))[-8:]}_{user_id[-8:]}"


def is_return_eligible(
    order: Order, now: Optional[datetime] = None, window_days: Optional[int] = None
) -> bool:
    """True while a delivered order is inside the return window."""
    deadline = return_deadline(order, window_days)
    if deadline is None:
        return False
    return (now or utc_now()) <= deadline


def return_deadline(
    order: Order, window_days: Optional[int] = None
) -> Optional[datetime]:
    if order.order_status != OrderStatus.DELIVERED or order.delivered_at is None:
        return None
    days = window_days if window_days is not None else get_settings().RETURN_WINDOW_DAYS
    return as_utc(order.delivered_at) + timedelta(days=days)


@dataclass
class CreatedOrder:
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


@dataclass
class VerifyResult:
    verified: bool
    status: str
    already_paid: bool = False
    order_id: Optional[uuid.UUID] = None
    order_number: Optional[str] = None


class OrderLifecycleManager:
    """Drives an order from creation through payment to fulfilment."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: PhonePeClient,
        redis: aioredis.Redis,
        notifier: EventNotifier,
    ):
        self.db = db
        self.gateway = gateway
        self.redis = redis
        self.notifier = notifier

    # =========================================================================
    # Creation
    # =========================================================================

    async def create(
        self,
        user: AuthUser,
        *,
        amount: Decimal,
        currency: str,
        payment_method: PaymentMethod,
        draft: OrderDraft,
    ) -> CreatedOrder:
        """
        Create a pending order.

        For gateway payments the pay page is opened first; if the gateway
        refuses, nothing is persisted and the GatewayError propagates.
        """
        if amount is None or amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        if not draft.items:
            raise ValidationError("Order must contain at least one item")

        shipping_address, billing_address = resolve_addresses(
            draft.shipping_address, draft.billing_address
        )
        totals = compute_totals(draft.items, draft.totals)
        gst = build_gst_block(draft, shipping_address, totals)
        if to_money(amount) != totals.total:
            logger.warning(
                f"Charged amount {amount} differs from order total {totals.total}"
            )

        order_number = Order.generate_order_number()
        redirect_url = None

        if payment_method == PaymentMethod.GATEWAY:
            transaction_id = gateway_transaction_id("PAY", order_number)
            initiated = await self.gateway.initiate(
                transaction_id,
                rupees_to_paise(amount),
                redirect_url=self.gateway.config.redirect_url,
                callback_url=self.gateway.config.callback_url,
                payer_id=user.user_id,
            )
            redirect_url = initiated.redirect_url
            payment_status = PaymentStatus.AWAITING_PAYMENT
        else:
            transaction_id = cod_transaction_id(user.user_id)
            payment_status = PaymentStatus.COD_PENDING

        order = Order(
            order_number=order_number,
            user_id=user.user_id,
            payment_order_id=transaction_id,
            items=[item.model_dump(mode="json") for item in draft.items],
            shipping_address=shipping_address,
            billing_address=billing_address,
            subtotal=totals.subtotal,
            tax=totals.tax,
            shipping_fee=totals.shipping,
            total=totals.total,
            currency=currency,
            gst=gst,
            payment_method=payment_method,
            payment_status=payment_status,
            order_status=OrderStatus.PENDING,
            status=OrderStatus.PENDING,
            customer_notes=draft.customer_notes,
        )
        self.db.add(order)
        await self.db.commit()
        await self.db.refresh(order)

        logger.info(
            f"Created order {order.order_number} ({payment_method.value})",
            extra={"extra_fields": {"transaction_id": transaction_id}},
        )
        await self.notifier.emit(
            notifications.ORDER_CREATED,
            order.order_number,
            user_id=user.user_id,
            payment_method=payment_method.value,
            total=float(order.total),
            currency=currency,
        )

        return CreatedOrder(
            order_id=order.id,
            order_number=order.order_number,
            transaction_id=transaction_id,
            payment_method=payment_method,
            payment_status=order.payment_status,
            order_status=order.order_status,
            subtotal=order.subtotal,
            tax=order.tax,
            shipping=order.shipping_fee,
            total=order.total,
            currency=order.currency,
            redirect_url=redirect_url,
        )

    # =========================================================================
    # Verification
    # =========================================================================

    async def verify(
        self,
        user: AuthUser,
        transaction_id: str,
        payment_method: PaymentMethod,
    ) -> VerifyResult:
        """
        Confirm an order once its payment is verified. Safe to call repeatedly.

        Raises:
            NotFoundError: unknown transaction id
            ForbiddenError: order belongs to another user
            ValidationError: payment method does not match the order
        """
        result = await self.db.execute(
            select(Order)
            .where(Order.payment_order_id == transaction_id)
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        if order.user_id != user.user_id:
            raise ForbiddenError("Order belongs to another user")
        if order.payment_method != payment_method:
            raise ValidationError("Payment method does not match the order")

        # Plain values survive the rollback below, which expires the instance
        order_id, order_number = order.id, order.order_number
        owner_id, total = order.user_id, order.total

        if order.payment_status == PaymentStatus.PAID:
            return VerifyResult(
                verified=True,
                status=PAYMENT_SUCCESS,
                already_paid=True,
                order_id=order_id,
                order_number=order_number,
            )

        if payment_method == PaymentMethod.GATEWAY:
            try:
                status = await self.gateway.query_status(transaction_id)
                verified = status.paid
            except GatewayError as e:
                logger.warning(
                    f"Status check for {transaction_id} failed, reporting pending: "
                    f"{e.message}"
                )
                verified = False
            else:
                if status.failed:
                    await self._record_failed_attempt(order, user, status)
        else:
            verified = True

        if not verified:
            return VerifyResult(
                verified=False,
                status=PAYMENT_PENDING,
                order_id=order_id,
                order_number=order_number,
            )

        now = utc_now()
        applied = await self.db.execute(
            update(Order)
            .where(
                Order.payment_order_id == transaction_id,
                Order.payment_status != PaymentStatus.PAID,
            )
            .values(
                payment_status=PaymentStatus.PAID,
                order_status=OrderStatus.CONFIRMED,
                status=OrderStatus.CONFIRMED,
                paid_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if applied.rowcount == 0:
            await self.db.rollback()
            logger.info(f"Order {order_number} already paid")
            return VerifyResult(
                verified=True,
                status=PAYMENT_SUCCESS,
                already_paid=True,
                order_id=order_id,
                order_number=order_number,
            )

        await payment_ledger.upsert_by_transaction_id(
            self.db,
            transaction_id=transaction_id,
            order_id=str(order_id),
            user_id=user.user_id,
            user_name=user.name or "",
            user_email=user.email or "",
            amount=total,
            payment_method=payment_method,
            status=LedgerStatus.COMPLETED,
            payment_date=now,
        )
        await self.db.commit()
        logger.info(f"Order {order_number} confirmed via {transaction_id}")

        try:
            await clear_user_cart(self.redis, owner_id)
        except StorageError:
            logger.exception(f"Failed to clear cart after confirming {order_number}")

        await self.notifier.emit(
            notifications.ORDER_CONFIRMED,
            order_number,
            user_id=owner_id,
            transaction_id=transaction_id,
            total=float(total),
        )
        return VerifyResult(
            verified=True,
            status=PAYMENT_SUCCESS,
            order_id=order_id,
            order_number=order_number,
        )

    async def _record_failed_attempt(
        self, order: Order, user: AuthUser, status: StatusResult
    ) -> None:
        """Ledger a declined gateway attempt. The order itself is left pending."""
        await payment_ledger.upsert_by_transaction_id(
            self.db,
            transaction_id=status.transaction_id,
            order_id=str(order.id),
            user_id=user.user_id,
            user_name=user.name or "",
            user_email=user.email or "",
            amount=order.total,
            payment_method=PaymentMethod.GATEWAY,
            status=LedgerStatus.FAILED,
            payment_date=utc_now(),
        )
        await self.db.commit()
        logger.warning(
            f"Payment for order {order.order_number} declined by gateway",
            extra={
                "extra_fields": {
                    "transaction_id": status.transaction_id,
                    "gateway_code": status.code,
                    "gateway_state": status.state,
                }
            },
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_for_user(self, user_id: str) -> list[Order]:
        result = await self.db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_all(self, status: Optional[OrderStatus] = None) -> list[Order]:
        query = (
            select(Order)
            .order_by(Order.created_at.desc())
            .execution_options(populate_existing=True)
        )
        if status:
            query = query.where(Order.order_status == status)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_for_user(self, user: AuthUser, order_number: str) -> Order:
        result = await self.db.execute(
            select(Order)
            .where(Order.order_number == order_number)
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        if order.user_id != user.user_id and not user.is_admin:
            raise ForbiddenError("Order belongs to another user")
        return order

    async def payment_status(self, user: AuthUser, order_number: str) -> dict:
        order = await self.get_for_user(user, order_number)
        return {
            "payment": order.payment_status,
            "order": order.order_status,
            "total": order.total,
            "payment_method": order.payment_method,
            "created_at": order.created_at,
            "paid_at": order.paid_at,
        }

    async def get_by_id(self, order_id: uuid.UUID) -> Order:
        order = await self.db.get(Order, order_id, populate_existing=True)
        if not order:
            raise NotFoundError("Order not found")
        return order

    # =========================================================================
    # Admin transitions
    # =========================================================================

    async def update_status(
        self,
        order_id: uuid.UUID,
        status: OrderStatus,
        *,
        tracking_number: Optional[str] = None,
        carrier_name: Optional[str] = None,
        tracking_url: Optional[str] = None,
        admin_notes: Optional[str] = None,
    ) -> Order:
        order = await self.get_by_id(order_id)

        if order.order_status in FINAL_ORDER_STATUSES:
            raise ValidationError(
                f"Order is {order.order_status.value} and can no longer change status"
            )
        if status in PAYMENT_REQUIRED_STATUSES and order.payment_status not in (
            PaymentStatus.PAID,
            PaymentStatus.COD_PENDING,
        ):
            raise ValidationError(
                f"Cannot mark order {status.value} before payment is received"
            )

        now = utc_now()
        previous = order.order_status
        order.order_status = status
        order.status = status
        if status == OrderStatus.SHIPPED and not order.shipped_at:
            order.shipped_at = now
        elif status == OrderStatus.DELIVERED:
            order.delivered_at = now
            if not order.shipped_at:
                order.shipped_at = now
        elif status == OrderStatus.CANCELLED:
            order.cancelled_at = now

        if tracking_number is not None:
            order.tracking_number = tracking_number
        if carrier_name is not None:
            order.carrier_name = carrier_name
        if tracking_url is not None:
            order.tracking_url = tracking_url
        if admin_notes is not None:
            order.admin_notes = admin_notes

        await self.db.commit()
        await self.db.refresh(order)

        logger.info(
            f"Order {order.order_number} status {previous.value} -> {status.value}"
        )
        await self.notifier.emit(
            notifications.ORDER_STATUS_UPDATED,
            order.order_number,
            user_id=order.user_id,
            previous_status=previous.value,
            status=status.value,
            tracking_number=order.tracking_number,
            carrier_name=order.carrier_name,
            tracking_url=order.tracking_url,
        )
        return order

    async def _open_shipping_payment(
        self, order: Order, amount: Decimal, currency: str
    ) -> dict:
        """Start the secondary gateway transaction for a shipping surcharge."""
        link_id = gateway_transaction_id("SHIP", order.order_number)
        initiated = await self.gateway.initiate(
            link_id,
            rupees_to_paise(amount),
            redirect_url=self.gateway.config.redirect_url,
            callback_url=self.gateway.config.callback_url,
            payer_id=order.user_id,
        )
        return {
            "link_id": link_id,
            "short_url": initiated.redirect_url,
            "status": ShippingPaymentStatus.PENDING.value,
            "currency": currency,
            "amount": float(to_money(amount)),
            "amount_paid": 0,
            "payment_ids": [],
            "created_at": utc_now().isoformat(),
            "paid_at": None,
        }

    def _ensure_shipping_payment_open(self, order: Order) -> None:
        existing = order.shipping_payment or {}
        if existing.get("status") == ShippingPaymentStatus.PAID.value:
            raise ValidationError("Shipping charge has already been paid")

    async def package(self, order_id: uuid.UUID, package: PackageIn) -> Order:
        """
        Record package dimensions and optionally open a shipping-charge payment.

        The gateway is called before anything is written, so a GatewayError
        leaves the order untouched.
        """
        order = await self.get_by_id(order_id)
        if order.order_status not in PACKABLE_STATUSES:
            raise ValidationError("Only confirmed orders can be packed")

        shipping_payment = None
        if package.shipping_charge and package.shipping_charge > 0:
            self._ensure_shipping_payment_open(order)
            shipping_payment = await self._open_shipping_payment(
                order, package.shipping_charge, package.currency
            )

        order.shipping_package = {
            "length_cm": float(package.length_cm),
            "breadth_cm": float(package.breadth_cm),
            "height_cm": float(package.height_cm),
            "weight_kg": float(package.weight_kg),
            "notes": package.notes,
            "images": package.images[:MAX_PACKAGE_IMAGES],
            "packed_at": utc_now().isoformat(),
        }
        if shipping_payment:
            order.shipping_payment = shipping_payment

        await self.db.commit()
        await self.db.refresh(order)
        logger.info(f"Order {order.order_number} packed")

        if shipping_payment:
            await self._emit_shipping_link(order)
        return order

    async def create_shipping_payment(
        self, order_id: uuid.UUID, amount: Decimal, currency: str = "INR"
    ) -> dict:
        if amount is None or amount <= 0:
            raise ValidationError("Amount must be greater than zero")

        order = await self.get_by_id(order_id)
        if order.order_status == OrderStatus.CANCELLED:
            raise ValidationError("Order is cancelled")
        self._ensure_shipping_payment_open(order)

        shipping_payment = await self._open_shipping_payment(order, amount, currency)
        order.shipping_payment = shipping_payment
        await self.db.commit()
        await self.db.refresh(order)

        await self._emit_shipping_link(order)
        return order.shipping_payment

    async def verify_shipping_payment(self, order_id: uuid.UUID) -> dict:
        """Poll the gateway for the shipping charge; marks it paid once."""
        order = await self.get_by_id(order_id)
        shipping_payment = order.shipping_payment
        if not shipping_payment:
            raise NotFoundError("Order has no shipping payment")
        if shipping_payment.get("status") == ShippingPaymentStatus.PAID.value:
            return shipping_payment

        link_id = shipping_payment["link_id"]
        try:
            status = await self.gateway.query_status(link_id)
        except GatewayError as e:
            logger.warning(f"Shipping payment check for {link_id} failed: {e.message}")
            return shipping_payment
        if not status.paid:
            return shipping_payment

        gateway_data = status.raw.get("data")
        if not isinstance(gateway_data, dict):
            gateway_data = {}
        payment_id = gateway_data.get("transactionId") or link_id
        order.shipping_payment = {
            **shipping_payment,
            "status": ShippingPaymentStatus.PAID.value,
            "amount_paid": shipping_payment.get("amount", 0),
            "payment_ids": [*shipping_payment.get("payment_ids", []), payment_id],
            "paid_at": utc_now().isoformat(),
        }
        await self.db.commit()
        await self.db.refresh(order)
        logger.info(f"Shipping payment {link_id} for {order.order_number} paid")
        return order.shipping_payment

    async def _emit_shipping_link(self, order: Order) -> None:
        shipping_payment = order.shipping_payment or {}
        await self.notifier.emit(
            notifications.SHIPPING_PAYMENT_LINK_CREATED,
            order.order_number,
            user_id=order.user_id,
            link_id=shipping_payment.get("link_id"),
            short_url=shipping_payment.get("short_url"),
            amount=shipping_payment.get("amount"),
            currency=shipping_payment.get("currency"),
            package=order.shipping_package,
        )
