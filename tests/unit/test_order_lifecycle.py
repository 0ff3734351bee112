"""Unit tests for the order lifecycle manager.

Tests drive OrderLifecycleManager directly with SQLite, fakeredis and a
MockTransport-backed PhonePe client. No HTTP layer involved.
"""

import re
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest
from libs.common.errors import (
    ForbiddenError,
    GatewayError,
    NotFoundError,
    ValidationError,
)
from services.store_service.models import (
    LedgerStatus,
    Order,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
)
from services.store_service.schemas import OrderDraft, PackageIn
from services.store_service.services import notifications, payment_ledger
from services.store_service.services.order_lifecycle import (
    PAYMENT_PENDING,
    PAYMENT_SUCCESS,
    is_return_eligible,
    return_deadline,
)
from sqlalchemy import func, select
from tests.conftest import make_admin_user, make_member_user
from tests.factories import OrderFactory, address, order_draft
from tests.stubs import PAY_PAGE_URL, pay_failed_body, status_body


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _draft(**overrides) -> OrderDraft:
    return OrderDraft.model_validate(order_draft(**overrides))


async def _create(manager, user, method=PaymentMethod.GATEWAY, amount="1330", **draft):
    return await manager.create(
        user,
        amount=Decimal(amount),
        currency="INR",
        payment_method=method,
        draft=_draft(**draft),
    )


async def _order_count(db) -> int:
    return await db.scalar(select(func.count(Order.id)))


async def _ledger_count(db) -> int:
    return await db.scalar(select(func.count(Payment.id)))


async def _insert(db, **overrides) -> Order:
    order = OrderFactory.create(**overrides)
    db.add(order)
    await db.commit()
    await db.refresh(order)
    return order


def _paid(**overrides):
    return {
        "payment_status": PaymentStatus.PAID,
        "order_status": OrderStatus.CONFIRMED,
        **overrides,
    }


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_cod_persists_pending_without_gateway(
    manager, member, phonepe, notifier, db_session
):
    created = await _create(manager, member, PaymentMethod.COD)

    assert phonepe.requests == []
    assert created.redirect_url is None
    assert created.payment_status == PaymentStatus.COD_PENDING
    assert created.order_status == OrderStatus.PENDING
    assert re.fullmatch(r"cod_\d{8}_" + member.user_id[-8:], created.transaction_id)

    order = await manager.get_by_id(created.order_id)
    assert order.payment_status == PaymentStatus.COD_PENDING
    assert order.order_status == OrderStatus.PENDING
    assert order.status == OrderStatus.PENDING
    assert order.items[0]["product_id"] == "p-1"
    assert order.items[0]["price"] == "500.00"
    assert notifier.names == [notifications.ORDER_CREATED]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_gateway_opens_pay_page_in_paise(manager, member, phonepe):
    created = await _create(manager, member, PaymentMethod.GATEWAY, amount="1330.50")

    assert created.redirect_url == PAY_PAGE_URL
    assert created.payment_status == PaymentStatus.AWAITING_PAYMENT
    assert re.fullmatch(r"PAY_NK\d+_\d{6}", created.transaction_id)
    assert created.transaction_id.startswith(f"PAY_{created.order_number}_")

    body = phonepe.decoded_body(phonepe.pay_requests[0])
    assert body["amount"] == 133050
    assert body["merchantTransactionId"] == created.transaction_id
    assert body["merchantUserId"] == member.user_id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_derives_totals_from_items(manager, member):
    created = await _create(manager, member, PaymentMethod.COD)

    assert created.subtotal == Decimal("1000.00")
    assert created.tax == Decimal("180.00")
    assert created.shipping == Decimal("150.00")
    assert created.total == Decimal("1330.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_keeps_supplied_totals(manager, member):
    totals = {"subtotal": "1000", "tax": "0", "shipping": "0", "total": "1000"}

    created = await _create(
        manager, member, PaymentMethod.COD, amount="1000", totals=totals
    )

    assert created.tax == Decimal("0.00")
    assert created.total == Decimal("1000.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_gateway_refusal_persists_nothing(
    manager, member, phonepe, notifier, db_session
):
    phonepe.pay_response = (200, pay_failed_body())

    with pytest.raises(GatewayError):
        await _create(manager, member, PaymentMethod.GATEWAY)

    assert await _order_count(db_session) == 0
    assert notifier.events == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_gateway_timeout_persists_nothing(
    manager, member, phonepe, db_session
):
    phonepe.error = httpx.ConnectTimeout("timed out")

    with pytest.raises(GatewayError):
        await _create(manager, member, PaymentMethod.GATEWAY)

    assert await _order_count(db_session) == 0


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("amount", ["0", "-10"])
async def test_create_rejects_non_positive_amount(manager, member, phonepe, amount):
    with pytest.raises(ValidationError):
        await _create(manager, member, PaymentMethod.GATEWAY, amount=amount)

    assert phonepe.requests == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_rejects_empty_items(manager, member):
    with pytest.raises(ValidationError, match="at least one item"):
        await _create(manager, member, PaymentMethod.COD, items=[])


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_rejects_unusable_addresses(manager, member, phonepe, db_session):
    short = address(address_line1="A", address_line2="")

    with pytest.raises(ValidationError):
        await _create(
            manager,
            member,
            PaymentMethod.GATEWAY,
            shipping_address=short,
            billing_address=short,
        )

    assert phonepe.requests == []
    assert await _order_count(db_session) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_uses_billing_when_shipping_too_short(manager, member):
    created = await _create(
        manager,
        member,
        PaymentMethod.COD,
        shipping_address=address(address_line1="", address_line2=""),
        billing_address=address(full_name="Billing Person"),
    )

    order = await manager.get_by_id(created.order_id)
    assert order.shipping_address["full_name"] == "Billing Person"
    assert order.billing_address["address_line1"] == "12 MG Road"


# ---------------------------------------------------------------------------
# verify
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_before_success_leaves_order_pending(
    manager, member, phonepe, notifier, db_session
):
    created = await _create(manager, member, PaymentMethod.GATEWAY)
    phonepe.status_response = (200, status_body("PAYMENT_PENDING", "PENDING"))

    result = await manager.verify(member, created.transaction_id, PaymentMethod.GATEWAY)

    assert result.verified is False
    assert result.status == PAYMENT_PENDING
    order = await manager.get_by_id(created.order_id)
    assert order.payment_status == PaymentStatus.AWAITING_PAYMENT
    assert order.order_status == OrderStatus.PENDING
    assert order.paid_at is None
    assert await _ledger_count(db_session) == 0
    assert notifications.ORDER_CONFIRMED not in notifier.names


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_gateway_failure_reports_pending(manager, member, phonepe):
    created = await _create(manager, member, PaymentMethod.GATEWAY)
    phonepe.error = httpx.ReadTimeout("timed out")

    result = await manager.verify(member, created.transaction_id, PaymentMethod.GATEWAY)

    assert result.verified is False
    assert result.status == PAYMENT_PENDING


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_success_confirms_order_and_writes_ledger(
    manager, member, phonepe, notifier, redis, db_session
):
    await redis.hset(f"cart:user:{member.user_id}", mapping={"p-1": 2})
    created = await _create(manager, member, PaymentMethod.GATEWAY)
    phonepe.status_response = (200, status_body("PAYMENT_SUCCESS", "COMPLETED"))

    result = await manager.verify(member, created.transaction_id, PaymentMethod.GATEWAY)

    assert result.verified is True
    assert result.status == PAYMENT_SUCCESS
    assert result.already_paid is False
    assert result.order_number == created.order_number

    order = await manager.get_by_id(created.order_id)
    assert order.payment_status == PaymentStatus.PAID
    assert order.order_status == OrderStatus.CONFIRMED
    assert order.status == OrderStatus.CONFIRMED
    assert order.paid_at is not None

    row = await payment_ledger.get_by_transaction_id(
        db_session, created.transaction_id
    )
    assert row.status == LedgerStatus.COMPLETED
    assert row.amount == Decimal("1330.00")
    assert row.order_id == str(created.order_id)
    assert row.user_email == member.email

    assert await redis.exists(f"cart:user:{member.user_id}") == 0
    assert notifier.names == [
        notifications.ORDER_CREATED,
        notifications.ORDER_CONFIRMED,
    ]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_double_verify_keeps_single_ledger_row(
    manager, member, phonepe, notifier, db_session
):
    created = await _create(manager, member, PaymentMethod.GATEWAY)
    phonepe.status_response = (200, status_body("PAYMENT_SUCCESS", "COMPLETED"))

    first = await manager.verify(member, created.transaction_id, PaymentMethod.GATEWAY)
    second = await manager.verify(member, created.transaction_id, PaymentMethod.GATEWAY)

    assert first.already_paid is False
    assert second.verified is True
    assert second.already_paid is True
    assert second.order_id == created.order_id
    assert await _ledger_count(db_session) == 1
    assert notifier.names.count(notifications.ORDER_CONFIRMED) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_paid_order_skips_gateway_when_it_is_down(
    manager, member, phonepe
):
    created = await _create(manager, member, PaymentMethod.GATEWAY)
    phonepe.status_response = (200, status_body("PAYMENT_SUCCESS", "COMPLETED"))
    await manager.verify(member, created.transaction_id, PaymentMethod.GATEWAY)
    polls = len(phonepe.status_requests)
    phonepe.error = httpx.ReadTimeout("timed out")

    again = await manager.verify(member, created.transaction_id, PaymentMethod.GATEWAY)

    assert again.verified is True
    assert again.status == PAYMENT_SUCCESS
    assert again.already_paid is True
    assert len(phonepe.status_requests) == polls


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_declined_payment_ledgers_failure_and_stays_pending(
    manager, member, phonepe, notifier, db_session
):
    created = await _create(manager, member, PaymentMethod.GATEWAY)
    phonepe.status_response = (200, status_body("PAYMENT_ERROR", "FAILED"))

    first = await manager.verify(member, created.transaction_id, PaymentMethod.GATEWAY)
    second = await manager.verify(member, created.transaction_id, PaymentMethod.GATEWAY)

    assert first.verified is False
    assert first.status == PAYMENT_PENDING
    assert second.status == PAYMENT_PENDING
    order = await manager.get_by_id(created.order_id)
    assert order.payment_status == PaymentStatus.AWAITING_PAYMENT
    assert order.order_status == OrderStatus.PENDING

    row = await payment_ledger.get_by_transaction_id(
        db_session, created.transaction_id
    )
    assert row.status == LedgerStatus.FAILED
    assert row.amount == Decimal("1330.00")
    assert row.payment_method == PaymentMethod.GATEWAY
    assert await _ledger_count(db_session) == 1
    assert notifications.ORDER_CONFIRMED not in notifier.names

    summary = await payment_ledger.aggregate_completed_between(
        db_session,
        datetime.now(timezone.utc) - timedelta(days=1),
        datetime.now(timezone.utc) + timedelta(days=1),
    )
    assert summary.count == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_pending_poll_writes_no_ledger_row(
    manager, member, phonepe, db_session
):
    created = await _create(manager, member, PaymentMethod.GATEWAY)
    phonepe.status_response = (200, status_body("PAYMENT_PENDING", "PENDING"))

    await manager.verify(member, created.transaction_id, PaymentMethod.GATEWAY)

    assert await _ledger_count(db_session) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cod_verify_confirms_on_first_call(
    manager, member, phonepe, db_session
):
    created = await _create(manager, member, PaymentMethod.COD)

    result = await manager.verify(member, created.transaction_id, PaymentMethod.COD)

    assert result.verified is True
    assert result.already_paid is False
    assert phonepe.requests == []
    order = await manager.get_by_id(created.order_id)
    assert order.payment_status == PaymentStatus.PAID
    assert order.order_status == OrderStatus.CONFIRMED
    row = await payment_ledger.get_by_transaction_id(
        db_session, created.transaction_id
    )
    assert row.payment_method == PaymentMethod.COD


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_confirms_even_when_cart_storage_is_down(
    manager, member, phonepe, redis_server
):
    created = await _create(manager, member, PaymentMethod.COD)
    redis_server.connected = False

    result = await manager.verify(member, created.transaction_id, PaymentMethod.COD)

    assert result.verified is True
    order = await manager.get_by_id(created.order_id)
    assert order.payment_status == PaymentStatus.PAID


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_unknown_transaction_not_found(manager, member):
    with pytest.raises(NotFoundError):
        await manager.verify(member, "PAY_unknown_000000", PaymentMethod.GATEWAY)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_other_users_order_forbidden(manager, member):
    created = await _create(manager, member, PaymentMethod.COD)
    intruder = make_member_user(user_id="someone-else")

    with pytest.raises(ForbiddenError):
        await manager.verify(intruder, created.transaction_id, PaymentMethod.COD)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_payment_method_mismatch_rejected(manager, member, phonepe):
    created = await _create(manager, member, PaymentMethod.COD)

    with pytest.raises(ValidationError):
        await manager.verify(member, created.transaction_id, PaymentMethod.GATEWAY)

    order = await manager.get_by_id(created.order_id)
    assert order.payment_status == PaymentStatus.COD_PENDING
    assert phonepe.status_requests == []


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_for_user_newest_first_and_scoped(manager, db_session):
    now = datetime.now(timezone.utc)
    older = await _insert(db_session, created_at=now - timedelta(days=1))
    newer = await _insert(db_session, created_at=now)
    await _insert(db_session, user_id="someone-else")

    orders = await manager.list_for_user("user-123")

    assert [o.id for o in orders] == [newer.id, older.id]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_for_user_owner_and_admin_only(manager, db_session):
    order = await _insert(db_session)

    owned = await manager.get_for_user(make_member_user(), order.order_number)
    as_admin = await manager.get_for_user(make_admin_user(), order.order_number)

    assert owned.id == order.id
    assert as_admin.id == order.id
    with pytest.raises(ForbiddenError):
        await manager.get_for_user(make_member_user("other"), order.order_number)
    with pytest.raises(NotFoundError):
        await manager.get_for_user(make_member_user(), "NK000")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_payment_status_view(manager, db_session):
    order = await _insert(db_session)

    view = await manager.payment_status(make_member_user(), order.order_number)

    assert view["payment"] == PaymentStatus.AWAITING_PAYMENT
    assert view["order"] == OrderStatus.PENDING
    assert view["total"] == Decimal("1330.00")
    assert view["payment_method"] == PaymentMethod.GATEWAY
    assert view["paid_at"] is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_all_filters_by_status(manager, db_session):
    await _insert(db_session)
    confirmed = await _insert(db_session, **_paid())

    orders = await manager.list_all(OrderStatus.CONFIRMED)

    assert [o.id for o in orders] == [confirmed.id]
    assert len(await manager.list_all()) == 2


# ---------------------------------------------------------------------------
# update_status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unpaid_order_cannot_be_confirmed(manager, db_session):
    order = await _insert(db_session)

    with pytest.raises(ValidationError, match="before payment"):
        await manager.update_status(order.id, OrderStatus.CONFIRMED)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cod_pending_order_can_ship(manager, db_session):
    order = await _insert(
        db_session,
        payment_method=PaymentMethod.COD,
        payment_status=PaymentStatus.COD_PENDING,
    )

    updated = await manager.update_status(order.id, OrderStatus.SHIPPED)

    assert updated.order_status == OrderStatus.SHIPPED
    assert updated.shipped_at is not None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_ship_then_deliver_sets_timestamps_and_tracking(
    manager, notifier, db_session
):
    order = await _insert(db_session, **_paid())

    shipped = await manager.update_status(
        order.id,
        OrderStatus.SHIPPED,
        tracking_number="AWB123",
        carrier_name="Delhivery",
        tracking_url="https://track.test/AWB123",
    )
    delivered = await manager.update_status(order.id, OrderStatus.DELIVERED)

    assert shipped.tracking_number == "AWB123"
    assert delivered.order_status == OrderStatus.DELIVERED
    assert delivered.status == OrderStatus.DELIVERED
    assert delivered.delivered_at is not None
    assert delivered.carrier_name == "Delhivery"
    assert notifier.names == [
        notifications.ORDER_STATUS_UPDATED,
        notifications.ORDER_STATUS_UPDATED,
    ]
    _, _, payload = notifier.events[-1]
    assert payload["previous_status"] == "shipped"
    assert payload["status"] == "delivered"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delivered_directly_also_sets_shipped_at(manager, db_session):
    order = await _insert(db_session, **_paid())

    delivered = await manager.update_status(order.id, OrderStatus.DELIVERED)

    assert delivered.shipped_at is not None


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("final", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
async def test_final_statuses_are_immutable(manager, db_session, final):
    order = await _insert(db_session, **_paid(order_status=final))

    with pytest.raises(ValidationError, match="no longer change"):
        await manager.update_status(order.id, OrderStatus.SHIPPED)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_pending_order_can_be_cancelled(manager, db_session):
    order = await _insert(db_session)

    cancelled = await manager.update_status(
        order.id, OrderStatus.CANCELLED, admin_notes="Customer request"
    )

    assert cancelled.order_status == OrderStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert cancelled.admin_notes == "Customer request"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_status_unknown_order_not_found(manager):
    with pytest.raises(NotFoundError):
        await manager.update_status(uuid.uuid4(), OrderStatus.CANCELLED)


# ---------------------------------------------------------------------------
# package / shipping payment
# ---------------------------------------------------------------------------


def _package(**overrides) -> PackageIn:
    values = {
        "length_cm": "30",
        "breadth_cm": "20",
        "height_cm": "10",
        "weight_kg": "1.2",
        "images": ["https://cdn.test/box-1.jpg"],
    }
    values.update(overrides)
    return PackageIn(**values)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_package_requires_confirmed_order(manager, db_session):
    order = await _insert(db_session)

    with pytest.raises(ValidationError):
        await manager.package(order.id, _package())


@pytest.mark.asyncio
@pytest.mark.unit
async def test_package_without_charge_skips_gateway(manager, phonepe, db_session):
    order = await _insert(db_session, **_paid())

    packed = await manager.package(order.id, _package(notes="Fragile"))

    assert phonepe.requests == []
    assert packed.shipping_package["length_cm"] == 30.0
    assert packed.shipping_package["weight_kg"] == 1.2
    assert packed.shipping_package["notes"] == "Fragile"
    assert packed.shipping_package["images"] == ["https://cdn.test/box-1.jpg"]
    assert packed.shipping_package["packed_at"]
    assert packed.shipping_payment is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_package_with_charge_opens_shipping_payment(
    manager, phonepe, notifier, db_session
):
    order = await _insert(db_session, **_paid())

    packed = await manager.package(order.id, _package(shipping_charge="85.50"))

    shipping_payment = packed.shipping_payment
    assert shipping_payment["link_id"].startswith(f"SHIP_{order.order_number}_")
    assert shipping_payment["short_url"] == PAY_PAGE_URL
    assert shipping_payment["status"] == "pending"
    assert shipping_payment["amount"] == 85.5
    assert shipping_payment["amount_paid"] == 0
    assert phonepe.decoded_body(phonepe.pay_requests[0])["amount"] == 8550
    assert notifier.names == [notifications.SHIPPING_PAYMENT_LINK_CREATED]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_package_gateway_failure_leaves_order_unchanged(
    manager, phonepe, db_session
):
    order = await _insert(db_session, **_paid())
    phonepe.pay_response = (500, {"success": False})

    with pytest.raises(GatewayError):
        await manager.package(order.id, _package(shipping_charge="85"))

    reloaded = await manager.get_by_id(order.id)
    assert reloaded.shipping_package is None
    assert reloaded.shipping_payment is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_shipping_payment_validations(manager, db_session):
    order = await _insert(db_session, **_paid())
    cancelled = await _insert(db_session, order_status=OrderStatus.CANCELLED)

    with pytest.raises(ValidationError):
        await manager.create_shipping_payment(order.id, Decimal("0"))
    with pytest.raises(ValidationError, match="cancelled"):
        await manager.create_shipping_payment(cancelled.id, Decimal("50"))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_shipping_payment_marks_paid_once(manager, phonepe, db_session):
    order = await _insert(db_session, **_paid())
    opened = await manager.create_shipping_payment(order.id, Decimal("120"))

    still_pending = await manager.verify_shipping_payment(order.id)
    assert still_pending["status"] == "pending"

    phonepe.status_response = (200, status_body("PAYMENT_SUCCESS", "COMPLETED"))
    paid = await manager.verify_shipping_payment(order.id)

    assert paid["status"] == "paid"
    assert paid["link_id"] == opened["link_id"]
    assert paid["amount_paid"] == 120.0
    assert paid["payment_ids"] == ["T2410191230001234"]
    assert paid["paid_at"] is not None

    status_calls = len(phonepe.status_requests)
    again = await manager.verify_shipping_payment(order.id)
    assert again == paid
    assert len(phonepe.status_requests) == status_calls

    with pytest.raises(ValidationError, match="already been paid"):
        await manager.create_shipping_payment(order.id, Decimal("50"))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_shipping_payment_gateway_failure_stays_pending(
    manager, phonepe, db_session
):
    order = await _insert(db_session, **_paid())
    await manager.create_shipping_payment(order.id, Decimal("120"))
    phonepe.error = httpx.ConnectError("down")

    result = await manager.verify_shipping_payment(order.id)

    assert result["status"] == "pending"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_shipping_payment_requires_existing_payment(manager, db_session):
    order = await _insert(db_session, **_paid())

    with pytest.raises(NotFoundError):
        await manager.verify_shipping_payment(order.id)


# ---------------------------------------------------------------------------
# Return eligibility
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_return_eligible_within_window():
    delivered_at = datetime(2026, 10, 10, 12, 0, tzinfo=timezone.utc)
    order = OrderFactory.create(
        order_status=OrderStatus.DELIVERED, delivered_at=delivered_at
    )

    assert is_return_eligible(order, now=delivered_at + timedelta(days=6), window_days=7)
    assert is_return_eligible(order, now=delivered_at + timedelta(days=7), window_days=7)
    assert not is_return_eligible(
        order, now=delivered_at + timedelta(days=7, seconds=1), window_days=7
    )
    assert return_deadline(order, window_days=7) == delivered_at + timedelta(days=7)


@pytest.mark.unit
def test_return_eligibility_requires_delivery():
    order = OrderFactory.create(order_status=OrderStatus.SHIPPED)

    assert is_return_eligible(order) is False
    assert return_deadline(order) is None


@pytest.mark.unit
def test_return_deadline_treats_naive_timestamps_as_utc():
    order = OrderFactory.create(
        order_status=OrderStatus.DELIVERED, delivered_at=datetime(2026, 10, 10, 12, 0)
    )

    assert return_deadline(order, window_days=1) == datetime(
        2026, 10, 11, 12, 0, tzinfo=timezone.utc
    )
