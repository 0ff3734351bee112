"""Unit tests for order pricing, address resolution and the GST block."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from libs.common.errors import ValidationError
from services.store_service.schemas import AddressIn, DraftTotals, OrderDraft, OrderItemIn
from services.store_service.services.pricing import (
    build_gst_block,
    clean_gstin,
    compute_totals,
    resolve_addresses,
)
from tests.factories import address, order_draft


def _items(*lines):
    return [
        OrderItemIn(product_id=f"p-{i}", name="Item", price=Decimal(price), quantity=qty)
        for i, (price, qty) in enumerate(lines)
    ]


# ---------------------------------------------------------------------------
# compute_totals
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_totals_below_threshold_pay_shipping():
    totals = compute_totals(_items(("500.00", 2)))

    assert totals.subtotal == Decimal("1000.00")
    assert totals.tax == Decimal("180.00")
    assert totals.shipping == Decimal("150.00")
    assert totals.total == Decimal("1330.00")


@pytest.mark.unit
def test_totals_at_threshold_ship_free():
    totals = compute_totals(_items(("1000.00", 2)))

    assert totals.subtotal == Decimal("2000.00")
    assert totals.tax == Decimal("360.00")
    assert totals.shipping == Decimal("0.00")
    assert totals.total == Decimal("2360.00")


@pytest.mark.unit
@pytest.mark.parametrize(
    "price, expected_tax",
    [("25.00", "5.00"), ("12.50", "2.00"), ("99.99", "18.00")],
)
def test_tax_rounds_half_up_to_whole_rupees(price, expected_tax):
    assert compute_totals(_items((price, 1))).tax == Decimal(expected_tax)


@pytest.mark.unit
def test_supplied_totals_are_used_verbatim():
    supplied = DraftTotals(subtotal="1000", tax="120", shipping="0", total="1120")

    totals = compute_totals(_items(("500.00", 2)), supplied)

    assert totals.tax == Decimal("120.00")
    assert totals.shipping == Decimal("0.00")
    assert totals.total == Decimal("1120.00")


# ---------------------------------------------------------------------------
# resolve_addresses
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_billing_defaults_to_shipping():
    shipping, billing = resolve_addresses(AddressIn(**address()), None)

    assert billing == shipping
    assert shipping["address_line1"] == "12 MG Road"


@pytest.mark.unit
def test_short_shipping_replaced_by_billing():
    short = AddressIn(**address(address_line1="A", address_line2=""))
    full = AddressIn(**address(full_name="Billing Name"))

    shipping, billing = resolve_addresses(short, full)

    assert shipping["full_name"] == "Billing Name"
    assert billing["address_line1"] == "12 MG Road"


@pytest.mark.unit
def test_whitespace_only_address_is_too_short():
    blank = AddressIn(**address(address_line1="   ", address_line2=" a "))

    with pytest.raises(ValidationError):
        resolve_addresses(blank, None)


@pytest.mark.unit
def test_address_fields_are_stripped():
    addr = AddressIn(**address(city="  Pune  ", address_line2=None))

    assert addr.city == "Pune"
    assert addr.address_line2 == ""


# ---------------------------------------------------------------------------
# GST block
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("29abcde1234f1z5", "29ABCDE1234F1Z5"),
        (" 29-ABCDE 1234F1Z5 ", "29ABCDE1234F1Z5"),
        ("29ABCDE1234F1Z5XYZ", "29ABCDE1234F1Z5"),
        (None, ""),
    ],
)
def test_clean_gstin(raw, expected):
    assert clean_gstin(raw) == expected


@pytest.mark.unit
def test_gst_block_without_request_derives_rate_from_totals():
    draft = OrderDraft.model_validate(order_draft())
    shipping, _ = resolve_addresses(draft.shipping_address, None)
    totals = compute_totals(draft.items)

    gst = build_gst_block(draft, shipping, totals)

    assert gst["want_invoice"] is False
    assert gst["gstin"] is None
    assert gst["tax_percent"] == 18.0
    assert gst["tax_base"] == 1000.0
    assert gst["tax_amount"] == 180.0
    assert gst["legal_name"] == "Asha Rao"
    assert gst["place_of_supply"] == "Karnataka"
    assert gst["requested_at"] is None


@pytest.mark.unit
def test_gst_block_gstin_implies_invoice_request():
    draft = OrderDraft.model_validate(
        order_draft(gst={"gstin": "29abcde1234f1z5", "legal_name": "Rao Traders"})
    )
    shipping, _ = resolve_addresses(draft.shipping_address, None)

    gst = build_gst_block(draft, shipping, compute_totals(draft.items))

    assert gst["want_invoice"] is True
    assert gst["gstin"] == "29ABCDE1234F1Z5"
    assert gst["legal_name"] == "Rao Traders"
    assert gst["requested_at"] is not None


@pytest.mark.unit
def test_gst_block_keeps_caller_rate_and_request_time():
    requested_at = datetime(2026, 10, 1, 9, 30, tzinfo=timezone.utc)
    draft = OrderDraft.model_validate(
        order_draft(
            gst_percent="12",
            gst={"want_invoice": True, "requested_at": requested_at.isoformat()},
        )
    )
    shipping, _ = resolve_addresses(draft.shipping_address, None)

    gst = build_gst_block(draft, shipping, compute_totals(draft.items))

    assert gst["tax_percent"] == 12.0
    assert gst["requested_at"] == requested_at.isoformat()
