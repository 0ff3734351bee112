"""Order pricing, address snapshots and the tax-invoice (GST) block."""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from libs.common.currency import to_money
from libs.common.datetime_utils import utc_now
from libs.common.errors import ValidationError
from services.store_service.schemas import (
    AddressIn,
    DraftTotals,
    OrderDraft,
    OrderItemIn,
)

TAX_RATE = Decimal("0.18")
FREE_SHIPPING_THRESHOLD = Decimal("2000")
SHIPPING_FEE = Decimal("150")
MIN_ADDRESS_LENGTH = 3
GSTIN_MAX_LENGTH = 15


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal


def _round_rupee(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def compute_totals(
    items: list[OrderItemIn], supplied: Optional[DraftTotals] = None
) -> OrderTotals:
    """Use the caller's totals when given, otherwise derive them from the items."""
    if supplied is not None:
        return OrderTotals(
            subtotal=to_money(supplied.subtotal),
            tax=to_money(supplied.tax),
            shipping=to_money(supplied.shipping),
            total=to_money(supplied.total),
        )

    subtotal = sum((item.price * item.quantity for item in items), Decimal("0"))
    tax = _round_rupee(subtotal * TAX_RATE)
    shipping = Decimal("0") if subtotal >= FREE_SHIPPING_THRESHOLD else SHIPPING_FEE
    return OrderTotals(
        subtotal=to_money(subtotal),
        tax=to_money(tax),
        shipping=to_money(shipping),
        total=to_money(subtotal + tax + shipping),
    )


# ============================================================================
# ADDRESSES
# ============================================================================


def address_length(address: AddressIn) -> int:
    return len((address.address_line1 + address.address_line2).strip())


def resolve_addresses(
    shipping: AddressIn, billing: Optional[AddressIn]
) -> tuple[dict, dict]:
    """
    Pick usable shipping and billing snapshots.

    A too-short shipping address is replaced by a usable billing address;
    billing defaults to shipping.

    Raises:
        ValidationError: if neither address has enough street detail
    """
    billing = billing or AddressIn()
    if address_length(shipping) < MIN_ADDRESS_LENGTH <= address_length(billing):
        shipping = billing.model_copy()
    if address_length(shipping) < MIN_ADDRESS_LENGTH:
        raise ValidationError(
            "Shipping address line 1 + line 2 must be at least 3 characters"
        )
    if address_length(billing) < MIN_ADDRESS_LENGTH:
        billing = shipping.model_copy()
    return shipping.model_dump(), billing.model_dump()


# ============================================================================
# GST BLOCK
# ============================================================================


def clean_gstin(value: Optional[str]) -> str:
    return re.sub(r"[^0-9A-Z]", "", (value or "").upper())[:GSTIN_MAX_LENGTH]


def build_gst_block(
    draft: OrderDraft, shipping_address: dict, totals: OrderTotals
) -> dict:
    """Build the tax-invoice block stored on the order."""
    requested = draft.gst
    gstin = clean_gstin(requested.gstin if requested else None)
    want_invoice = bool(requested and requested.want_invoice) or bool(gstin)

    # The caller's rate is stored as-is; otherwise it is re-derived from the totals
    if draft.gst_percent:
        tax_percent = draft.gst_percent
    elif totals.subtotal > 0:
        tax_percent = _round_rupee(totals.tax / totals.subtotal * 100)
    else:
        tax_percent = Decimal("0")

    requested_at = requested.requested_at if requested else None
    if requested_at is None and want_invoice:
        requested_at = utc_now()

    legal_name = (requested.legal_name if requested else None) or shipping_address.get(
        "full_name"
    )
    place_of_supply = (
        requested.place_of_supply if requested else None
    ) or shipping_address.get("state")
    email = (requested.email if requested else None) or shipping_address.get("email")

    return {
        "want_invoice": want_invoice,
        "gstin": gstin or None,
        "legal_name": (legal_name or "").strip() or None,
        "place_of_supply": (place_of_supply or "").strip() or None,
        "tax_percent": float(tax_percent),
        "tax_base": float(totals.subtotal),
        "tax_amount": float(totals.tax),
        "requested_at": requested_at.isoformat() if requested_at else None,
        "email": (email or "").strip() or None,
    }
