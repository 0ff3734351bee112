"""Store cart router: stock-capped cart operations for members and guests."""

from fastapi import APIRouter, Depends
from services.store_service.routers._helpers import get_cart_store
from services.store_service.schemas import CartItemAdd, CartItemUpdate, CartResponse
from services.store_service.services.cart_store import CartStore

router = APIRouter(tags=["store"])


# ============================================================================
# CART ENDPOINTS
# ============================================================================


@router.get("/cart", response_model=CartResponse)
async def get_cart(cart: CartStore = Depends(get_cart_store)):
    """Get current cart, joined against live catalog prices."""
    return CartResponse.model_validate(await cart.get())


@router.post("/cart/items", response_model=CartResponse)
async def add_to_cart(
    item_in: CartItemAdd,
    cart: CartStore = Depends(get_cart_store),
):
    """
    Add item to cart.

    The quantity is capped at available stock. ``X-Pricing-Mode: wholesale``
    also lifts it to the product's minimum order quantity.
    """
    await cart.add(item_in.product_id, item_in.quantity)
    return CartResponse.model_validate(await cart.get())


@router.patch("/cart/items/{product_id}", response_model=CartResponse)
async def update_cart_item(
    product_id: str,
    item_in: CartItemUpdate,
    cart: CartStore = Depends(get_cart_store),
):
    """Set the quantity of an item already in the cart. Zero removes it."""
    await cart.update(product_id, item_in.quantity)
    return CartResponse.model_validate(await cart.get())


@router.delete("/cart/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(
    product_id: str,
    cart: CartStore = Depends(get_cart_store),
):
    """Remove item from cart."""
    await cart.remove(product_id)
    return CartResponse.model_validate(await cart.get())


@router.delete("/cart", response_model=CartResponse)
async def clear_cart(cart: CartStore = Depends(get_cart_store)):
    await cart.clear()
    return CartResponse(mode=cart.mode)
