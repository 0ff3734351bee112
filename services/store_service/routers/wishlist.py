"""Store wishlist router."""

from fastapi import APIRouter, Depends, status
from services.store_service.routers._helpers import get_wishlist_store
from services.store_service.schemas import (
    WishlistItemAdd,
    WishlistProductResponse,
    WishlistResponse,
)
from services.store_service.services.wishlist_store import WishlistStore

router = APIRouter(tags=["store"])


def _wishlist_response(products) -> WishlistResponse:
    return WishlistResponse(
        items=[WishlistProductResponse.model_validate(p) for p in products]
    )


@router.get("/wishlist", response_model=WishlistResponse)
async def get_wishlist(wishlist: WishlistStore = Depends(get_wishlist_store)):
    return _wishlist_response(await wishlist.get())


@router.post(
    "/wishlist/items",
    response_model=WishlistResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_to_wishlist(
    item_in: WishlistItemAdd,
    wishlist: WishlistStore = Depends(get_wishlist_store),
):
    """Add a product. Adding the same product twice returns 409."""
    await wishlist.add(item_in.product_id)
    return _wishlist_response(await wishlist.get())


@router.delete("/wishlist/items/{product_id}", response_model=WishlistResponse)
async def remove_from_wishlist(
    product_id: str,
    wishlist: WishlistStore = Depends(get_wishlist_store),
):
    await wishlist.remove(product_id)
    return _wishlist_response(await wishlist.get())


@router.delete("/wishlist", response_model=WishlistResponse)
async def clear_wishlist(wishlist: WishlistStore = Depends(get_wishlist_store)):
    await wishlist.clear()
    return WishlistResponse()
