"""Shared dependencies for store routers.

Each collaborator is its own dependency so tests can swap it through
``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Optional

import redis.asyncio as aioredis
from fastapi import Depends, Header, Query
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.redis import get_redis
from libs.db.session import get_async_db
from services.store_service.catalog_client import CatalogClient, HttpCatalogClient
from services.store_service.models import PricingMode
from services.store_service.phonepe_client import PhonePeClient, get_phonepe_client
from services.store_service.services.cart_store import CartOwner, CartStore
from services.store_service.services.notifications import EventNotifier
from services.store_service.services.order_lifecycle import OrderLifecycleManager
from services.store_service.services.wishlist_store import WishlistStore
from sqlalchemy.ext.asyncio import AsyncSession


@lru_cache
def get_catalog_client() -> CatalogClient:
    return HttpCatalogClient()


@lru_cache
def get_notifier() -> EventNotifier:
    return EventNotifier()


def get_gateway() -> PhonePeClient:
    return get_phonepe_client()


async def get_cart_owner(
    session_id: Optional[str] = Query(None, max_length=128),
    current_user: Optional[AuthUser] = Depends(get_optional_user),
) -> CartOwner:
    """Signed-in users own their cart; guests are keyed by ``session_id``."""
    if current_user:
        return CartOwner(user_id=current_user.user_id)
    return CartOwner(session_id=session_id)


async def get_pricing_mode(
    x_pricing_mode: Optional[str] = Header(None),
    pricing_mode: Optional[str] = Query(None, alias="pricingMode"),
) -> PricingMode:
    """The ``X-Pricing-Mode`` header wins over the ``pricingMode`` query param."""
    return PricingMode.parse(x_pricing_mode or pricing_mode)


async def get_cart_store(
    owner: CartOwner = Depends(get_cart_owner),
    mode: PricingMode = Depends(get_pricing_mode),
    redis: aioredis.Redis = Depends(get_redis),
    catalog: CatalogClient = Depends(get_catalog_client),
) -> CartStore:
    return CartStore(
        redis, catalog, owner, get_settings().GUEST_CART_TTL_SECONDS, mode=mode
    )


async def get_wishlist_store(
    owner: CartOwner = Depends(get_cart_owner),
    redis: aioredis.Redis = Depends(get_redis),
    catalog: CatalogClient = Depends(get_catalog_client),
) -> WishlistStore:
    return WishlistStore(redis, catalog, owner, get_settings().GUEST_CART_TTL_SECONDS)


async def get_order_manager(
    db: AsyncSession = Depends(get_async_db),
    gateway: PhonePeClient = Depends(get_gateway),
    redis: aioredis.Redis = Depends(get_redis),
    notifier: EventNotifier = Depends(get_notifier),
) -> OrderLifecycleManager:
    return OrderLifecycleManager(db, gateway, redis, notifier)
