"""Redis-backed wishlist: a presence-only set of product ids per owner."""

import redis.asyncio as aioredis
from libs.common.errors import DuplicateError, NotFoundError
from libs.common.redis import storage_errors
from services.store_service.catalog_client import CatalogClient, CatalogProduct
from services.store_service.services.cart_store import CartOwner


class WishlistStore:
    namespace = "wishlist"

    def __init__(
        self,
        redis: aioredis.Redis,
        catalog: CatalogClient,
        owner: CartOwner,
        guest_ttl: int,
    ):
        self.redis = redis
        self.catalog = catalog
        self.owner = owner
        self.guest_ttl = guest_ttl
        self.key = owner.key(self.namespace)

    async def get(self) -> list[CatalogProduct]:
        """Wishlisted products that are still active in the catalog."""
        with storage_errors("wishlist read"):
            product_ids = await self.redis.smembers(self.key)
        if not product_ids:
            return []
        products = await self.catalog.find_many(sorted(product_ids))
        return [p for p in products if p.is_active]

    async def add(self, product_id: str) -> None:
        product = await self.catalog.find_by_id(product_id)
        if product is None or not product.is_active:
            raise NotFoundError("Product not found or unavailable")

        with storage_errors("wishlist add"):
            added = await self.redis.sadd(self.key, product_id)
            if self.owner.is_guest:
                await self.redis.expire(self.key, self.guest_ttl)
        if not added:
            raise DuplicateError("Product already in wishlist")

    async def remove(self, product_id: str) -> None:
        with storage_errors("wishlist remove"):
            await self.redis.srem(self.key, product_id)

    async def clear(self) -> None:
        with storage_errors("wishlist clear"):
            await self.redis.delete(self.key)
