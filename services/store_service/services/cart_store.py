"""Redis-backed cart with stock-capped quantities.

A cart is a Redis hash keyed ``cart:user:{id}`` (or ``cart:guest:{session}``)
mapping product id -> reserved quantity. Quantities are clamped to the live
catalog stock on every write; a later stock drop is tolerated until the next
mutation re-clamps.

A cart read or written in wholesale mode prices lines at the product's
wholesale price and lifts quantities to its minimum order quantity (MOQ).
Products without wholesale enabled keep retail price and a minimum of one.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

import redis.asyncio as aioredis
from libs.common.errors import NotFoundError, StockError, StorageError, ValidationError
from libs.common.logging import get_logger
from libs.common.redis import storage_errors
from redis.exceptions import WatchError
from services.store_service.catalog_client import CatalogClient, CatalogProduct
from services.store_service.models import PricingMode

logger = get_logger(__name__)

# Optimistic transactions that keep losing the race give up with StorageError.
MAX_WATCH_RETRIES = 20


def _wholesale_applies(product: CatalogProduct, mode: PricingMode) -> bool:
    return mode == PricingMode.WHOLESALE and product.wholesale_enabled


def unit_price_for(product: CatalogProduct, mode: PricingMode) -> Decimal:
    if (
        _wholesale_applies(product, mode)
        and product.wholesale_price is not None
        and product.wholesale_price > 0
    ):
        return product.wholesale_price
    return product.price


def min_quantity_for(product: CatalogProduct, mode: PricingMode) -> int:
    if _wholesale_applies(product, mode) and (product.wholesale_min_qty or 0) > 0:
        return product.wholesale_min_qty
    return 1


def clamp_quantity(desired: int, min_qty: int, stock: int) -> int:
    """Fit ``desired`` into ``[min_qty, stock]``; 0 when stock cannot meet the MOQ."""
    if stock < min_qty:
        return 0
    if desired < min_qty:
        return min_qty
    return min(desired, stock)


@dataclass(frozen=True)
class CartOwner:
    """Who a cart (or wishlist) belongs to: a user, or a guest session."""

    user_id: Optional[str] = None
    session_id: Optional[str] = None

    def __post_init__(self):
        if not self.user_id and not self.session_id:
            raise ValidationError("Session ID required for guest cart")

    @property
    def is_guest(self) -> bool:
        return not self.user_id

    def key(self, namespace: str) -> str:
        if self.user_id:
            return f"{namespace}:user:{self.user_id}"
        return f"{namespace}:guest:{self.session_id}"


@dataclass
class CartLine:
    product_id: str
    name: str
    price: Decimal
    quantity: int
    stock_quantity: int
    image: Optional[str] = None
    min_quantity: int = 1

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class CartView:
    entries: list[CartLine] = field(default_factory=list)
    mode: PricingMode = PricingMode.RETAIL

    @property
    def total_amount(self) -> Decimal:
        return sum((line.line_total for line in self.entries), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.entries)


class CartStore:
    """Cart operations for a single owner, priced in one pricing mode."""

    namespace = "cart"

    def __init__(
        self,
        redis: aioredis.Redis,
        catalog: CatalogClient,
        owner: CartOwner,
        guest_ttl: int,
        mode: PricingMode = PricingMode.RETAIL,
    ):
        self.redis = redis
        self.catalog = catalog
        self.owner = owner
        self.guest_ttl = guest_ttl
        self.mode = mode
        self.key = owner.key(self.namespace)

    async def get(self) -> CartView:
        with storage_errors("cart read"):
            raw = await self.redis.hgetall(self.key)

        quantities = {pid: int(qty) for pid, qty in raw.items()}
        if not quantities:
            return CartView(mode=self.mode)

        products = {
            p.id: p for p in await self.catalog.find_many(list(quantities.keys()))
        }
        entries = []
        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            # Products the catalog no longer returns are hidden, not purged
            if product is None:
                continue
            entries.append(
                CartLine(
                    product_id=product_id,
                    name=product.name,
                    price=unit_price_for(product, self.mode),
                    quantity=quantity,
                    stock_quantity=product.stock_quantity,
                    image=product.image,
                    min_quantity=min_quantity_for(product, self.mode),
                )
            )
        return CartView(entries=entries, mode=self.mode)

    async def _reservable_product(self, product_id: str) -> CatalogProduct:
        """Load a product that can take reservations in this cart's mode.

        Raises:
            NotFoundError: product missing or inactive
            StockError: product flagged out of stock, or no stock left
            ValidationError: wholesale cart but the product is retail only
        """
        product = await self.catalog.find_by_id(product_id)
        if product is None or not product.is_active:
            raise NotFoundError("Product not found or unavailable")
        stock = max(0, product.stock_quantity)
        if not product.in_stock or stock < 1:
            raise StockError("Insufficient stock", available=stock)
        if self.mode == PricingMode.WHOLESALE and not product.wholesale_enabled:
            raise ValidationError("Wholesale mode not available for this product")
        return product

    def _queue_write(self, pipe, product_id: str, quantity: int) -> None:
        pipe.hset(self.key, product_id, quantity)
        if self.owner.is_guest:
            pipe.expire(self.key, self.guest_ttl)

    async def add(self, product_id: str, quantity: int = 1) -> int:
        """
        Reserve ``quantity`` more units, capped at live stock.

        In wholesale mode the line is also lifted to the product's minimum
        order quantity. Returns the new quantity in the cart.

        Raises:
            NotFoundError: product missing or inactive
            StockError: nothing left to reserve, or stock below the MOQ
            ValidationError: wholesale not offered for the product
        """
        product = await self._reservable_product(product_id)
        stock = max(0, product.stock_quantity)
        min_qty = min_quantity_for(product, self.mode)
        increment = max(1, quantity)

        with storage_errors("cart add"):
            async with self.redis.pipeline(transaction=True) as pipe:
                for _ in range(MAX_WATCH_RETRIES):
                    try:
                        await pipe.watch(self.key)
                        current = int(await pipe.hget(self.key, product_id) or 0)
                        allowed = clamp_quantity(current + increment, min_qty, stock)
                        if allowed <= current:
                            await pipe.unwatch()
                            raise StockError(
                                "Cannot add more items - insufficient stock",
                                available=stock,
                                in_cart=current,
                                min_qty=min_qty,
                            )
                        pipe.multi()
                        self._queue_write(pipe, product_id, allowed)
                        await pipe.execute()
                        return allowed
                    except WatchError:
                        logger.debug(f"Cart {self.key} changed during add, retrying")
                        continue

        raise StorageError("Cart is being modified concurrently, please retry")

    async def update(self, product_id: str, quantity: int) -> int:
        """
        Set the quantity of a line already in the cart, capped at live stock.

        Zero or less removes the line without a catalog lookup.

        Raises:
            NotFoundError: line not in the cart, or product missing or inactive
            StockError: product out of stock, or stock below the MOQ
            ValidationError: wholesale not offered for the product
        """
        if quantity <= 0:
            await self.remove(product_id)
            return 0

        product = await self._reservable_product(product_id)
        stock = max(0, product.stock_quantity)
        min_qty = min_quantity_for(product, self.mode)
        allowed = clamp_quantity(quantity, min_qty, stock)
        if allowed <= 0:
            raise StockError(
                "Insufficient stock to meet minimum order quantity",
                available=stock,
                min_qty=min_qty,
            )

        with storage_errors("cart update"):
            async with self.redis.pipeline(transaction=True) as pipe:
                for _ in range(MAX_WATCH_RETRIES):
                    try:
                        await pipe.watch(self.key)
                        if not await pipe.hexists(self.key, product_id):
                            await pipe.unwatch()
                            raise NotFoundError("Item not found in cart")
                        pipe.multi()
                        self._queue_write(pipe, product_id, allowed)
                        await pipe.execute()
                        return allowed
                    except WatchError:
                        logger.debug(
                            f"Cart {self.key} changed during update, retrying"
                        )
                        continue

        raise StorageError("Cart is being modified concurrently, please retry")

    async def remove(self, product_id: str) -> None:
        with storage_errors("cart remove"):
            await self.redis.hdel(self.key, product_id)

    async def clear(self) -> None:
        with storage_errors("cart clear"):
            await self.redis.delete(self.key)


async def clear_user_cart(redis: aioredis.Redis, user_id: str) -> None:
    """Drop a signed-in user's cart without needing the catalog."""
    with storage_errors("cart clear"):
        await redis.delete(CartOwner(user_id=user_id).key(CartStore.namespace))
