"""Read-only access to the product catalog service.

The store core never writes to the catalog. Cart and wishlist operations look
up live price and stock through a ``CatalogClient``; the HTTP implementation
calls the catalog service's internal endpoints with a ``fields`` projection so
only the columns the store needs come back.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

import httpx
from libs.common.config import get_settings
from libs.common.errors import StorageError
from libs.common.logging import get_logger
from libs.common.service_client import internal_get

logger = get_logger(__name__)

CALLING_SERVICE = "store"

PRODUCT_FIELDS = (
    "id,name,price,stock_quantity,is_active,in_stock,image,"
    "wholesale_enabled,wholesale_price,wholesale_min_qty"
)


@dataclass
class CatalogProduct:
    id: str
    name: str
    price: Decimal
    stock_quantity: int
    is_active: bool = True
    in_stock: bool = True
    image: Optional[str] = None
    wholesale_enabled: bool = False
    wholesale_price: Optional[Decimal] = None
    wholesale_min_qty: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "CatalogProduct":
        stock = int(data.get("stock_quantity") or 0)
        return cls(
            id=str(data.get("id") or data.get("_id")),
            name=data.get("name") or "",
            price=Decimal(str(data.get("price") or 0)),
            stock_quantity=stock,
            is_active=bool(data.get("is_active", True)),
            in_stock=bool(data.get("in_stock", stock > 0)),
            image=data.get("image"),
            wholesale_enabled=bool(data.get("wholesale_enabled", False)),
            wholesale_price=(
                Decimal(str(data["wholesale_price"]))
                if data.get("wholesale_price") is not None
                else None
            ),
            wholesale_min_qty=(
                int(data["wholesale_min_qty"])
                if data.get("wholesale_min_qty") is not None
                else None
            ),
        )


class CatalogClient(ABC):
    """Interface the store uses to read products."""

    @abstractmethod
    async def find_by_id(self, product_id: str) -> Optional[CatalogProduct]:
        ...

    @abstractmethod
    async def find_many(self, product_ids: Iterable[str]) -> list[CatalogProduct]:
        ...


class HttpCatalogClient(CatalogClient):
    """Catalog lookups over the internal service API."""

    def __init__(self, service_url: Optional[str] = None):
        self.service_url = service_url or get_settings().CATALOG_SERVICE_URL

    async def find_by_id(self, product_id: str) -> Optional[CatalogProduct]:
        try:
            response = await internal_get(
                service_url=self.service_url,
                path=f"/internal/catalog/products/{product_id}",
                calling_service=CALLING_SERVICE,
                params={"fields": PRODUCT_FIELDS},
            )
        except httpx.HTTPError as e:
            raise StorageError("Catalog service unavailable") from e

        if response.status_code == 404:
            return None
        if not response.is_success:
            logger.error(
                f"Catalog lookup for {product_id} failed: {response.status_code}"
            )
            raise StorageError("Catalog service unavailable")
        return CatalogProduct.from_dict(response.json())

    async def find_many(self, product_ids: Iterable[str]) -> list[CatalogProduct]:
        ids = [str(pid) for pid in product_ids]
        if not ids:
            return []
        try:
            response = await internal_get(
                service_url=self.service_url,
                path="/internal/catalog/products",
                calling_service=CALLING_SERVICE,
                params={"ids": ",".join(ids), "fields": PRODUCT_FIELDS},
            )
        except httpx.HTTPError as e:
            raise StorageError("Catalog service unavailable") from e

        if not response.is_success:
            logger.error(f"Catalog batch lookup failed: {response.status_code}")
            raise StorageError("Catalog service unavailable")
        return [CatalogProduct.from_dict(item) for item in response.json()]
