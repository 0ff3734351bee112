"""Store service routers package."""

from services.store_service.routers.admin_orders import router as admin_orders_router
from services.store_service.routers.cart import router as cart_router
from services.store_service.routers.orders import router as orders_router
from services.store_service.routers.wishlist import router as wishlist_router

__all__ = [
    "admin_orders_router",
    "cart_router",
    "orders_router",
    "wishlist_router",
]
