"""FastAPI application for the Store Service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from libs.common.errors import register_error_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from libs.common.redis import close_redis, ping_redis
from libs.db.config import engine
from services.store_service.routers import (
    admin_orders_router,
    cart_router,
    orders_router,
    wishlist_router,
)
from slowapi.errors import RateLimitExceeded


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release the shared Redis client and DB pool on shutdown."""
    yield
    await close_redis()
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the Store Service FastAPI app."""
    app = FastAPI(
        title="Store Service",
        version="0.1.0",
        description="Storefront service - cart, wishlist, checkout, payments, orders.",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Domain errors -> JSON, storage failures -> 503, everything else -> 500
    register_error_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check():
        """Health check endpoint. Reports degraded when Redis is unreachable."""
        if not await ping_redis():
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "service": "store", "redis": "down"},
            )
        return {"status": "ok", "service": "store", "redis": "ok"}

    # Public store routes (cart, wishlist, checkout, orders)
    app.include_router(cart_router, prefix="/store")
    app.include_router(wishlist_router, prefix="/store")
    app.include_router(orders_router, prefix="/store")

    # Admin routes (fulfilment, payment ledger)
    app.include_router(admin_orders_router, prefix="/admin/store")

    return app


app = create_app()
