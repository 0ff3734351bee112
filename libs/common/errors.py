"""Error taxonomy shared by the store service and its HTTP handlers.

Every domain error carries an HTTP status code, a stable machine code and
optional extra fields that are merged into the JSON response body.

Usage:
    from libs.common.errors import StockError, register_error_handlers

    raise StockError("Insufficient stock", available=5, in_cart=5)
"""

from typing import Any, Optional

from fastapi import FastAPI, Request
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import JSONResponse

from libs.common.logging import get_logger

logger = get_logger(__name__)


class StoreError(Exception):
    """Base exception for domain errors surfaced to API clients."""

    status_code: int = 500
    code: str = "STORE_ERROR"

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, **self.extra}


class ValidationError(StoreError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(StoreError):
    status_code = 404
    code = "NOT_FOUND"


class ForbiddenError(StoreError):
    status_code = 403
    code = "FORBIDDEN"


class DuplicateError(StoreError):
    status_code = 409
    code = "DUPLICATE"


class StockError(StoreError):
    """Requested quantity cannot be reserved against live stock."""

    status_code = 400
    code = "INSUFFICIENT_STOCK"

    def __init__(
        self, message: str, *, available: int, in_cart: int = 0, min_qty: int = 1
    ):
        extra = {"available": available, "in_cart": in_cart}
        # Only wholesale lines carry a minimum order quantity above one
        if min_qty > 1:
            extra["min_qty"] = min_qty
        super().__init__(message, **extra)
        self.available = available
        self.in_cart = in_cart
        self.min_qty = min_qty


class GatewayError(StoreError):
    """Payment gateway call failed or returned an unrecognized shape.

    ``response_data`` keeps the raw gateway body for operator diagnostics; it
    is logged server-side and never returned to the client.
    """

    status_code = 502
    code = "PAYMENT_GATEWAY_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Any = None,
    ):
        super().__init__(message)
        self.gateway_status = status_code
        self.response_data = response_data

    def to_dict(self) -> dict:
        return {
            "detail": "Payment gateway is unavailable. Please try again.",
            "code": self.code,
        }


class StorageError(StoreError):
    status_code = 503
    code = "STORAGE_UNAVAILABLE"


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    if isinstance(exc, GatewayError):
        logger.error(
            "Gateway error on %s %s: %s (status=%s) body=%s",
            request.method,
            request.url.path,
            exc.message,
            exc.gateway_status,
            exc.response_data,
        )
    elif exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def storage_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Storage backend failure on %s", request.url.path)
    return await store_error_handler(request, StorageError("Storage unavailable"))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception on %s %s", request.method, request.url.path
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "INTERNAL_ERROR"},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install JSON handlers for the error taxonomy and a 500 catch-all."""
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_exception_handler)
    app.add_exception_handler(RedisError, storage_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
