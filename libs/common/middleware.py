"""Request tracing for the store API.

Every request gets a request id (taken from ``X-Request-ID`` when a caller
or gateway already assigned one) that is bound to the logging context,
forwarded on internal service calls and echoed back on the response.
"""
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

# Paths polled by load balancers; completing them is not worth a log line
QUIET_PATHS = frozenset({"/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        started = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - started) * 1000, 2)

            if request.url.path not in QUIET_PATHS:
                fields = {
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                }
                caller = request.headers.get("X-Caller-Service")
                if caller:
                    fields["caller"] = caller
                if response.status_code >= 500:
                    logger.error("Request failed", extra={"extra_fields": fields})
                elif response.status_code >= 400:
                    logger.warning("Request rejected", extra={"extra_fields": fields})
                else:
                    logger.info("Request completed", extra={"extra_fields": fields})

            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_request_context()


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install request tracing on ``app``."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
    logger.info("Observability middleware initialized")
