"""Authenticated HTTP calls to sibling services.

The store never reads another service's tables. Catalog lookups and order
event delivery go through these helpers, which attach a short-lived
service-role token and forward the current request id.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from libs.auth.dependencies import _service_role_jwt
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


def _service_headers(calling_service: str) -> dict[str, str]:
    headers = {
        "Authorization": f"Bearer {_service_role_jwt(calling_service)}",
        "X-Caller-Service": calling_service,
    }
    request_id = get_request_id()
    if request_id:
        headers["X-Request-ID"] = request_id
    return headers


async def internal_request(
    method: str,
    *,
    service_url: str,
    path: str,
    calling_service: str,
    json: Any = None,
    params: Optional[dict] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> httpx.Response:
    """
    Send one request to ``service_url + path`` as ``calling_service``.

    Non-2xx responses are returned as-is for the caller to interpret.

    Raises:
        httpx.HTTPError: on connection failures and timeouts
    """
    url = f"{service_url.rstrip('/')}{path}"
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.request(
            method,
            url,
            headers=_service_headers(calling_service),
            json=json,
            params=params,
        )
    logger.debug(f"{method} {url} -> {response.status_code}")
    return response


async def internal_get(
    *,
    service_url: str,
    path: str,
    calling_service: str,
    params: Optional[dict] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> httpx.Response:
    return await internal_request(
        "GET",
        service_url=service_url,
        path=path,
        calling_service=calling_service,
        params=params,
        timeout=timeout,
    )


async def internal_post(
    *,
    service_url: str,
    path: str,
    calling_service: str,
    json: Any = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> httpx.Response:
    return await internal_request(
        "POST",
        service_url=service_url,
        path=path,
        calling_service=calling_service,
        json=json,
        timeout=timeout,
    )
