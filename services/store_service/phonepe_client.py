"""
PhonePe checkout API client.

Provides async methods for:
- Initiating a hosted pay-page transaction
- Polling a transaction's status

The client is a pure adapter: it persists nothing. Every failure (timeout,
transport error, non-2xx, malformed body, unrecognized response shape) is
raised as GatewayError and never interpreted as success.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Optional

import httpx
from libs.common.config import get_settings
from libs.common.errors import GatewayError
from libs.common.logging import get_logger
from services.store_service.phonepe_signing import (
    PhonePeConfig,
    build_signed_request,
)

logger = get_logger(__name__)

PAY_PATH = "/checkout/v2/pay"
STATUS_PATH = "/checkout/v2/order/{transaction_id}/status"

STATUS_TIMEOUT_SECONDS = 10.0

INITIATED_CODE = "PAYMENT_INITIATED"
SUCCESS_CODE = "PAYMENT_SUCCESS"
COMPLETED_STATE = "COMPLETED"
FAILED_STATE = "FAILED"
# Terminal outcomes; the transaction id can never be paid after one of these
FAILED_CODES = frozenset(
    {"PAYMENT_ERROR", "PAYMENT_DECLINED", "TIMED_OUT", "AUTHORIZATION_FAILED"}
)


def _dig(*keys: str) -> Callable[[dict], Any]:
    def extract(payload: dict) -> Any:
        node: Any = payload
        for key in keys:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node

    return extract


# Gateway API versions nest the pay-page URL differently; first non-empty wins.
REDIRECT_URL_EXTRACTORS: list[Callable[[dict], Any]] = [
    _dig("data", "data", "instrumentResponse", "redirectInfo", "url"),
    _dig("data", "instrumentResponse", "redirectInfo", "url"),
    _dig("data", "redirectUrl"),
    _dig("redirectUrl"),
    _dig("data", "intentUrl"),
    _dig("intentUrl"),
]


def extract_redirect_url(payload: dict) -> Optional[str]:
    for extractor in REDIRECT_URL_EXTRACTORS:
        value = extractor(payload)
        if isinstance(value, str) and value:
            return value
    return None


@dataclass
class InitiateResult:
    """Result of starting a pay-page transaction."""

    transaction_id: str
    redirect_url: str
    raw: dict = field(repr=False)


@dataclass
class StatusResult:
    """Result of a status poll. ``paid`` is True only on an explicit success."""

    transaction_id: str
    paid: bool
    state: Optional[str]
    code: Optional[str]
    raw: dict = field(repr=False)
    failed: bool = False


def is_paid(payload: dict) -> bool:
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    return (
        payload.get("code") == SUCCESS_CODE
        or payload.get("state") == COMPLETED_STATE
        or data.get("state") == COMPLETED_STATE
    )


def is_failed(payload: dict) -> bool:
    if is_paid(payload):
        return False
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    return (
        payload.get("code") in FAILED_CODES
        or payload.get("state") == FAILED_STATE
        or data.get("state") == FAILED_STATE
    )


class PhonePeClient:
    """Async client for the PhonePe checkout APIs."""

    def __init__(
        self,
        config: PhonePeConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport

    async def _request(
        self,
        method: str,
        api_path: str,
        body: Optional[dict],
        timeout: float,
    ) -> dict:
        """Send a signed request and return the decoded JSON body."""
        signed = build_signed_request(body, api_path, self.config)
        url = f"{self.config.base_url}{api_path}"

        try:
            async with httpx.AsyncClient(
                timeout=timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method,
                    url,
                    headers=signed.headers,
                    content=signed.content or None,
                )
        except httpx.TimeoutException as e:
            raise GatewayError(f"PhonePe {method} {api_path} timed out") from e
        except httpx.HTTPError as e:
            raise GatewayError(f"PhonePe {method} {api_path} failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.is_success:
            detail = data if data is not None else response.text
            logger.error(
                f"PhonePe API error: {method} {api_path} -> "
                f"{response.status_code} {detail}"
            )
            raise GatewayError(
                "PhonePe request was rejected",
                status_code=response.status_code,
                response_data=detail,
            )

        if not isinstance(data, dict):
            raise GatewayError(
                "PhonePe returned a malformed response body",
                status_code=response.status_code,
                response_data=response.text,
            )

        return data

    # =========================================================================
    # Pay page
    # =========================================================================

    async def initiate(
        self,
        transaction_id: str,
        amount_minor_units: int,
        redirect_url: str,
        callback_url: str,
        payer_id: str,
    ) -> InitiateResult:
        """
        Start a hosted pay-page transaction.

        Args:
            transaction_id: Merchant transaction id (our idempotency key)
            amount_minor_units: Amount in paise
            redirect_url: Where the payer lands after paying
            callback_url: Server-to-server callback URL
            payer_id: Merchant-side user id

        Returns:
            InitiateResult with the URL the payer must be sent to

        Raises:
            GatewayError: If the gateway did not accept the request or no
                redirect URL could be found in its response
        """
        body = {
            "merchantId": self.config.merchant_id,
            "merchantTransactionId": transaction_id,
            "merchantUserId": payer_id,
            "amount": amount_minor_units,
            "redirectUrl": redirect_url,
            "callbackUrl": callback_url,
            "instrumentType": "PAY_PAGE",
        }
        data = await self._request("POST", PAY_PATH, body, self.config.timeout)

        if not (data.get("success") is True or data.get("code") == INITIATED_CODE):
            raise GatewayError(
                data.get("message") or "PhonePe did not initiate the payment",
                response_data=data,
            )

        url = extract_redirect_url(data)
        if not url:
            raise GatewayError(
                "PhonePe redirect URL missing from response", response_data=data
            )

        logger.info(f"PhonePe payment initiated for {transaction_id}")
        return InitiateResult(transaction_id=transaction_id, redirect_url=url, raw=data)

    # =========================================================================
    # Status
    # =========================================================================

    async def query_status(self, transaction_id: str) -> StatusResult:
        """
        Poll the status of a transaction.

        Anything other than an explicit success sentinel is reported as not
        paid; ``failed`` marks a terminal decline. Transport failures raise
        GatewayError.
        """
        api_path = STATUS_PATH.format(transaction_id=transaction_id)
        data = await self._request("GET", api_path, None, STATUS_TIMEOUT_SECONDS)

        inner = data.get("data") if isinstance(data.get("data"), dict) else {}
        return StatusResult(
            transaction_id=transaction_id,
            paid=is_paid(data),
            state=data.get("state") or inner.get("state"),
            code=data.get("code"),
            raw=data,
            failed=is_failed(data),
        )


@lru_cache
def get_phonepe_client() -> PhonePeClient:
    """Process-wide client built from settings (raises if credentials are missing)."""
    return PhonePeClient(PhonePeConfig.from_settings(get_settings()))
