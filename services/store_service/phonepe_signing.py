"""
PhonePe request signing.

PhonePe authenticates the merchant by recomputing an ``X-VERIFY`` checksum
over the base64 request body, the API path and the shared salt:

    X-VERIFY = hex(sha256(base64Body + apiPath + saltKey)) + "###" + saltIndex

POST bodies travel wrapped as ``{"request": base64Body}``. Status calls have
no body, so only the path is signed and no ``Content-Type`` is sent.
"""

import base64
import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Optional

from libs.common.config import Settings


@dataclass(frozen=True)
class PhonePeConfig:
    """Merchant credentials and endpoints, built once at startup."""

    merchant_id: str
    salt_key: str = field(repr=False)
    salt_index: str
    base_url: str
    redirect_url: str
    callback_url: str
    timeout: float = 12.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "PhonePeConfig":
        if not settings.PHONEPE_MERCHANT_ID:
            raise ValueError("PHONEPE_MERCHANT_ID is required")
        if not settings.PHONEPE_SALT_KEY:
            raise ValueError("PHONEPE_SALT_KEY is required")
        return cls(
            merchant_id=settings.PHONEPE_MERCHANT_ID,
            salt_key=settings.PHONEPE_SALT_KEY,
            salt_index=settings.PHONEPE_SALT_INDEX,
            base_url=settings.phonepe_base_url.rstrip("/"),
            redirect_url=settings.PHONEPE_REDIRECT_URL,
            callback_url=settings.PHONEPE_CALLBACK_URL,
            # Gateway calls must time out between 10 and 15 seconds
            timeout=min(max(settings.PHONEPE_TIMEOUT_SECONDS, 10.0), 15.0),
        )


@dataclass(frozen=True)
class SignedRequest:
    """A signed payload ready to send.

    ``content`` is the wire body, ``{"request": "<body_b64>"}``. The checksum
    covers ``body_b64`` itself, so the envelope carries exactly what was signed.
    """

    content: bytes
    body_b64: str
    x_verify: str
    headers: dict[str, str]


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def encode_body(body: Optional[Any]) -> tuple[bytes, str]:
    """Serialize ``body`` compactly and base64 it. Empty bodies encode to ''."""
    if body is None or body == "":
        return b"", ""
    content = json.dumps(body, separators=(",", ":")).encode("utf-8")
    return content, base64.b64encode(content).decode("ascii")


def x_verify(body_b64: str, api_path: str, salt_key: str, salt_index: str) -> str:
    return f"{sha256_hex(body_b64 + api_path + salt_key)}###{salt_index}"


def build_signed_request(
    body: Optional[Any], api_path: str, config: PhonePeConfig
) -> SignedRequest:
    """Build the base64 body, checksum and headers for a PhonePe API call."""
    _, body_b64 = encode_body(body)
    token = x_verify(body_b64, api_path, config.salt_key, config.salt_index)
    headers = {
        "X-VERIFY": token,
        "X-MERCHANT-ID": config.merchant_id,
    }
    content = b""
    if body_b64:
        content = json.dumps({"request": body_b64}).encode("utf-8")
        headers["Content-Type"] = "application/json"
    return SignedRequest(
        content=content,
        body_b64=body_b64,
        x_verify=token,
        headers=headers,
    )
