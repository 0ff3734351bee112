"""Best-effort order event notifications.

Events are posted to the communications service, which fans them out to
email and the admin dashboard. A failed delivery is logged and never affects
the order operation that triggered it.
"""

from typing import Any, Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.service_client import internal_post

logger = get_logger(__name__)

ORDER_CREATED = "orderCreated"
ORDER_CONFIRMED = "orderConfirmed"
ORDER_STATUS_UPDATED = "orderStatusUpdated"
SHIPPING_PAYMENT_LINK_CREATED = "shippingPaymentLinkCreated"


class EventNotifier:
    def __init__(self, service_url: Optional[str] = None):
        self.service_url = service_url or get_settings().COMMUNICATIONS_SERVICE_URL

    async def emit(self, event_name: str, entity_id: str, **payload: Any) -> None:
        try:
            response = await internal_post(
                service_url=self.service_url,
                path="/internal/store/events",
                calling_service="store",
                json={"event": event_name, "entity_id": entity_id, "payload": payload},
                timeout=5.0,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Failed to emit {event_name} for {entity_id}: {e}")
            return

        if not response.is_success:
            logger.warning(
                f"Event sink rejected {event_name} for {entity_id}: "
                f"{response.status_code}"
            )
