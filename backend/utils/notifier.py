# backend/utils/notifier.py
import httpx
import logging
from typing import Optional

from config import settings

logger = logging.getLogger(__name__)

class OrderNotifier:
    """Posts order events to the notification webhook (mail relay).

    Delivery is best-effort: failures are logged and swallowed so that a
    placed order is never affected by them.
    """

    def __init__(self, webhook_url: Optional[str] = None, timeout: Optional[float] = None,
                 admin_email: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.NOTIFY_WEBHOOK_URL
        self.timeout = timeout if timeout is not None else settings.NOTIFY_TIMEOUT_SECONDS
        self.admin_email = admin_email if admin_email is not None else settings.ADMIN_NOTIFY_EMAIL
        self.transport = transport

    async def _post(self, client: httpx.AsyncClient, event: dict) -> bool:
        try:
            response = await client.post(self.webhook_url, json=event)
            response.raise_for_status()
            return True
        except (httpx.RequestError, httpx.HTTPStatusError) as e:
            logger.error(f"Notification {event.get('type')} for order {event.get('order_id')} failed: {e}")
            return False

    async def send_order_events(self, customer_event: dict, admin_event: dict) -> int:
        """Deliver the customer confirmation and the admin notice. Returns how many went out."""
        if not self.webhook_url:
            logger.info("Notification webhook not configured, skipping order %s events",
                        customer_event.get("order_id"))
            return 0

        events = [customer_event]
        if self.admin_email:
            events.append({**admin_event, "recipient": self.admin_email})
        else:
            logger.info("ADMIN_NOTIFY_EMAIL not set, skipping admin notification")

        sent = 0
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                for event in events:
                    if await self._post(client, event):
                        sent += 1
        except Exception:
            logger.exception("Unexpected error while sending order notifications")
        return sent

order_notifier = OrderNotifier()
