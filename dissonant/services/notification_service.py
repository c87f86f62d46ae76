"""Push notifications to curators when an order is assigned to them."""

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from dissonant.core.document_store import DocumentStore
from dissonant.models.order import USERS_COLLECTION

logger = logging.getLogger(__name__)

CURATOR_CHANNEL_ID = "curator_orders"


class PushSender(Protocol):
    async def send_to_device(
        self, token: str, title: str, body: str, data: dict[str, str], *, channel_id: str
    ) -> str: ...

    async def send_to_topic(
        self, topic: str, title: str, body: str, data: dict[str, str]
    ) -> str: ...


class CuratorNotificationService:
    """Notifies the assigned curator about a new order."""

    def __init__(self, store: DocumentStore, push: PushSender) -> None:
        self.store = store
        self.push = push

    async def notify_order_assigned(self, order_id: str, order: Mapping[str, Any]) -> bool:
        """Send a device push and a topic push to the order's curator.

        Returns True when the device notification was sent. Missing curator,
        profile or device token are logged and skipped; send errors are
        logged and never raised.
        """
        curator_id = order.get("curatorId")
        if not curator_id:
            logger.info("Order %s has no curator assigned, skipping notification", order_id)
            return False

        curator = await self.store.get(USERS_COLLECTION, curator_id)
        if curator is None:
            logger.info("Curator %s not found for order %s", curator_id, order_id)
            return False

        token = curator.get("fcmToken")
        if not token:
            logger.info("No FCM token for curator %s", curator_id)
            return False

        address = order.get("address")
        customer_name = (
            address.split("\n")[0].strip() if isinstance(address, str) and address else ""
        ) or "Unknown Customer"
        title = "New Curator Order!"
        body = f"{customer_name} has requested your curation expertise"
        data = {"type": "curator_order", "orderId": order_id, "curatorId": str(curator_id)}

        try:
            message_id = await self.push.send_to_device(
                token, title, body, data, channel_id=CURATOR_CHANNEL_ID
            )
        except Exception:
            logger.exception("Error sending notification for order %s", order_id)
            return False
        logger.info("Notified curator %s of order %s (%s)", curator_id, order_id, message_id)

        # Backup delivery for devices whose token has rotated.
        try:
            await self.push.send_to_topic(f"curator_{curator_id}", title, body, data)
        except Exception:
            logger.exception("Error sending topic notification for order %s", order_id)
        return True
