"""Firebase Cloud Messaging push notifications."""

import asyncio
import logging

import firebase_admin
from firebase_admin import messaging

logger = logging.getLogger(__name__)

BRAND_COLOR = "#E46A14"


class PushClient:
    """Async wrapper over ``firebase_admin.messaging.send``."""

    def __init__(self, app: firebase_admin.App | None = None) -> None:
        self.app = app

    async def send_to_device(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, str],
        *,
        channel_id: str,
    ) -> str:
        """Send a notification to one device token and return the message id."""
        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
            data=data,
            android=messaging.AndroidConfig(
                notification=messaging.AndroidNotification(
                    icon="ic_launcher",
                    color=BRAND_COLOR,
                    channel_id=channel_id,
                ),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(badge=1, sound="default")),
            ),
        )
        message_id: str = await asyncio.to_thread(messaging.send, message, app=self.app)
        return message_id

    async def send_to_topic(self, topic: str, title: str, body: str, data: dict[str, str]) -> str:
        """Send a notification to every subscriber of ``topic``."""
        message = messaging.Message(
            topic=topic,
            notification=messaging.Notification(title=title, body=body),
            data=data,
        )
        message_id: str = await asyncio.to_thread(messaging.send, message, app=self.app)
        return message_id
