"""Transactional email delivery using the SendGrid v3 API."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx
from jinja2 import Environment, FileSystemLoader

from dissonant.core.config import Settings
from dissonant.core.document_store import DocumentStore
from dissonant.models.order import (
    EMAIL_DEBUG_COLLECTION,
    FAILED_EMAILS_COLLECTION,
    OrderStatus,
)

logger = logging.getLogger(__name__)

SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"
_jinja_env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), autoescape=True)


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    text: str
    html: str


def render_status_email(
    status: OrderStatus,
    *,
    customer_name: str | None,
    tracking_number: str,
    description: str,
    order_id: str,
) -> RenderedEmail:
    """Render the customer email for an order status change."""
    name = customer_name or "Music Lover"
    context: dict[str, Any] = {
        "customer_name": name,
        "tracking_number": tracking_number,
        "description": description,
        "order_id": order_id,
        "status": status.value,
    }

    if status is OrderStatus.SENT:
        template_name = "order_shipped"
        subject = "Your Dissonant order is on its way!"
        text = (
            f"Hi {name},\n\nYour curated record has shipped.\n"
            f"Tracking number: {tracking_number}\n\n- The Dissonant Team"
        )
    elif status is OrderStatus.DELIVERED:
        template_name = "order_delivered"
        subject = "Your Dissonant order has been delivered!"
        text = (
            f"Hi {name},\n\nYour curated record has been delivered. Enjoy the music!\n"
            f"Tracking number: {tracking_number}\n\n- The Dissonant Team"
        )
    else:
        template_name = "order_status_update"
        subject = "Update on your Dissonant order"
        text = (
            f"Hi {name},\n\nThere is an update on your order: {description}\n"
            f"Tracking number: {tracking_number}\n\n- The Dissonant Team"
        )

    html = _jinja_env.get_template(f"{template_name}.html").render(subject=subject, **context)
    return RenderedEmail(subject=subject, text=text, html=html)


class EmailService:
    """Sends transactional emails and keeps an audit trail in the store.

    ``send_templated_email`` never raises: delivery failures are logged and
    recorded in ``failed_emails``.
    """

    def __init__(self, settings: Settings, store: DocumentStore) -> None:
        self.api_key = settings.email_api_key
        self.from_address = settings.email_from_address
        self.from_name = settings.email_from_name
        self.timeout = settings.courier_timeout
        self.store = store

    async def send_templated_email(
        self,
        to: str,
        subject: str,
        text: str,
        html: str,
    ) -> bool:
        """Send one email. Returns True when SendGrid accepted it."""
        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_address, "name": self.from_name},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text},
                {"type": "text/html", "value": html},
            ],
        }

        if not self.api_key:
            logger.warning("SendGrid API key not configured, email not sent to %s", to)
            await self._record_failure(to, subject, "email API key not configured")
            return False

        error: str | None = None
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    SENDGRID_API_URL,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
            if response.is_success:
                logger.info("Email sent: to=%s subject=%s", to, subject)
            else:
                error = f"status={response.status_code} body={response.text[:500]}"
                logger.error("Failed to send email: to=%s %s", to, error)
        except Exception as e:
            error = str(e)
            logger.exception("Error sending email to %s", to)

        await self._record_debug(to, subject, error)
        if error is not None:
            await self._record_failure(to, subject, error)
            return False
        return True

    async def _record_debug(self, to: str, subject: str, error: str | None) -> None:
        try:
            await self.store.add(
                EMAIL_DEBUG_COLLECTION,
                {
                    "to": to,
                    "subject": subject,
                    "success": error is None,
                    "error": error,
                    "timestamp": datetime.now(UTC),
                },
            )
        except Exception:
            logger.exception("Could not write email debug record for %s", to)

    async def _record_failure(self, to: str, subject: str, error: str) -> None:
        try:
            await self.store.add(
                FAILED_EMAILS_COLLECTION,
                {
                    "to": to,
                    "subject": subject,
                    "error": error,
                    "timestamp": datetime.now(UTC),
                },
            )
        except Exception:
            logger.exception("Could not record failed email to %s", to)
