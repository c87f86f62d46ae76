"""Tests for POST /shippo-webhook.

Covers:
- Tracking events reconciled against stored orders
- Transaction and unknown events acknowledged without changes
- Missing tracking number
- Shared-secret token check
- 500 on storage failure
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

from httpx import AsyncClient

from dissonant.core.config import Settings
from dissonant.models.order import ORDERS_COLLECTION
from tests.conftest import InMemoryDocumentStore


def _tracking_event(event: str = "track_updated", status: str = "DELIVERED") -> dict[str, Any]:
    return {
        "event": event,
        "data": {
            "tracking_number": "9400",
            "carrier": "usps",
            "tracking_status": {"status": status, "status_details": "Delivered, In Mailbox"},
        },
    }


class TestShippoWebhook:
    """Tests for the Shippo tracking webhook."""

    async def test_tracking_event_updates_order(
        self,
        client: AsyncClient,
        store: InMemoryDocumentStore,
        order_factory: Callable[..., Any],
        customer: dict[str, Any],
        mock_email_service: AsyncMock,
    ) -> None:
        """A delivered event marks the order delivered and emails once."""
        order_factory("o1", status="sent", trackingNumber="9400")

        response = await client.post("/shippo-webhook", json=_tracking_event())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "1 order(s) updated" in body["message"]
        order = store.raw(ORDERS_COLLECTION, "o1")
        assert order["status"] == "delivered"
        assert order["statusDescription"] == "Package delivered (Delivered, In Mailbox)"
        mock_email_service.send_templated_email.assert_awaited_once()

    async def test_redelivery_is_noop(
        self,
        client: AsyncClient,
        store: InMemoryDocumentStore,
        order_factory: Callable[..., Any],
        customer: dict[str, Any],
        mock_email_service: AsyncMock,
    ) -> None:
        """The same webhook delivered twice writes and emails once."""
        order_factory("o1", status="sent", trackingNumber="9400")

        await client.post("/shippo-webhook", json=_tracking_event("tracking_updated"))
        response = await client.post("/shippo-webhook", json=_tracking_event("tracking_updated"))

        assert response.status_code == 200
        assert "0 order(s) updated" in response.json()["message"]
        assert len(store.batches) == 1
        assert mock_email_service.send_templated_email.await_count == 1

    async def test_no_matching_orders(self, client: AsyncClient) -> None:
        """An unknown tracking number is acknowledged."""
        response = await client.post("/shippo-webhook", json=_tracking_event("shipment_updated"))

        assert response.status_code == 200
        assert response.json()["success"] is True

    async def test_transaction_event_acknowledged(
        self, client: AsyncClient, store: InMemoryDocumentStore, order_factory: Callable[..., Any]
    ) -> None:
        """Transaction events do not touch orders."""
        order_factory("o1", status="sent", trackingNumber="9400")

        response = await client.post(
            "/shippo-webhook", json={"event": "transaction_created", "data": {"object_id": "t1"}}
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Event transaction_created acknowledged",
        }
        assert store.raw(ORDERS_COLLECTION, "o1")["status"] == "sent"

    async def test_unknown_event_ignored(self, client: AsyncClient) -> None:
        """Unrecognized events are acknowledged."""
        response = await client.post("/shippo-webhook", json={"event": "batch_created"})

        assert response.status_code == 200
        assert response.json()["message"] == "Event batch_created ignored"

    async def test_missing_tracking_number(self, client: AsyncClient) -> None:
        """A tracking event without a number is a 200 no-op."""
        response = await client.post(
            "/shippo-webhook", json={"event": "track_updated", "data": {"tracking_status": {}}}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "No tracking number in payload"

    async def test_storage_failure_returns_500(
        self,
        client: AsyncClient,
        store: InMemoryDocumentStore,
        order_factory: Callable[..., Any],
    ) -> None:
        """A failed write answers 500 so Shippo redelivers."""
        order_factory("o1", status="sent", trackingNumber="9400")
        store.fail_next_batch = RuntimeError("firestore unavailable")

        response = await client.post("/shippo-webhook", json=_tracking_event())

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Internal server error"}


class TestWebhookToken:
    """Tests for the optional shared-secret token."""

    async def test_wrong_token_rejected(self, client: AsyncClient, settings: Settings) -> None:
        """A configured token must match."""
        settings.shippo_webhook_token = "s3cret"

        response = await client.post("/shippo-webhook?token=nope", json=_tracking_event())

        assert response.status_code == 401

    async def test_missing_token_rejected(self, client: AsyncClient, settings: Settings) -> None:
        """A configured token must be present."""
        settings.shippo_webhook_token = "s3cret"

        response = await client.post("/shippo-webhook", json=_tracking_event())

        assert response.status_code == 401

    async def test_correct_token(self, client: AsyncClient, settings: Settings) -> None:
        """A matching token is accepted."""
        settings.shippo_webhook_token = "s3cret"

        response = await client.post("/shippo-webhook?token=s3cret", json=_tracking_event())

        assert response.status_code == 200
