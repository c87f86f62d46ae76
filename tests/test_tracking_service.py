"""Tests for TrackingService.

Covers:
- check_order_status (courier lookup then reconcile)
- poll_in_flight counts
- register_existing backfill
- find_stale_delivered grouping
"""

from collections.abc import Callable
from datetime import timedelta
from typing import Any
from unittest.mock import AsyncMock

import pytest

from dissonant.core.exceptions import TrackingLookupError
from dissonant.models.order import ORDERS_COLLECTION
from dissonant.services.tracking_service import TrackingService
from tests.conftest import FIXED_NOW, TEST_CUSTOMER_EMAIL, InMemoryDocumentStore


class TestCheckOrderStatus:
    """Tests for TrackingService.check_order_status()."""

    async def test_lookup_and_reconcile(
        self,
        tracking_service: TrackingService,
        store: InMemoryDocumentStore,
        order_factory: Callable[..., Any],
        customer: dict[str, Any],
        mock_shippo: AsyncMock,
    ) -> None:
        """The courier status is applied to the given order."""
        order_factory("o1", status="labelCreated")
        mock_shippo.get_tracking_status.return_value = {"tracking_status": {"status": "TRANSIT"}}

        result = await tracking_service.check_order_status("9400", "o1")

        assert result.updated_orders == ["o1"]
        assert store.raw(ORDERS_COLLECTION, "o1")["lastTrackingUpdate"]["source"] == (
            "manual_check"
        )
        mock_shippo.get_tracking_status.assert_awaited_once_with("usps", "9400")

    async def test_lookup_failure_propagates(
        self, tracking_service: TrackingService, mock_shippo: AsyncMock
    ) -> None:
        """Courier failures surface as TrackingLookupError."""
        mock_shippo.get_tracking_status.side_effect = TrackingLookupError("down")

        with pytest.raises(TrackingLookupError):
            await tracking_service.check_order_status("9400", carrier="ups")


class TestPollInFlight:
    """Tests for TrackingService.poll_in_flight()."""

    async def test_counts(
        self,
        tracking_service: TrackingService,
        order_factory: Callable[..., Any],
        customer: dict[str, Any],
        mock_shippo: AsyncMock,
    ) -> None:
        """Updated, skipped and failed orders are counted separately."""
        order_factory("moving", status="labelCreated", trackingNumber="A")
        order_factory("same", status="sent", trackingNumber="B")
        order_factory("broken", status="sent", trackingNumber="C")
        order_factory("no-number", status="sent")
        order_factory("delivered", status="delivered", trackingNumber="D")

        async def _lookup(_carrier: str, tracking_number: str) -> dict[str, Any]:
            if tracking_number == "C":
                raise TrackingLookupError("404")
            return {"tracking_status": {"status": "TRANSIT"}}

        mock_shippo.get_tracking_status.side_effect = _lookup

        counts = await tracking_service.poll_in_flight(delay=0)

        assert counts.processed == 3
        assert counts.updated == 1
        assert counts.skipped == 1
        assert counts.failed == 1


class TestRegisterExisting:
    """Tests for TrackingService.register_existing()."""

    async def test_registers_in_flight(
        self,
        tracking_service: TrackingService,
        order_factory: Callable[..., Any],
        mock_shippo: AsyncMock,
    ) -> None:
        """In-flight orders are registered with backfill metadata."""
        order_factory("o1", status="sent", trackingNumber="A", customerName="Jane")
        order_factory("o2", status="new", trackingNumber="B")

        counts = await tracking_service.register_existing(delay=0)

        assert counts.updated == 1
        mock_shippo.register_tracking.assert_awaited_once_with(
            "usps", "A", metadata="Backfill - Order o1 - Jane"
        )

    async def test_dry_run(
        self,
        tracking_service: TrackingService,
        order_factory: Callable[..., Any],
        mock_shippo: AsyncMock,
    ) -> None:
        """Dry run registers nothing."""
        order_factory("o1", status="sent", trackingNumber="A")

        counts = await tracking_service.register_existing(dry_run=True)

        assert counts.processed == 1
        mock_shippo.register_tracking.assert_not_awaited()


class TestFindStaleDelivered:
    """Tests for TrackingService.find_stale_delivered()."""

    async def test_groups_by_user(
        self,
        tracking_service: TrackingService,
        order_factory: Callable[..., Any],
        customer: dict[str, Any],
    ) -> None:
        """Old delivered orders are grouped per customer with their age."""
        order_factory("old", status="delivered", deliveredAt=FIXED_NOW - timedelta(days=40))
        order_factory(
            "old-updated", status="delivered", updatedAt=FIXED_NOW - timedelta(days=35)
        )
        order_factory("fresh", status="delivered", deliveredAt=FIXED_NOW - timedelta(days=3))
        order_factory("other", status="delivered", userId="nobody", timestamp=None)

        users = await tracking_service.find_stale_delivered(now=FIXED_NOW)

        by_user = {user.user_id: user for user in users}
        assert set(by_user) == {"user-1", "nobody"}
        assert by_user["user-1"].email == TEST_CUSTOMER_EMAIL
        assert sorted(o["order_id"] for o in by_user["user-1"].orders) == ["old", "old-updated"]
        assert by_user["nobody"].email is None
        assert by_user["nobody"].orders[0]["days_delivered"] is None

    async def test_custom_days(
        self,
        tracking_service: TrackingService,
        order_factory: Callable[..., Any],
        customer: dict[str, Any],
    ) -> None:
        """A shorter window includes more recent deliveries."""
        order_factory("recent", status="delivered", deliveredAt=FIXED_NOW - timedelta(days=3))

        users = await tracking_service.find_stale_delivered(days=2, now=FIXED_NOW)

        assert users[0].orders[0]["days_delivered"] == 3
