"""Courier lookups that feed the order reconciler, plus tracking housekeeping."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from dissonant.core.config import Settings
from dissonant.core.document_store import DocumentStore
from dissonant.core.exceptions import CustomerResolutionError, TrackingLookupError
from dissonant.core.retry import Sleep
from dissonant.integrations.shippo.client import ShippoClient
from dissonant.models.order import (
    IN_FLIGHT_STATUSES,
    ORDERS_COLLECTION,
    OrderStatus,
    tracking_number_of,
)
from dissonant.schemas.tracking import ReconciliationResult
from dissonant.services.customer_service import CustomerResolver
from dissonant.services.order_reconciler import OrderReconciler
from dissonant.services.tracking_normalizer import parse_timestamp

logger = logging.getLogger(__name__)


@dataclass
class BatchCounts:
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class StaleDeliveredUser:
    user_id: str
    email: str | None
    orders: list[dict[str, Any]] = field(default_factory=list)


class TrackingService:
    """Looks up tracking at the courier and reconciles the result."""

    def __init__(
        self,
        settings: Settings,
        store: DocumentStore,
        shippo: ShippoClient,
        reconciler: OrderReconciler,
        customer_resolver: CustomerResolver,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.store = store
        self.shippo = shippo
        self.reconciler = reconciler
        self.customer_resolver = customer_resolver
        self.default_carrier = settings.default_carrier
        self.stale_delivered_days = settings.stale_delivered_days
        self.sleep = sleep

    async def check_order_status(
        self,
        tracking_number: str,
        order_id: str | None = None,
        carrier: str | None = None,
        *,
        source: str = "manual_check",
    ) -> ReconciliationResult:
        """Fetch current tracking from the courier and reconcile it.

        Raises:
            TrackingLookupError: the courier lookup failed.
        """
        tracking = await self.shippo.get_tracking_status(
            carrier or self.default_carrier, tracking_number
        )
        return await self.reconciler.reconcile(
            tracking_number, tracking, order_id, source=source
        )

    async def poll_in_flight(self, *, delay: float = 0.5) -> BatchCounts:
        """Reconcile every order that has a label or is with the carrier."""
        docs = await self.store.query_in(
            ORDERS_COLLECTION, "status", [status.value for status in IN_FLIGHT_STATUSES]
        )
        counts = BatchCounts()
        for doc in docs:
            tracking_number = tracking_number_of(doc.data)
            if not tracking_number:
                logger.warning(
                    "Order %s is %s without a tracking number", doc.id, doc.data.get("status")
                )
                counts.skipped += 1
                continue

            counts.processed += 1
            try:
                result = await self.check_order_status(
                    tracking_number, doc.id, doc.data.get("carrier"), source="scheduled_poll"
                )
            except TrackingLookupError as e:
                logger.warning("Order %s tracking poll failed: %s", doc.id, e)
                counts.failed += 1
            else:
                if doc.id in result.updated_orders:
                    counts.updated += 1
            if delay:
                await self.sleep(delay)

        logger.info(
            "Tracking poll finished: processed=%d updated=%d skipped=%d failed=%d",
            counts.processed,
            counts.updated,
            counts.skipped,
            counts.failed,
        )
        return counts

    async def register_existing(
        self, *, dry_run: bool = False, carrier: str | None = None, delay: float = 0.5
    ) -> BatchCounts:
        """Register in-flight tracking numbers so the courier sends webhooks for them."""
        docs = await self.store.query_in(
            ORDERS_COLLECTION, "status", [status.value for status in IN_FLIGHT_STATUSES]
        )
        counts = BatchCounts()
        for doc in docs:
            tracking_number = tracking_number_of(doc.data)
            if not tracking_number:
                counts.skipped += 1
                continue

            counts.processed += 1
            if dry_run:
                logger.info("[dry run] Would register %s for order %s", tracking_number, doc.id)
                continue

            customer_name = doc.data.get("customerName") or "Customer"
            try:
                await self.shippo.register_tracking(
                    carrier or self.default_carrier,
                    tracking_number,
                    metadata=f"Backfill - Order {doc.id} - {customer_name}",
                )
            except TrackingLookupError as e:
                logger.warning("Order %s tracking registration failed: %s", doc.id, e)
                counts.failed += 1
            else:
                counts.updated += 1
            if delay:
                await self.sleep(delay)
        return counts

    async def find_stale_delivered(
        self, *, days: int | None = None, now: datetime | None = None
    ) -> list[StaleDeliveredUser]:
        """Group orders left in ``delivered`` for longer than ``days`` by customer.

        Age is taken from ``deliveredAt``, then ``updatedAt``, then
        ``timestamp``; orders with none of them count as stale.
        """
        days = self.stale_delivered_days if days is None else days
        now = now or datetime.now(UTC)
        cutoff = now - timedelta(days=days)

        docs = await self.store.query(ORDERS_COLLECTION, "status", OrderStatus.DELIVERED.value)
        by_user: dict[str, StaleDeliveredUser] = {}
        order_data: dict[str, dict[str, Any]] = {}

        for doc in docs:
            delivered = (
                parse_timestamp(doc.data.get("deliveredAt"))
                or parse_timestamp(doc.data.get("updatedAt"))
                or parse_timestamp(doc.data.get("timestamp"))
            )
            if delivered is not None and delivered >= cutoff:
                continue

            user_id = doc.data.get("userId") or ""
            entry = by_user.setdefault(user_id, StaleDeliveredUser(user_id=user_id, email=None))
            entry.orders.append(
                {
                    "order_id": doc.id,
                    "delivered_at": delivered.isoformat() if delivered else None,
                    "days_delivered": (now - delivered).days if delivered else None,
                }
            )
            order_data.setdefault(user_id, doc.data)

        for user_id, entry in by_user.items():
            try:
                customer = await self.customer_resolver.resolve(order_data[user_id])
            except CustomerResolutionError:
                logger.info("No email found for user %s", user_id or "<none>")
            else:
                entry.email = customer.email

        return sorted(by_user.values(), key=lambda user: user.email or "")
