"""Shipping label creation with duplicate-purchase protection.

Labels for a new order can be requested twice: by the client right after
checkout and by the order-created trigger. Buying a label is not idempotent,
so every attempt goes through ``ShippingLabelService.create_labels_for_order``,
which:

1. re-reads the order and stops if any label signal is already present or
   another process holds the ``creating`` claim;
2. writes ``shippingLabels.status = "creating"`` with a conditional update,
   so only one caller can win the claim;
3. calls the label endpoint under a bounded retry;
4. re-reads the order once more before persisting, and discards its own
   result if labels were recorded in the meantime;
5. records success, or records the failure and adds an audit document to
   ``failed_shipping_labels`` for manual follow-up.
"""

import asyncio
import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from dissonant.core.config import Settings
from dissonant.core.document_store import DocumentStore, StoredDocument
from dissonant.core.exceptions import (
    AddressParseError,
    CustomerResolutionError,
    LabelServiceError,
    RetryExhaustedError,
)
from dissonant.core.retry import Sleep, retry_with_backoff
from dissonant.integrations.labels.client import LabelServiceClient
from dissonant.models.order import (
    AWAITING_LABEL_STATUSES,
    CANONICAL_TRACKING_FIELD,
    FAILED_LABELS_COLLECTION,
    ORDERS_COLLECTION,
    LabelStatus,
    label_creation_in_progress,
    labels_already_created,
    labels_need_retry,
)
from dissonant.schemas.address import Parcel
from dissonant.schemas.labels import LabelDetails, LabelRequest, LabelResponse
from dissonant.services.address_parser import parse_address
from dissonant.services.customer_service import CustomerResolver

logger = logging.getLogger(__name__)


class LabelOutcome(str, enum.Enum):
    """Result of one label-creation attempt."""

    CREATED = "created"
    ALREADY_CREATED = "already_created"
    IN_PROGRESS = "in_progress"
    DISCARDED = "discarded"
    FAILED = "failed"
    NOT_FOUND = "not_found"


@dataclass
class RetrySummary:
    """Totals from a failed-label retry run."""

    total: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)


def _can_claim(order: dict[str, Any] | None) -> bool:
    return (
        order is not None
        and not labels_already_created(order)
        and not label_creation_in_progress(order)
    )


def _label_fields(label: LabelDetails | None) -> dict[str, Any] | None:
    if label is None:
        return None
    return label.model_dump(exclude_none=True)


class ShippingLabelService:
    """Creates shipping labels for orders at most once."""

    def __init__(
        self,
        settings: Settings,
        store: DocumentStore,
        label_client: LabelServiceClient,
        customer_resolver: CustomerResolver,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.store = store
        self.label_client = label_client
        self.customer_resolver = customer_resolver
        self.max_attempts = settings.label_max_attempts
        self.base_delay = settings.label_retry_base_delay
        self.sleep = sleep
        self.clock = clock

    async def create_labels_for_order(self, order_id: str, *, source: str) -> LabelOutcome:
        """Create labels for ``order_id`` unless they exist or are being created.

        ``source`` identifies the caller (``client``, ``order_created``,
        ``retry_job``...) and is stored with the claim and the result.
        """
        order = await self.store.get(ORDERS_COLLECTION, order_id)
        if order is None:
            logger.warning("Label creation requested for missing order %s", order_id)
            return LabelOutcome.NOT_FOUND
        if labels_already_created(order):
            logger.info("Order %s already has labels, skipping (%s)", order_id, source)
            return LabelOutcome.ALREADY_CREATED
        if label_creation_in_progress(order):
            logger.info("Order %s label creation in progress elsewhere (%s)", order_id, source)
            return LabelOutcome.IN_PROGRESS

        claimed = await self.store.update_if(
            ORDERS_COLLECTION,
            order_id,
            _can_claim,
            {
                "shippingLabels.status": LabelStatus.CREATING.value,
                "shippingLabels.claimedAt": self.clock(),
                "shippingLabels.claimedBy": source,
            },
        )
        if not claimed:
            logger.info("Order %s claim lost to another process (%s)", order_id, source)
            return LabelOutcome.IN_PROGRESS
        logger.info("Order %s label claim acquired by %s", order_id, source)

        attempts = 0

        async def _attempt() -> LabelResponse:
            nonlocal attempts
            attempts += 1
            return await self.label_client.create_labels(request)

        try:
            request = await self._build_request(order_id, order)
            response = await retry_with_backoff(
                _attempt,
                name=f"create labels for {order_id}",
                attempts=self.max_attempts,
                base_delay=self.base_delay,
                retry_on=(LabelServiceError,),
                sleep=self.sleep,
            )
            if await self._completed_elsewhere(order_id, response):
                return LabelOutcome.DISCARDED
            await self._record_success(order_id, response, attempts=attempts, source=source)
        except (AddressParseError, CustomerResolutionError) as e:
            logger.error("Order %s cannot be labelled: %s", order_id, e)
            await self._record_failure(order_id, order, str(e), attempts=0, source=source)
            return LabelOutcome.FAILED
        except RetryExhaustedError as e:
            if await self._completed_elsewhere(order_id):
                return LabelOutcome.DISCARDED
            await self._record_failure(
                order_id, order, str(e.last_error), attempts=e.attempts, source=source
            )
            return LabelOutcome.FAILED
        except Exception as e:
            # The claim must not outlive this call.
            logger.exception("Order %s label creation aborted after claim", order_id)
            await self._record_failure(
                order_id, order, f"{type(e).__name__}: {e}", attempts=attempts, source=source
            )
            raise

        return LabelOutcome.CREATED

    async def find_orders_needing_labels(self) -> list[StoredDocument]:
        """Orders awaiting shipment that have no labels or only failed ones."""
        docs = await self.store.query_in(
            ORDERS_COLLECTION, "status", [status.value for status in AWAITING_LABEL_STATUSES]
        )
        return [doc for doc in docs if labels_need_retry(doc.data)]

    async def retry_failed_labels(
        self,
        *,
        dry_run: bool = False,
        order_id: str | None = None,
        limit: int | None = None,
        delay: float = 1.0,
    ) -> RetrySummary:
        """Re-run label creation for orders that never got labels."""
        if order_id:
            data = await self.store.get(ORDERS_COLLECTION, order_id)
            docs = [StoredDocument(id=order_id, data=data)] if data is not None else []
        else:
            docs = await self.find_orders_needing_labels()

        if limit is not None:
            docs = docs[:limit]

        summary = RetrySummary(total=len(docs))
        logger.info("Label retry: %d order(s) to process (dry_run=%s)", len(docs), dry_run)

        for index, doc in enumerate(docs):
            if dry_run:
                logger.info("[dry run] Would create labels for order %s", doc.id)
                summary.success += 1
                continue

            outcome = await self.create_labels_for_order(doc.id, source="retry_job")
            if outcome is LabelOutcome.CREATED:
                summary.success += 1
            elif outcome is LabelOutcome.FAILED:
                summary.failed += 1
                summary.errors.append({"order_id": doc.id, "outcome": outcome.value})
            else:
                summary.skipped += 1

            if delay and index < len(docs) - 1:
                await self.sleep(delay)

        logger.info(
            "Label retry finished: total=%d success=%d failed=%d skipped=%d",
            summary.total,
            summary.success,
            summary.failed,
            summary.skipped,
        )
        return summary

    async def _build_request(self, order_id: str, order: dict[str, Any]) -> LabelRequest:
        to_address = parse_address(order.get("address", ""))
        customer = await self.customer_resolver.resolve(order, fallback_name=to_address.name)
        return LabelRequest(
            to_address=to_address,
            parcel=Parcel(),
            order_id=f"ORDER-{order_id}",
            customer_name=customer.name or to_address.name,
            customer_email=customer.email,
        )

    async def _completed_elsewhere(
        self, order_id: str, response: LabelResponse | None = None
    ) -> bool:
        """Final check before persisting: did another process record labels?"""
        latest = await self.store.get(ORDERS_COLLECTION, order_id)
        if not labels_already_created(latest):
            return False
        outbound = response.outbound_label if response else None
        logger.warning(
            "Order %s labels were recorded by another process; discarding this result "
            "(unused outbound tracking %s)",
            order_id,
            outbound.tracking_number if outbound else None,
        )
        return True

    async def _record_success(
        self, order_id: str, response: LabelResponse, *, attempts: int, source: str
    ) -> None:
        now = self.clock()
        fields: dict[str, Any] = {
            "shippingLabels.created": True,
            "shippingLabels.status": LabelStatus.SUCCESS.value,
            "shippingLabels.outboundLabel": _label_fields(response.outbound_label),
            "shippingLabels.returnLabel": _label_fields(response.return_label),
            "shippingLabels.createdAt": now,
            "shippingLabels.updatedAt": now,
            "shippingLabels.createdBy": source,
            "shippingLabels.attemptCount": attempts,
            "shippingLabels.error": None,
        }
        outbound = response.outbound_label
        outbound_tracking = outbound.tracking_number if outbound else None
        if outbound_tracking:
            fields[CANONICAL_TRACKING_FIELD] = outbound_tracking
        await self.store.update(ORDERS_COLLECTION, order_id, fields)
        logger.info(
            "Order %s labels saved (outbound tracking %s, %d attempt(s))",
            order_id,
            outbound_tracking,
            attempts,
        )

    async def _record_failure(
        self,
        order_id: str,
        order: dict[str, Any],
        error: str,
        *,
        attempts: int,
        source: str,
    ) -> None:
        now = self.clock()
        await self.store.update(
            ORDERS_COLLECTION,
            order_id,
            {
                "shippingLabels.created": False,
                "shippingLabels.status": LabelStatus.FAILED.value,
                "shippingLabels.error": error,
                "shippingLabels.attemptCount": attempts,
                "shippingLabels.failedAt": now,
                "shippingLabels.updatedAt": now,
            },
        )
        await self.store.add(
            FAILED_LABELS_COLLECTION,
            {
                "orderId": order_id,
                "userId": order.get("userId"),
                "address": order.get("address"),
                "error": error,
                "attemptCount": attempts,
                "source": source,
                "timestamp": now,
                "resolved": False,
            },
        )
        logger.error(
            "Order %s label creation failed after %d attempt(s): %s", order_id, attempts, error
        )
