"""Propagate courier tracking status onto order documents.

A tracking number can be stored on an order under any of the alias fields in
``TRACKING_ALIAS_FIELDS``. Reconciliation looks the number up under every
alias, applies the normalized status to each matching order whose status
differs, and commits all changes as one batch. At most one customer email is
sent per call.
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from dissonant.core.document_store import DocumentStore, StoredDocument
from dissonant.models.order import (
    CANONICAL_TRACKING_FIELD,
    CURATOR_COMPLETED_STATUSES,
    ORDERS_COLLECTION,
    TRACKING_ALIAS_FIELDS,
    OrderStatus,
    get_path,
)
from dissonant.schemas.tracking import ReconciliationResult
from dissonant.services.curator_stats import CuratorStatsService
from dissonant.services.customer_service import CustomerResolver
from dissonant.services.email_service import EmailService, render_status_email
from dissonant.services.tracking_normalizer import (
    NormalizedStatus,
    normalize_tracking_status,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class OrderReconciler:
    """Applies normalized tracking statuses to every order holding a tracking number."""

    def __init__(
        self,
        store: DocumentStore,
        email_service: EmailService,
        customer_resolver: CustomerResolver,
        curator_stats: CuratorStatsService | None = None,
        clock: Clock = _utcnow,
    ) -> None:
        self.store = store
        self.email_service = email_service
        self.customer_resolver = customer_resolver
        self.curator_stats = curator_stats
        self.clock = clock

    async def reconcile(
        self,
        tracking_number: str,
        raw_tracking_status: Mapping[str, Any] | None,
        explicit_order_id: str | None = None,
        *,
        source: str = "shippo_webhook",
    ) -> ReconciliationResult:
        """Reconcile one tracking update.

        Args:
            tracking_number: The courier tracking number the update is for.
            raw_tracking_status: The courier payload, in any supported shape.
            explicit_order_id: An order to update even if none of its alias
                fields hold ``tracking_number`` (manual and polled checks).
            source: Recorded in each order's ``lastTrackingUpdate``.

        Returns:
            ReconciliationResult listing the orders whose status changed.
            An empty list is a normal outcome, not an error.

        Storage errors propagate; email and curator-stat side effects never do.
        """
        normalized = normalize_tracking_status(raw_tracking_status)
        now = self.clock()
        logger.info(
            "Reconciling tracking %s -> %s (source=%s, order=%s)",
            tracking_number,
            normalized.order_status.value,
            source,
            explicit_order_id or "-",
        )

        candidates = await self.find_orders(tracking_number)
        matched_ids = {doc.id for doc in candidates}

        if explicit_order_id and explicit_order_id not in matched_ids:
            data = await self.store.get(ORDERS_COLLECTION, explicit_order_id)
            if data is None:
                logger.warning(
                    "Order %s given for tracking %s does not exist",
                    explicit_order_id,
                    tracking_number,
                )
            else:
                candidates.append(StoredDocument(id=explicit_order_id, data=data))

        updates: dict[str, dict[str, Any]] = {}
        updated_docs: list[StoredDocument] = []

        for doc in candidates:
            is_explicit = doc.id == explicit_order_id
            fields = self._build_update(
                doc,
                tracking_number,
                normalized,
                raw_tracking_status,
                now=now,
                source=source,
                is_explicit=is_explicit,
                matched=doc.id in matched_ids,
            )
            if fields is None:
                continue
            updates[doc.id] = fields
            if "status" in fields:
                updated_docs.append(doc)

        if updates:
            await self.store.batch_update(ORDERS_COLLECTION, updates)
            logger.info(
                "Tracking %s: wrote %d order(s), %d status change(s)",
                tracking_number,
                len(updates),
                len(updated_docs),
            )
        else:
            logger.info("Tracking %s: no order changes", tracking_number)

        if updated_docs and normalized.should_send_email:
            await self._send_status_email(updated_docs[0], tracking_number, normalized)

        if updated_docs and normalized.order_status in CURATOR_COMPLETED_STATUSES:
            await self._refresh_curator_stats(updated_docs)

        return ReconciliationResult(
            tracking_number=tracking_number,
            order_status=normalized.order_status.value,
            description=normalized.status_description,
            updated_orders=[doc.id for doc in updated_docs],
            timestamp=now,
        )

    async def find_orders(self, tracking_number: str) -> list[StoredDocument]:
        """Return orders holding ``tracking_number`` under any alias field.

        Lookups run concurrently; results are deduplicated by document id,
        keeping alias priority order.
        """
        results = await asyncio.gather(
            *(
                self.store.query(ORDERS_COLLECTION, field, tracking_number)
                for field in TRACKING_ALIAS_FIELDS
            )
        )
        seen: dict[str, StoredDocument] = {}
        for docs in results:
            for doc in docs:
                seen.setdefault(doc.id, doc)
        return list(seen.values())

    def _build_update(
        self,
        doc: StoredDocument,
        tracking_number: str,
        normalized: NormalizedStatus,
        raw_tracking_status: Mapping[str, Any] | None,
        *,
        now: datetime,
        source: str,
        is_explicit: bool,
        matched: bool,
    ) -> dict[str, Any] | None:
        """Return the fields to write for one order, or None to leave it alone."""
        current = doc.data.get("status")
        new_status = normalized.order_status
        tracking_snapshot = (
            dict(raw_tracking_status) if isinstance(raw_tracking_status, Mapping) else {}
        )

        if new_status is OrderStatus.UNKNOWN:
            logger.warning(
                "Order %s: unrecognized tracking payload for %s, status left at %s",
                doc.id,
                tracking_number,
                current,
            )
            return {"trackingStatus": tracking_snapshot} if is_explicit else None

        if current == new_status.value:
            logger.debug("Order %s already %s, skipping", doc.id, current)
            return {"trackingStatus": tracking_snapshot} if is_explicit else None

        if self._is_stale(doc, normalized):
            logger.warning(
                "Order %s: ignoring out-of-order %s update for %s (carrier time %s)",
                doc.id,
                new_status.value,
                tracking_number,
                normalized.carrier_timestamp,
            )
            return None

        fields: dict[str, Any] = {
            "status": new_status.value,
            "statusDescription": normalized.status_description,
            "updatedAt": now,
            "lastTrackingUpdate": {
                "timestamp": now,
                "source": source,
                "oldStatus": current,
                "newStatus": new_status.value,
                "carrierTimestamp": normalized.carrier_timestamp,
            },
        }
        if matched or not doc.data.get(CANONICAL_TRACKING_FIELD):
            fields[CANONICAL_TRACKING_FIELD] = tracking_number
        if is_explicit:
            fields["trackingStatus"] = tracking_snapshot
        if new_status is OrderStatus.DELIVERED:
            fields["deliveredAt"] = now
        return fields

    @staticmethod
    def _is_stale(doc: StoredDocument, normalized: NormalizedStatus) -> bool:
        incoming = normalized.carrier_timestamp
        stored = parse_timestamp(get_path(doc.data, "lastTrackingUpdate.carrierTimestamp"))
        if incoming is None or stored is None:
            return False
        return incoming < stored

    async def _send_status_email(
        self,
        doc: StoredDocument,
        tracking_number: str,
        normalized: NormalizedStatus,
    ) -> None:
        try:
            customer = await self.customer_resolver.resolve(doc.data)
        except Exception:
            logger.exception(
                "Could not resolve customer for order %s; status email skipped", doc.id
            )
            return

        email = render_status_email(
            normalized.order_status,
            customer_name=customer.name,
            tracking_number=tracking_number,
            description=normalized.status_description,
            order_id=doc.id,
        )
        await self.email_service.send_templated_email(
            to=customer.email,
            subject=email.subject,
            text=email.text,
            html=email.html,
        )

    async def _refresh_curator_stats(self, docs: list[StoredDocument]) -> None:
        if self.curator_stats is None:
            return
        curator_ids = {doc.data["curatorId"] for doc in docs if doc.data.get("curatorId")}
        for curator_id in sorted(curator_ids):
            try:
                await self.curator_stats.recompute(curator_id)
            except Exception:
                logger.exception("Failed to recompute stats for curator %s", curator_id)
