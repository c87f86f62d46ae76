"""Denormalized curator statistics on user documents."""

import logging
from datetime import UTC, datetime
from typing import Any

from dissonant.core.document_store import DocumentStore
from dissonant.models.order import (
    CURATOR_COMPLETED_STATUSES,
    ORDERS_COLLECTION,
    REVIEWS_COLLECTION,
    USERS_COLLECTION,
)

logger = logging.getLogger(__name__)

_COMPLETED_VALUES = frozenset(status.value for status in CURATOR_COMPLETED_STATUSES)


class CuratorStatsService:
    """Recomputes curatorOrderCount, curatorAverageRating and curatorReviewCount.

    Stats are always rebuilt from the orders and reviews collections rather
    than incremented, so a missed or duplicated event cannot make them drift.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def recompute(self, curator_id: str) -> dict[str, Any]:
        """Rebuild and persist the stats for one curator."""
        orders = await self.store.query(ORDERS_COLLECTION, "curatorId", curator_id)
        completed = [
            doc for doc in orders if doc.data.get("status") in _COMPLETED_VALUES
        ]

        reviews = await self.store.query(REVIEWS_COLLECTION, "curatorId", curator_id)
        ratings: list[float] = []
        for review in reviews:
            rating = review.data.get("rating")
            if isinstance(rating, (int, float)) and not isinstance(rating, bool):
                ratings.append(float(rating))

        average = round(sum(ratings) / len(ratings), 2) if ratings else 0.0
        stats: dict[str, Any] = {
            "curatorOrderCount": len(completed),
            "curatorAverageRating": average,
            "curatorReviewCount": len(ratings),
            "curatorStatsUpdatedAt": datetime.now(UTC),
        }
        await self.store.update(USERS_COLLECTION, curator_id, stats)
        logger.info(
            "Curator stats recomputed: curator=%s orders=%d reviews=%d avg=%.2f",
            curator_id,
            stats["curatorOrderCount"],
            stats["curatorReviewCount"],
            average,
        )
        return stats

