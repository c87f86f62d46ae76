"""Celery tasks triggered by new order documents."""

import logging
from typing import Any

from dissonant.models.order import ORDERS_COLLECTION
from dissonant.services.factory import Services
from dissonant.workers.celery_app import BaseTask, celery_app
from dissonant.workers.runtime import open_services, run_async

logger = logging.getLogger(__name__)


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.orders.process_order_created",
    base=BaseTask,
    bind=True,
)
def process_order_created(self: BaseTask, order_id: str) -> dict[str, Any]:  # noqa: ARG001
    """Notify the curator and create shipping labels for a new order."""
    return run_async(_process_order_created_async(order_id))


async def _process_order_created_async(order_id: str) -> dict[str, Any]:
    async with open_services() as services:
        return await handle_order_created(services, order_id)


async def handle_order_created(services: Services, order_id: str) -> dict[str, Any]:
    """Run the order-created side effects against ``services``.

    The curator push never blocks label creation; label creation goes
    through the same guard as the client endpoint, so a concurrent client
    request cannot produce a second set of labels.
    """
    order = await services.store.get(ORDERS_COLLECTION, order_id)
    if order is None:
        logger.warning("Order-created event for missing order %s", order_id)
        return {"status": "ignored", "reason": "order not found"}

    notified = await services.notifications.notify_order_assigned(order_id, order)
    outcome = await services.labels.create_labels_for_order(order_id, source="order_created")
    logger.info(
        "Order %s created: curator_notified=%s labels=%s", order_id, notified, outcome.value
    )
    return {"status": "processed", "curator_notified": notified, "labels": outcome.value}
