"""Scheduled tracking tasks."""

import dataclasses
import logging
from typing import Any

from dissonant.workers.celery_app import BaseTask, celery_app
from dissonant.workers.runtime import open_services, run_async

logger = logging.getLogger(__name__)


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.tracking.poll_in_flight_tracking",
    base=BaseTask,
    bind=True,
)
def poll_in_flight_tracking(self: BaseTask) -> dict[str, int]:  # noqa: ARG001
    """Reconcile every order with a label or in transit against the courier."""
    return run_async(_poll_in_flight_tracking_async())


async def _poll_in_flight_tracking_async() -> dict[str, int]:
    async with open_services() as services:
        counts = await services.tracking.poll_in_flight()
    return dataclasses.asdict(counts)


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.tracking.report_stale_delivered_orders",
    base=BaseTask,
    bind=True,
)
def report_stale_delivered_orders(self: BaseTask) -> dict[str, Any]:  # noqa: ARG001
    """Log customers whose orders have sat in ``delivered`` too long."""
    return run_async(_report_stale_delivered_orders_async())


async def _report_stale_delivered_orders_async() -> dict[str, Any]:
    async with open_services() as services:
        users = await services.tracking.find_stale_delivered()

    order_count = sum(len(user.orders) for user in users)
    for user in users:
        logger.info(
            "Stale delivered orders for %s (%s): %s",
            user.user_id or "<no user>",
            user.email or "no email",
            ", ".join(order["order_id"] for order in user.orders),
        )
    logger.info("%d stale delivered order(s) across %d user(s)", order_count, len(users))
    return {"users": len(users), "orders": order_count}
