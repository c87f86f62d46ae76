"""Scheduled shipping label tasks."""

import dataclasses
from typing import Any

from dissonant.workers.celery_app import BaseTask, celery_app
from dissonant.workers.runtime import open_services, run_async


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.labels.retry_failed_shipping_labels",
    base=BaseTask,
    bind=True,
)
def retry_failed_shipping_labels(self: BaseTask) -> dict[str, Any]:  # noqa: ARG001
    """Retry label creation for orders awaiting shipment without labels."""
    return run_async(_retry_failed_shipping_labels_async())


async def _retry_failed_shipping_labels_async() -> dict[str, Any]:
    async with open_services() as services:
        summary = await services.labels.retry_failed_labels()
    return dataclasses.asdict(summary)
