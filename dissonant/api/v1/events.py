"""Document-store event endpoints."""

import logging

from fastapi import APIRouter, status

from dissonant.schemas.common import Acknowledgement
from dissonant.schemas.labels import OrderCreatedEvent
from dissonant.workers.tasks.orders import process_order_created

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/order-created",
    response_model=Acknowledgement,
    status_code=status.HTTP_202_ACCEPTED,
)
async def order_created(event: OrderCreatedEvent) -> Acknowledgement:
    """Queue curator notification and label creation for a new order."""
    process_order_created.delay(event.order_id)
    logger.info("Queued order-created processing for %s", event.order_id)
    return Acknowledgement(success=True, message=f"Order {event.order_id} queued")
