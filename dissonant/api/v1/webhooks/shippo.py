"""Shippo tracking webhook."""

import logging

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from dissonant.core.deps import ServicesDep, SettingsDep
from dissonant.integrations.shippo.webhooks import verify_webhook_token
from dissonant.schemas.common import Acknowledgement
from dissonant.schemas.tracking import ShippoWebhookPayload

logger = logging.getLogger(__name__)

router = APIRouter()

TRACKING_EVENTS = frozenset({"track_updated", "tracking_updated", "shipment_updated"})
TRANSACTION_EVENTS = frozenset({"transaction_created", "transaction_updated"})


@router.post("/shippo-webhook", response_model=Acknowledgement)
async def shippo_webhook(
    payload: ShippoWebhookPayload,
    settings: SettingsDep,
    services: ServicesDep,
    token: str | None = None,
) -> Acknowledgement | JSONResponse:
    """Apply a courier tracking update to matching orders.

    Tracking events are reconciled; every other event is acknowledged and
    ignored. Internal failures answer 500 so the courier redelivers.
    """
    if not verify_webhook_token(token, settings.shippo_webhook_token):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid webhook token")

    event = payload.event
    if event in TRANSACTION_EVENTS:
        logger.info("Shippo %s event acknowledged (%s)", event, payload.data.object_id)
        return Acknowledgement(success=True, message=f"Event {event} acknowledged")
    if event not in TRACKING_EVENTS:
        logger.info("Unhandled Shippo event type: %s", event or "<empty>")
        return Acknowledgement(success=True, message=f"Event {event} ignored")

    tracking_number = payload.data.tracking_number
    if not tracking_number:
        logger.warning("Shippo %s event without tracking number", event)
        return Acknowledgement(success=True, message="No tracking number in payload")

    try:
        result = await services.reconciler.reconcile(
            tracking_number, payload.data.tracking_status, source="shippo_webhook"
        )
    except Exception:
        logger.exception("Failed to process Shippo %s event for %s", event, tracking_number)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Internal server error"},
        )

    return Acknowledgement(
        success=True,
        message=(
            f"Tracking {tracking_number} processed: {result.order_status}, "
            f"{len(result.updated_orders)} order(s) updated"
        ),
    )
