"""Client-facing order endpoints: status checks and label creation."""

from fastapi import APIRouter, HTTPException, Request, status

from dissonant.core.deps import ServicesDep
from dissonant.core.exceptions import TrackingLookupError
from dissonant.core.rate_limit import CLIENT_ENDPOINT_LIMIT, limiter
from dissonant.schemas.labels import CreateLabelsRequest, CreateLabelsResponse
from dissonant.schemas.tracking import CheckOrderStatusRequest, ReconciliationResult

router = APIRouter()


@router.post("/check-order-status", response_model=ReconciliationResult)
@limiter.limit(CLIENT_ENDPOINT_LIMIT)
async def check_order_status(
    request: Request,  # noqa: ARG001 (required by slowapi)
    data: CheckOrderStatusRequest,
    services: ServicesDep,
) -> ReconciliationResult:
    """Look up a tracking number at the courier and reconcile the result."""
    try:
        return await services.tracking.check_order_status(
            data.tracking_number, data.order_id, data.carrier
        )
    except TrackingLookupError as e:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, str(e)) from e


@router.post("/create-shipping-labels", response_model=CreateLabelsResponse)
@limiter.limit(CLIENT_ENDPOINT_LIMIT)
async def create_shipping_labels(
    request: Request,  # noqa: ARG001 (required by slowapi)
    data: CreateLabelsRequest,
    services: ServicesDep,
) -> CreateLabelsResponse:
    """Create shipping labels for an order, once.

    Safe to call repeatedly: an order that already has labels, or whose
    labels are being created by another process, is left alone.
    """
    outcome = await services.labels.create_labels_for_order(data.order_id, source="client")
    return CreateLabelsResponse(order_id=data.order_id, outcome=outcome.value)
