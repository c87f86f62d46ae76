"""Client for the shipping label endpoint.

The endpoint buys an outbound label and a scan-based return label from the
courier in one call and returns both.
"""

import logging

import httpx
from pydantic import ValidationError

from dissonant.core.config import Settings
from dissonant.core.exceptions import LabelServiceError
from dissonant.schemas.labels import LabelRequest, LabelResponse

logger = logging.getLogger(__name__)


class LabelServiceClient:
    """Posts label requests to the configured label endpoint."""

    def __init__(self, settings: Settings) -> None:
        self.url = settings.label_service_url
        self.timeout = settings.courier_timeout

    async def create_labels(self, request: LabelRequest) -> LabelResponse:
        """Create outbound and return labels for one order.

        Raises:
            LabelServiceError: transport error, non-2xx status, unreadable body,
                or ``success`` false.
        """
        if not self.url:
            raise LabelServiceError("Label service URL is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.url,
                    json=request.model_dump(mode="json"),
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as e:
            raise LabelServiceError(f"Label request for {request.order_id} failed: {e}") from e

        if not response.is_success:
            raise LabelServiceError(
                f"Label service returned {response.status_code}: {response.text[:500]}"
            )

        try:
            result = LabelResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise LabelServiceError(
                f"Label service returned an unreadable body: {response.text[:500]}"
            ) from e
        if not result.success:
            raise LabelServiceError(result.error or "Unknown error from label service")

        logger.info(
            "Labels created for %s: outbound=%s return=%s",
            request.order_id,
            result.outbound_label.tracking_number if result.outbound_label else None,
            result.return_label.tracking_number if result.return_label else None,
        )
        return result
