"""Shippo tracking API client using httpx."""

import logging
from typing import Any

import httpx

from dissonant.core.config import Settings
from dissonant.core.exceptions import TrackingLookupError

logger = logging.getLogger(__name__)


class ShippoClient:
    """Async client for the Shippo tracking endpoints."""

    def __init__(self, settings: Settings) -> None:
        self.base_url = settings.courier_api_url.rstrip("/")
        self.timeout = settings.courier_timeout
        self.headers = {
            "Authorization": f"ShippoToken {settings.courier_api_key}",
            "Content-Type": "application/json",
        }

    async def get_tracking_status(self, carrier: str, tracking_number: str) -> dict[str, Any]:
        """Fetch the current tracking record for a package.

        Raises:
            TrackingLookupError: the request failed or Shippo returned an error.
        """
        url = f"{self.base_url}/tracks/{carrier.lower()}/{tracking_number}"
        try:
            async with httpx.AsyncClient(headers=self.headers, timeout=self.timeout) as client:
                response = await client.get(url)
                response.raise_for_status()
                data: dict[str, Any] = response.json()
        except httpx.HTTPError as e:
            logger.warning("Tracking lookup failed for %s/%s: %s", carrier, tracking_number, e)
            raise TrackingLookupError(f"Tracking lookup failed for {tracking_number}: {e}") from e
        return data

    async def register_tracking(
        self, carrier: str, tracking_number: str, metadata: str = ""
    ) -> dict[str, Any]:
        """Register a tracking number so Shippo sends webhook updates for it.

        Raises:
            TrackingLookupError: Shippo rejected the registration.
        """
        try:
            async with httpx.AsyncClient(headers=self.headers, timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/tracks/",
                    json={
                        "carrier": carrier.lower(),
                        "tracking_number": tracking_number,
                        "metadata": metadata,
                    },
                )
                response.raise_for_status()
                data: dict[str, Any] = response.json()
        except httpx.HTTPError as e:
            logger.warning("Tracking registration failed for %s: %s", tracking_number, e)
            raise TrackingLookupError(
                f"Tracking registration failed for {tracking_number}: {e}"
            ) from e
        return data
