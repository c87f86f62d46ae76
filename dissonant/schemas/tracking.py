"""Tracking webhook, status check and reconciliation schemas."""

from datetime import datetime
from typing import Any

from pydantic import Field

from dissonant.schemas.common import BaseSchema


class ShippoWebhookData(BaseSchema):
    """The ``data`` object of a courier webhook delivery."""

    tracking_number: str | None = None
    tracking_status: dict[str, Any] | None = None
    object_id: str | None = None
    carrier: str | None = None


class ShippoWebhookPayload(BaseSchema):
    """A courier webhook delivery."""

    event: str = ""
    data: ShippoWebhookData = Field(default_factory=ShippoWebhookData)


class CheckOrderStatusRequest(BaseSchema):
    """Manual status check for one tracking number."""

    tracking_number: str = Field(min_length=1)
    order_id: str | None = None
    carrier: str | None = None


class ReconciliationResult(BaseSchema):
    """Outcome of one reconciliation pass."""

    tracking_number: str
    order_status: str
    description: str
    updated_orders: list[str]
    timestamp: datetime
