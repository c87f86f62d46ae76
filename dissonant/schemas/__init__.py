"""Pydantic schemas for request/response validation."""

from dissonant.schemas.address import Address, Parcel
from dissonant.schemas.common import Acknowledgement, HealthResponse
from dissonant.schemas.labels import LabelDetails, LabelRequest, LabelResponse
from dissonant.schemas.tracking import (
    CheckOrderStatusRequest,
    ReconciliationResult,
    ShippoWebhookPayload,
)

__all__ = [
    "Acknowledgement",
    "Address",
    "CheckOrderStatusRequest",
    "HealthResponse",
    "LabelDetails",
    "LabelRequest",
    "LabelResponse",
    "Parcel",
    "ReconciliationResult",
    "ShippoWebhookPayload",
]
