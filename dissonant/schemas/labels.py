"""Shipping label request and response schemas."""

from typing import Any

from pydantic import Field

from dissonant.schemas.address import Address, Parcel
from dissonant.schemas.common import BaseSchema


class LabelRequest(BaseSchema):
    """Payload posted to the label-creation endpoint."""

    to_address: Address
    parcel: Parcel = Field(default_factory=Parcel)
    order_id: str
    customer_name: str
    customer_email: str


class LabelDetails(BaseSchema):
    """One purchased label (outbound or return)."""

    label_url: str | None = None
    tracking_number: str | None = None
    rate: Any = None
    service: str | None = None
    status: str | None = None
    transaction_id: str | None = None
    billing_method: str | None = None


class LabelResponse(BaseSchema):
    """Body returned by the label-creation endpoint."""

    success: bool
    outbound_label: LabelDetails | None = None
    return_label: LabelDetails | None = None
    error: str | None = None


class CreateLabelsRequest(BaseSchema):
    """Client-initiated label creation for one order."""

    order_id: str = Field(min_length=1)


class CreateLabelsResponse(BaseSchema):
    """Result of a label-creation attempt."""

    order_id: str
    outcome: str


class OrderCreatedEvent(BaseSchema):
    """Document-creation event forwarded for a new order."""

    order_id: str = Field(min_length=1)
