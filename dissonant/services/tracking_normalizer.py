"""Map courier tracking payloads onto order lifecycle states.

Courier webhooks and tracking lookups describe the same package state in
several shapes: ``status`` or ``state`` at the top level, the same keys under
``tracking_status``, and free-text ``status_details`` in a few places. Every
candidate is lower-cased and searched for keywords; nothing here raises.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from dissonant.models.order import OrderStatus

DELIVERED_KEYWORDS = (
    "delivered",
    "delivery",
    "delivered_to_recipient",
    "available_for_pickup",
    "delivered_pickup",
)
TRANSIT_KEYWORDS = (
    "transit",
    "in_transit",
    "accepted",
    "in_transit_to_destination",
    "out_for_delivery",
)
RETURNED_KEYWORDS = (
    "returned",
    "return_to_sender",
    "returned_to_sender",
    "return",
)

# Customers only hear about these.
EMAIL_STATUSES = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.RETURNED,
        OrderStatus.SENT,
        OrderStatus.DELIVERY_FAILED,
    }
)


@dataclass(frozen=True)
class NormalizedStatus:
    """Canonical reading of one tracking payload."""

    order_status: OrderStatus
    status_description: str
    should_send_email: bool
    carrier_timestamp: datetime | None = None


def _first_raw(*values: Any) -> str:
    for value in values:
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def _first(*values: Any) -> str:
    return _first_raw(*values).lower()


def _candidates(*values: Any) -> tuple[str, ...]:
    return tuple(str(value).strip().lower() for value in values if value is not None)


def _substatus(value: Any) -> Any:
    # Shippo sends {"code": ..., "text": ...}; older payloads send a string.
    if isinstance(value, Mapping):
        return value.get("code")
    return value


def _contains_any(candidates: Iterable[str], keywords: Iterable[str]) -> bool:
    keywords = tuple(keywords)
    return any(
        keyword in candidate for candidate in candidates if candidate for keyword in keywords
    )


def parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def normalize_tracking_status(payload: Mapping[str, Any] | None) -> NormalizedStatus:
    """Convert a raw tracking payload into an order status.

    Delivered signals win over returned ones, which win over in-transit
    ones. Payloads matching none of the keyword sets fall back to an exact
    match on the raw state.
    """
    if not isinstance(payload, Mapping):
        payload = {}
    nested = payload.get("tracking_status")
    if not isinstance(nested, Mapping):
        nested = {}

    state = _first(payload.get("status"), payload.get("state"), nested.get("status"))
    detail_text = _first_raw(
        payload.get("status_detail"),
        payload.get("status_details"),
        nested.get("status_details"),
        nested.get("status_detail"),
        payload.get("description"),
    )
    detail = detail_text.lower()
    candidates = _candidates(
        payload.get("status"),
        payload.get("state"),
        nested.get("status"),
        nested.get("state"),
        _substatus(payload.get("substatus")),
        _substatus(nested.get("substatus")),
        payload.get("status_detail"),
        payload.get("status_details"),
        nested.get("status_details"),
        nested.get("status_detail"),
        payload.get("description"),
    )

    carrier_timestamp = parse_timestamp(nested.get("status_date") or payload.get("status_date"))

    is_delivered = _contains_any(candidates, DELIVERED_KEYWORDS)
    is_in_transit = _contains_any(candidates, TRANSIT_KEYWORDS)
    is_returned = _contains_any(candidates, RETURNED_KEYWORDS)

    if is_delivered:
        order_status = OrderStatus.DELIVERED
        description = "Package delivered"
    elif is_returned:
        order_status = OrderStatus.RETURNED
        description = "Package returned to sender"
    elif is_in_transit:
        order_status = OrderStatus.SENT
        description = "Package in transit"
    elif state in ("pre_transit", "unknown"):
        order_status = OrderStatus.LABEL_CREATED
        description = "Shipping label created, awaiting carrier pickup"
    elif state in ("failure", "exception", "error"):
        order_status = OrderStatus.DELIVERY_FAILED
        description = "Delivery failed or exception occurred"
    else:
        order_status = OrderStatus.UNKNOWN
        description = f"Unrecognized tracking status: {state or 'none'}"

    if detail and order_status is not OrderStatus.UNKNOWN:
        description = f"{description} ({detail_text})"

    return NormalizedStatus(
        order_status=order_status,
        status_description=description,
        should_send_email=order_status in EMAIL_STATUSES,
        carrier_timestamp=carrier_timestamp,
    )
