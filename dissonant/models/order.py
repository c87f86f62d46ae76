"""Order document fields, lifecycle states and shipping-label predicates.

Orders live in the ``orders`` collection as loosely-shaped documents. The
helpers here read them as plain mappings so that historical documents with
missing or differently-named fields are still handled.
"""

import enum
from collections.abc import Mapping
from typing import Any

ORDERS_COLLECTION = "orders"
USERS_COLLECTION = "users"
REVIEWS_COLLECTION = "reviews"
FAILED_LABELS_COLLECTION = "failed_shipping_labels"
FAILED_EMAILS_COLLECTION = "failed_emails"
EMAIL_DEBUG_COLLECTION = "email_debug"


class OrderStatus(str, enum.Enum):
    """Order lifecycle states."""

    NEW = "new"
    CURATOR_ASSIGNED = "curator_assigned"
    READY_TO_SHIP = "ready_to_ship"
    LABEL_CREATED = "labelCreated"
    SENT = "sent"
    DELIVERED = "delivered"
    RETURNED = "returned"
    DELIVERY_FAILED = "deliveryFailed"
    KEPT = "kept"
    RETURNED_CONFIRMED = "returnedConfirmed"
    UNKNOWN = "unknown"


class LabelStatus(str, enum.Enum):
    """``shippingLabels.status`` values."""

    CREATING = "creating"
    SUCCESS = "success"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.RETURNED,
        OrderStatus.KEPT,
        OrderStatus.RETURNED_CONFIRMED,
        OrderStatus.DELIVERY_FAILED,
    }
)

# Statuses at which the curator's part of the order is done.
CURATOR_COMPLETED_STATUSES = frozenset(
    {
        OrderStatus.READY_TO_SHIP,
        OrderStatus.SENT,
        OrderStatus.DELIVERED,
        OrderStatus.RETURNED,
        OrderStatus.KEPT,
        OrderStatus.RETURNED_CONFIRMED,
    }
)

# Orders that can still receive labels.
AWAITING_LABEL_STATUSES = (
    OrderStatus.NEW,
    OrderStatus.CURATOR_ASSIGNED,
    OrderStatus.READY_TO_SHIP,
)

# Orders whose parcel is (or is about to be) with the carrier.
IN_FLIGHT_STATUSES = (OrderStatus.LABEL_CREATED, OrderStatus.SENT)

CANONICAL_TRACKING_FIELD = "trackingNumber"

# Lookup priority. The first entry is the canonical field written back on update.
TRACKING_ALIAS_FIELDS: tuple[str, ...] = (
    CANONICAL_TRACKING_FIELD,
    "outboundTrackingNumber",
    "tracking_number",
    "shipment_tracking",
    "shippingLabels.outboundLabel.tracking_number",
)


def get_path(data: Mapping[str, Any] | None, path: str) -> Any:
    """Read a dotted field path from a nested mapping, or None."""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def tracking_number_of(order: Mapping[str, Any]) -> str | None:
    """Return the first non-empty tracking alias on an order."""
    for field in TRACKING_ALIAS_FIELDS:
        value = get_path(order, field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def label_status_of(order: Mapping[str, Any]) -> str | None:
    """Return ``shippingLabels.status`` or None."""
    value = get_path(order, "shippingLabels.status")
    return value if isinstance(value, str) else None


def labels_already_created(order: Mapping[str, Any] | None) -> bool:
    """Whether any signal shows labels were already bought for this order.

    The label purchase and the status write are separate calls, so any one
    of these counts: ``created`` flag, ``success`` status, an outbound
    tracking number, a non-failed outbound URL, or a return tracking number.
    """
    labels = get_path(order, "shippingLabels")
    if not isinstance(labels, Mapping):
        return False

    if labels.get("created") is True:
        return True
    if labels.get("status") == LabelStatus.SUCCESS.value:
        return True

    outbound = labels.get("outboundLabel")
    if isinstance(outbound, Mapping):
        if outbound.get("tracking_number"):
            return True
        label_url = outbound.get("label_url")
        if label_url and "failed" not in str(label_url):
            return True

    return_label = labels.get("returnLabel")
    if isinstance(return_label, Mapping) and return_label.get("tracking_number"):
        return True

    return False


def label_creation_in_progress(order: Mapping[str, Any] | None) -> bool:
    """Whether another process holds the ``creating`` claim."""
    return label_status_of(order or {}) == LabelStatus.CREATING.value


def labels_need_retry(order: Mapping[str, Any]) -> bool:
    """Whether an order has no labels or only failed ones."""
    labels = get_path(order, "shippingLabels")
    if not isinstance(labels, Mapping):
        return True

    for key in ("outboundLabel", "returnLabel"):
        label = labels.get(key)
        if isinstance(label, Mapping) and (
            label.get("status") == "ERROR" or "failed" in str(label.get("label_url") or "")
        ):
            return True

    if labels.get("status") == LabelStatus.FAILED.value:
        return True

    if labels.get("status") == LabelStatus.CREATING.value:
        return False

    return labels.get("created") is not True
