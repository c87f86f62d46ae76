"""Order document model helpers."""

from dissonant.models.order import (
    CURATOR_COMPLETED_STATUSES,
    TERMINAL_STATUSES,
    TRACKING_ALIAS_FIELDS,
    LabelStatus,
    OrderStatus,
    labels_already_created,
    tracking_number_of,
)

__all__ = [
    "CURATOR_COMPLETED_STATUSES",
    "LabelStatus",
    "OrderStatus",
    "TERMINAL_STATUSES",
    "TRACKING_ALIAS_FIELDS",
    "labels_already_created",
    "tracking_number_of",
]
