"""
Order read models.

Orders are written by the storefront; the metrics engine only reads their
status, creation time and line items.
"""

from enum import Enum


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    ORDER_READY = "Order Ready"
    DELIVERED = "Delivered"
    PICKED_UP = "Pickedup"
    CANCELLED = "Cancelled"


# Statuses that represent a completed sale. Everything else is ignored
# when measuring demand.
COMPLETED_SALE_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.ORDER_READY,
    OrderStatus.DELIVERED,
    OrderStatus.PICKED_UP,
})
