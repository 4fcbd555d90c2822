"""
Sales aggregation over order history.

Turns completed orders into units sold per (product, flavor) pair. This is
the demand signal the inventory metrics engine works from.
"""

from collections import defaultdict
from datetime import datetime
from typing import Optional
import structlog

from config import get_supabase_client
from models.order import COMPLETED_SALE_STATUSES
from exceptions import DatabaseError
from utils.pagination import fetch_all

logger = structlog.get_logger(__name__)

# (product_id, flavor_name); flavor_name is None for unflavored items
SalesKey = tuple[str, Optional[str]]


def sum_line_items(orders: list[dict]) -> dict[SalesKey, float]:
    """
    Sum line item quantities per (product, flavor).

    Line items without a product reference are skipped. Empty flavor names
    count as unflavored.

    Args:
        orders: Order rows with an `order_items` list

    Returns:
        Total quantity per pair; pairs with no sales are absent
    """
    totals: dict[SalesKey, float] = defaultdict(float)

    for order in orders:
        for item in order.get("order_items") or []:
            product_id = item.get("product")
            if not product_id:
                continue

            flavor = item.get("flavor") or None
            totals[(str(product_id), flavor)] += float(item.get("qty") or 0)

    return {key: qty for key, qty in totals.items() if qty > 0}


class SalesService:
    """
    Sales aggregator.

    Reads orders and counts only those in a completed-sale status.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "orders"

    def aggregate_units_sold(self, start: datetime) -> dict[SalesKey, float]:
        """
        Units sold per (product, flavor) since `start`.

        Only orders whose status is a completed sale and whose creation
        time is at or after `start` are counted. There is no upper bound.

        Args:
            start: Beginning of the lookback window (use the epoch for all time)

        Returns:
            Total quantity per pair; callers default missing pairs to zero

        Raises:
            DatabaseError: If orders cannot be read. No partial result is returned.
        """
        statuses = sorted(s.value for s in COMPLETED_SALE_STATUSES)

        logger.info(
            "aggregating_units_sold",
            start=start.isoformat(),
            statuses=statuses
        )

        try:
            orders = fetch_all(
                lambda: self.db.table(self.table)
                .select("id, status, created_at, order_items")
                .in_("status", statuses)
                .gte("created_at", start.isoformat())
                .order("id")
            )
        except Exception as e:
            logger.error("aggregate_units_sold_failed", error=str(e))
            raise DatabaseError("select", str(e))

        totals = sum_line_items(orders)

        logger.info(
            "units_sold_aggregated",
            orders=len(orders),
            pairs=len(totals),
            units=sum(totals.values())
        )

        return totals


# Singleton instance for convenience
_sales_service: Optional[SalesService] = None


def get_sales_service() -> SalesService:
    """Get or create SalesService instance."""
    global _sales_service
    if _sales_service is None:
        _sales_service = SalesService()
    return _sales_service
