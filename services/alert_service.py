"""
Restock alert query.

Joins the active metrics snapshot with live product stock and orders the
result by how soon each item runs out.
"""

import math
from typing import Optional
import structlog

from config import settings
from models.inventory_metric import (
    SalesVelocity,
    ProductSummary,
    RestockAlert,
    RestockAlertListResponse,
)
from services.metrics_service import get_inventory_metrics_service
from services.product_service import get_product_service
from exceptions import InvalidVelocityError

logger = structlog.get_logger(__name__)

ALLOWED_VELOCITIES = [v.value for v in SalesVelocity]


def parse_velocity_filter(velocity: Optional[str]) -> Optional[SalesVelocity]:
    """
    Validate a velocity filter value.

    Raises:
        InvalidVelocityError: If the value is not Fast, Average or Slow
    """
    if velocity is None or velocity == "":
        return None
    if velocity not in ALLOWED_VELOCITIES:
        raise InvalidVelocityError(velocity, ALLOWED_VELOCITIES)
    return SalesVelocity(velocity)


def restock_sort_key(alert: RestockAlert) -> tuple:
    """Closest to stockout first; items that never run out last."""
    days = alert.days_of_stock_remaining
    return (
        math.isinf(days),
        days,
        alert.product.name,
        alert.flavor_name or "",
    )


class RestockAlertService:
    """Restock alert business logic."""

    def __init__(self):
        self.metrics_service = get_inventory_metrics_service()
        self.product_service = get_product_service()

    def get_restock_alerts(
        self,
        velocity: Optional[str] = None,
        low_stock_only: bool = False,
    ) -> RestockAlertListResponse:
        """
        Get restock alerts from the active snapshot.

        Args:
            velocity: Only include this velocity label (Fast, Average, Slow)
            low_stock_only: Only include items below the low stock threshold

        Returns:
            RestockAlertListResponse sorted by days of stock remaining

        Raises:
            InvalidVelocityError: Before any query runs, for an unknown label
            DatabaseError: If the snapshot or catalog cannot be read
        """
        velocity_filter = parse_velocity_filter(velocity)

        logger.info(
            "getting_restock_alerts",
            velocity=velocity_filter.value if velocity_filter else None,
            low_stock_only=low_stock_only
        )

        run, metrics = self.metrics_service.get_snapshot()
        products = self.product_service.get_stock_views_by_id() if metrics else {}
        threshold = settings.low_stock_threshold

        alerts: list[RestockAlert] = []
        for metric in metrics:
            product = products.get(metric.product_id)
            if product is None:
                logger.warning(
                    "restock_alert_product_missing",
                    product_id=metric.product_id,
                    generation=metric.generation
                )
                continue

            for fm in metric.flavor_metrics:
                if velocity_filter and fm.sales_velocity != velocity_filter:
                    continue

                current_stock = product.stock_for(fm.flavor_name)
                is_low_stock = current_stock < threshold
                if low_stock_only and not is_low_stock:
                    continue

                alerts.append(RestockAlert(
                    **fm.model_dump(),
                    product=ProductSummary(id=product.id, name=product.name, sku=product.sku),
                    current_stock=current_stock,
                    is_low_stock=is_low_stock,
                ))

        alerts.sort(key=restock_sort_key)
        low_stock_count = sum(1 for a in alerts if a.is_low_stock)

        logger.info(
            "restock_alerts_retrieved",
            count=len(alerts),
            low_stock=low_stock_count
        )

        return RestockAlertListResponse(
            data=alerts,
            total=len(alerts),
            low_stock_count=low_stock_count,
            velocity=velocity_filter,
            computed_at=run.computed_at if run else None,
        )


# Singleton instance
_alert_service: Optional[RestockAlertService] = None


def get_restock_alert_service() -> RestockAlertService:
    """Get or create RestockAlertService singleton instance."""
    global _alert_service
    if _alert_service is None:
        _alert_service = RestockAlertService()
    return _alert_service
