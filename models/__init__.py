"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.product import (
    Flavor,
    ScalarStock,
    FlavoredStock,
    ProductStock,
    ProductStockView,
)
from models.order import OrderStatus, COMPLETED_SALE_STATUSES
from models.inventory_metric import (
    SalesVelocity,
    FlavorMetric,
    InventoryMetric,
    InventoryMetricWithProduct,
    InventoryMetricListResponse,
    RecomputeParams,
    RecomputeRequest,
    MetricsRunResponse,
    ProductSummary,
    RestockAlert,
    RestockAlertListResponse,
)
from models.report import (
    InventoryReportRow,
    ReportAttachment,
    WeeklyReportResult,
    XLSX_CONTENT_TYPE,
)

__all__ = [
    # Base
    "BaseSchema",

    # Product
    "Flavor",
    "ScalarStock",
    "FlavoredStock",
    "ProductStock",
    "ProductStockView",

    # Order
    "OrderStatus",
    "COMPLETED_SALE_STATUSES",

    # Inventory metrics
    "SalesVelocity",
    "FlavorMetric",
    "InventoryMetric",
    "InventoryMetricWithProduct",
    "InventoryMetricListResponse",
    "RecomputeParams",
    "RecomputeRequest",
    "MetricsRunResponse",
    "ProductSummary",
    "RestockAlert",
    "RestockAlertListResponse",

    # Report
    "InventoryReportRow",
    "ReportAttachment",
    "WeeklyReportResult",
    "XLSX_CONTENT_TYPE",
]
