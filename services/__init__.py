"""
Business logic services.

Each service handles one domain area.
"""

from services.product_service import ProductService, get_product_service
from services.sales_service import SalesService, get_sales_service
from services.velocity_service import (
    VelocityThresholds,
    compute_thresholds,
    classify_velocity,
)
from services.metrics_service import (
    InventoryMetricsService,
    get_inventory_metrics_service,
    build_inventory_metrics,
)
from services.alert_service import RestockAlertService, get_restock_alert_service
from services.export_service import ExportService, get_export_service
from services.report_service import InventoryReportService, get_inventory_report_service

__all__ = [
    "ProductService",
    "get_product_service",
    "SalesService",
    "get_sales_service",
    "VelocityThresholds",
    "compute_thresholds",
    "classify_velocity",
    "InventoryMetricsService",
    "get_inventory_metrics_service",
    "build_inventory_metrics",
    "RestockAlertService",
    "get_restock_alert_service",
    "ExportService",
    "get_export_service",
    "InventoryReportService",
    "get_inventory_report_service",
]
