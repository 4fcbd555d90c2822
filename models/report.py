"""
Weekly inventory report models.
"""

from typing import Optional
from pydantic import BaseModel, Field

from models.base import BaseSchema
from models.inventory_metric import MetricsRunResponse

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class InventoryReportRow(BaseSchema):
    """One product × flavor line of the weekly report."""

    product: str
    sku: str = "N/A"
    flavor: str = "N/A"
    current_stock: int
    avg_weekly: int = Field(..., description="Rounded average weekly sales")
    reorder_point: int = Field(..., description="Rounded reorder point")
    velocity: str


class ReportAttachment(BaseModel):
    """Binary artifact handed to a delivery channel."""

    filename: str = "inventory-report.xlsx"
    content: bytes
    content_type: str = XLSX_CONTENT_TYPE


class WeeklyReportResult(BaseSchema):
    """Outcome of one weekly report run."""

    run: MetricsRunResponse
    row_count: int
    low_stock_count: int
    delivered: bool
    delivery_error: Optional[str] = None
    telegram_sent: bool = False
