"""
Inventory metric models and schemas.

An InventoryMetric is one product's entry in a metrics snapshot. It holds a
FlavorMetric per flavor (or a single entry with no flavor name for
unflavored products). Snapshots are rebuilt wholesale by every recompute
run; each run is recorded in `inventory_metric_runs`.
"""

import math
from datetime import datetime
from typing import Any, Optional
from enum import Enum
from pydantic import Field, field_serializer, field_validator

from models.base import BaseSchema


class SalesVelocity(str, Enum):
    """How quickly an item sells relative to the rest of the catalog."""

    FAST = "Fast"
    AVERAGE = "Average"
    SLOW = "Slow"


class FlavorMetric(BaseSchema):
    """
    Derived sales metrics for one flavor of a product.

    `days_of_stock_remaining` is infinite when nothing sold in the window.
    JSON has no infinity, so it is written and returned as null.
    """

    flavor_name: Optional[str] = Field(None, description="Flavor name, null when unflavored")
    avg_weekly_sales: float = Field(..., ge=0, description="Units sold per week in the window")
    recommended_weekly_stock: float = Field(..., ge=0, description="avg × safety factor")
    reorder_point: float = Field(..., ge=0, description="Stock level that should trigger a reorder")
    days_of_stock_remaining: float = Field(..., ge=0, description="Null means no sales, never runs out")
    sales_velocity: SalesVelocity

    @field_validator("days_of_stock_remaining", mode="before")
    @classmethod
    def null_means_infinite(cls, v: Any) -> Any:
        return math.inf if v is None else v

    @field_serializer("days_of_stock_remaining", when_used="json")
    def infinite_as_null(self, v: float) -> Optional[float]:
        return None if math.isinf(v) else v

    @property
    def never_runs_out(self) -> bool:
        return math.isinf(self.days_of_stock_remaining)


class InventoryMetric(BaseSchema):
    """One product's entry in a metrics snapshot."""

    id: Optional[str] = None
    product_id: str
    flavor_metrics: list[FlavorMetric] = Field(
        ...,
        min_length=1,
        description="At least one flavor metric is required"
    )
    computed_at: datetime
    generation: Optional[str] = Field(None, description="Run that produced this entry")

    def to_row(self) -> dict:
        """Row payload for the `inventory_metrics` table."""
        return self.model_dump(mode="json", exclude={"id"})


class InventoryMetricWithProduct(InventoryMetric):
    """Snapshot entry enriched with product fields."""

    product_name: Optional[str] = None
    product_sku: Optional[str] = None


class InventoryMetricListResponse(BaseSchema):
    """The active snapshot."""

    data: list[InventoryMetricWithProduct]
    total: int
    computed_at: Optional[datetime] = None


# ===================
# RECOMPUTE
# ===================

class RecomputeParams(BaseSchema):
    """Tunable parameters of a recompute run."""

    lookback_weeks: int = Field(default=4, ge=1, le=104, description="Weeks of order history")
    lead_time_days: int = Field(default=7, ge=0, le=365, description="Supplier lead time")
    safety_factor: float = Field(default=1.0, ge=0, le=10, description="Safety multiplier")
    slow_percentile: float = Field(default=0.25, ge=0, le=1, description="Slow threshold percentile")
    fast_percentile: float = Field(default=0.75, ge=0, le=1, description="Fast threshold percentile")

    @classmethod
    def from_settings(cls, settings, **overrides) -> "RecomputeParams":
        """Deployment defaults, with any non-None override applied on top."""
        values = {
            "lookback_weeks": settings.metrics_lookback_weeks,
            "lead_time_days": settings.metrics_lead_time_days,
            "safety_factor": settings.metrics_safety_factor,
            "slow_percentile": settings.metrics_slow_percentile,
            "fast_percentile": settings.metrics_fast_percentile,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class RecomputeRequest(BaseSchema):
    """Optional per-call overrides for POST /recompute."""

    lookback_weeks: Optional[int] = Field(None, ge=1, le=104)
    lead_time_days: Optional[int] = Field(None, ge=0, le=365)
    safety_factor: Optional[float] = Field(None, ge=0, le=10)
    slow_percentile: Optional[float] = Field(None, ge=0, le=1)
    fast_percentile: Optional[float] = Field(None, ge=0, le=1)


class MetricsRunResponse(BaseSchema):
    """A completed recompute run (one snapshot generation)."""

    id: str = Field(..., description="Generation id")
    status: str = "COMPLETED"
    computed_at: datetime
    product_count: int
    flavor_count: int
    lookback_weeks: int
    lead_time_days: int
    safety_factor: float
    slow_percentile: float
    fast_percentile: float
    slow_threshold: float
    fast_threshold: float
    duration_ms: int = 0


# ===================
# RESTOCK ALERTS
# ===================

class ProductSummary(BaseSchema):
    """Product fields shown next to a restock alert."""

    id: str
    name: str
    sku: Optional[str] = None


class RestockAlert(FlavorMetric):
    """A snapshot entry joined with live stock."""

    product: ProductSummary
    current_stock: int
    is_low_stock: bool


class RestockAlertListResponse(BaseSchema):
    """Restock alerts, closest to stockout first."""

    data: list[RestockAlert]
    total: int
    low_stock_count: int
    velocity: Optional[SalesVelocity] = None
    computed_at: Optional[datetime] = None
