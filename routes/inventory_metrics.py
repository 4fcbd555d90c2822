"""
Inventory metrics API routes.

Recompute trigger, snapshot reads, restock alerts and the on-demand weekly
report. All endpoints require the admin API key.
"""

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from config import settings
from models.inventory_metric import (
    InventoryMetricListResponse,
    MetricsRunResponse,
    RecomputeParams,
    RecomputeRequest,
    RestockAlertListResponse,
)
from models.report import WeeklyReportResult
from services.metrics_service import get_inventory_metrics_service
from services.alert_service import get_restock_alert_service
from services.report_service import get_inventory_report_service
from routes.dependencies import require_api_key
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/api/inventory-metrics",
    tags=["Inventory Metrics"],
    dependencies=[Depends(require_api_key)],
)


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def resolve_params(request: Optional[RecomputeRequest]) -> RecomputeParams:
    """Deployment defaults with the request's overrides applied."""
    overrides = request.model_dump() if request else {}
    return RecomputeParams.from_settings(settings, **overrides)


# ===================
# SNAPSHOT ROUTES
# ===================

@router.post("/recompute", response_model=MetricsRunResponse)
def recompute_metrics(request: Optional[RecomputeRequest] = Body(None)):
    """
    Rebuild the inventory metrics snapshot.

    Body fields are optional overrides of the deployment defaults:
    lookback_weeks, lead_time_days, safety_factor, slow_percentile,
    fast_percentile.

    Returns 409 if a recompute is already running.
    """
    try:
        service = get_inventory_metrics_service()
        run = service.recompute(resolve_params(request))

        logger.info("recompute_triggered_via_api", generation=run.id)

        return run

    except Exception as e:
        return handle_error(e)


@router.get("", response_model=InventoryMetricListResponse)
async def list_inventory_metrics():
    """
    Get the active snapshot.

    One entry per product with its flavor metrics. `days_of_stock_remaining`
    is null for items with no sales in the window.
    """
    try:
        service = get_inventory_metrics_service()
        return service.list_metrics()

    except Exception as e:
        return handle_error(e)


@router.get("/runs/latest", response_model=MetricsRunResponse)
async def get_latest_run():
    """
    Get the run that produced the active snapshot.

    Returns 404 if metrics were never computed.
    """
    try:
        service = get_inventory_metrics_service()
        return service.get_latest_run()

    except Exception as e:
        return handle_error(e)


# ===================
# RESTOCK ALERT ROUTES
# ===================

@router.get("/restock-alerts", response_model=RestockAlertListResponse)
async def get_restock_alerts(
    velocity: Optional[str] = Query(None, description="Filter by velocity: Fast, Average or Slow"),
    low_stock_only: bool = Query(False, description="Only items below the low stock threshold"),
):
    """
    List restock alerts, closest to stockout first.

    Items that have not sold in the window (no stockout expected) come last.
    An unknown velocity value is rejected with 400.
    """
    try:
        service = get_restock_alert_service()
        return service.get_restock_alerts(
            velocity=velocity,
            low_stock_only=low_stock_only,
        )

    except Exception as e:
        return handle_error(e)


# ===================
# REPORT ROUTES
# ===================

@router.post("/send-weekly-report", response_model=WeeklyReportResult)
def send_weekly_report(request: Optional[RecomputeRequest] = Body(None)):
    """
    Run the weekly report now.

    Recomputes metrics, builds the Excel report and emails it to the
    admin address. A failed email is reported in `delivered` and
    `delivery_error`; the recomputed snapshot is kept either way.
    """
    try:
        service = get_inventory_report_service()
        result = service.run_weekly_report(resolve_params(request))

        logger.info(
            "weekly_report_triggered_via_api",
            generation=result.run.id,
            delivered=result.delivered
        )

        return result

    except Exception as e:
        return handle_error(e)
