"""
InventoryMetricsService — restock metrics snapshot.

Recompute turns the product catalog and recent order history into one
InventoryMetric per product:

    avg                       = units sold in window / lookback_weeks
    reorder_point             = avg × (lead_time_days / 7) × safety_factor
    recommended_weekly_stock  = avg × safety_factor
    days_of_stock_remaining   = current_stock / avg × 7   (inf when avg == 0)
    sales_velocity            = percentile classification (velocity_service)

SNAPSHOT PUBLISHING:
  Every run writes its rows under a fresh generation id, then records the
  run in `inventory_metric_runs`. The newest completed run is the active
  generation. Only then are rows and run records older than the active run
  deleted. Readers always filter by the active generation, so they never
  see a half-built snapshot. A failed run leaves the previous generation
  active.

  Runs are serialized by a process-wide lock. An API trigger while one is
  in flight is rejected; the scheduled job waits for the lock instead.
"""

import math
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import uuid4
import structlog

from config import get_supabase_client, get_admin_client, settings
from models.inventory_metric import (
    FlavorMetric,
    InventoryMetric,
    InventoryMetricWithProduct,
    InventoryMetricListResponse,
    MetricsRunResponse,
    RecomputeParams,
)
from models.product import ProductStockView
from services.product_service import get_product_service
from services.sales_service import get_sales_service, SalesKey
from services.velocity_service import (
    VelocityThresholds,
    compute_thresholds,
    classify_velocity,
)
from exceptions import (
    DatabaseError,
    InvalidPercentileError,
    MetricsRunNotFoundError,
    RecomputeInProgressError,
    RecomputeTimeoutError,
)
from utils.pagination import fetch_all

logger = structlog.get_logger(__name__)

INSERT_BATCH_SIZE = 500
RUN_STATUS_COMPLETED = "COMPLETED"

_recompute_lock = threading.Lock()


class Deadline:
    """Wall-clock budget for one recompute run."""

    def __init__(self, timeout_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self._started = clock()

    @property
    def elapsed_ms(self) -> int:
        return int((self._clock() - self._started) * 1000)

    def check(self, phase: str) -> None:
        """Raise RecomputeTimeoutError once the budget is spent."""
        if self._clock() - self._started > self.timeout_seconds:
            raise RecomputeTimeoutError(self.timeout_seconds, phase)


# ===================
# PURE CALCULATIONS
# ===================

def compute_flavor_metric(
    flavor_name: Optional[str],
    current_stock: int,
    avg_weekly_sales: float,
    params: RecomputeParams,
    thresholds: VelocityThresholds,
) -> FlavorMetric:
    """Derive one flavor's restock metrics from its weekly sales rate."""
    if avg_weekly_sales > 0:
        # Negative stock (oversold) means the item is already out
        days_remaining = max(current_stock, 0) / avg_weekly_sales * 7
    else:
        days_remaining = math.inf

    return FlavorMetric(
        flavor_name=flavor_name,
        avg_weekly_sales=avg_weekly_sales,
        recommended_weekly_stock=avg_weekly_sales * params.safety_factor,
        reorder_point=avg_weekly_sales * (params.lead_time_days / 7) * params.safety_factor,
        days_of_stock_remaining=days_remaining,
        sales_velocity=classify_velocity(avg_weekly_sales, thresholds),
    )


def build_inventory_metrics(
    products: list[ProductStockView],
    units_sold: dict[SalesKey, float],
    params: RecomputeParams,
    computed_at: datetime,
    generation: Optional[str] = None,
    deadline: Optional[Deadline] = None,
) -> tuple[list[InventoryMetric], VelocityThresholds]:
    """
    Build a full snapshot from products and aggregated sales.

    Thresholds are computed once from every (product, flavor) rate before
    any item is classified.

    Args:
        products: Whole catalog
        units_sold: Output of SalesService.aggregate_units_sold
        params: Run parameters
        computed_at: Timestamp stamped on every entry
        generation: Run id stamped on every entry
        deadline: Checked once per product

    Returns:
        Tuple of (one InventoryMetric per product, thresholds used)
    """
    weekly_rates: dict[SalesKey, float] = {}
    for product in products:
        for flavor_name, _ in product.stock_items():
            key = (product.id, flavor_name)
            weekly_rates[key] = units_sold.get(key, 0.0) / params.lookback_weeks

    thresholds = compute_thresholds(
        weekly_rates.values(),
        params.slow_percentile,
        params.fast_percentile,
    )

    metrics = []
    for product in products:
        if deadline is not None:
            deadline.check("compute_metrics")

        flavor_metrics = [
            compute_flavor_metric(
                flavor_name,
                stock,
                weekly_rates[(product.id, flavor_name)],
                params,
                thresholds,
            )
            for flavor_name, stock in product.stock_items()
        ]

        metrics.append(InventoryMetric(
            product_id=product.id,
            flavor_metrics=flavor_metrics,
            computed_at=computed_at,
            generation=generation,
        ))

    return metrics, thresholds


# ===================
# SERVICE
# ===================

class InventoryMetricsService:
    """Computes, publishes and reads inventory metric snapshots."""

    def __init__(self):
        self.db = get_supabase_client()
        self.writer = get_admin_client() or self.db
        self.table = "inventory_metrics"
        self.runs_table = "inventory_metric_runs"
        self.product_service = get_product_service()
        self.sales_service = get_sales_service()

    # ===================
    # RECOMPUTE
    # ===================

    def recompute(
        self,
        params: Optional[RecomputeParams] = None,
        wait: bool = False,
    ) -> MetricsRunResponse:
        """
        Rebuild the whole snapshot.

        Args:
            params: Run parameters (deployment defaults when omitted)
            wait: Queue behind a running recompute for up to
                METRICS_RECOMPUTE_TIMEOUT_SECONDS instead of failing at once

        Returns:
            The published run

        Raises:
            InvalidPercentileError: slow_percentile above fast_percentile
            RecomputeInProgressError: Another run holds the lock
            RecomputeTimeoutError: Run exceeded its wall-clock budget
            DatabaseError: Any read or write failed
        """
        params = params or RecomputeParams.from_settings(settings)

        if params.slow_percentile > params.fast_percentile:
            raise InvalidPercentileError(
                "slow_percentile must not exceed fast_percentile",
                details={
                    "slow_percentile": params.slow_percentile,
                    "fast_percentile": params.fast_percentile,
                }
            )

        if wait:
            acquired = _recompute_lock.acquire(
                timeout=settings.metrics_recompute_timeout_seconds
            )
        else:
            acquired = _recompute_lock.acquire(blocking=False)

        if not acquired:
            logger.warning("recompute_rejected_already_running", waited=wait)
            raise RecomputeInProgressError()

        try:
            return self._recompute(params)
        finally:
            _recompute_lock.release()

    def _recompute(self, params: RecomputeParams) -> MetricsRunResponse:
        deadline = Deadline(settings.metrics_recompute_timeout_seconds)
        generation = str(uuid4())
        computed_at = datetime.now(timezone.utc)

        logger.info(
            "recompute_started",
            generation=generation,
            **params.model_dump()
        )

        products = self.product_service.get_all_stock_views()
        deadline.check("load_products")

        window_start = computed_at - timedelta(weeks=params.lookback_weeks)
        units_sold = self.sales_service.aggregate_units_sold(window_start)
        deadline.check("aggregate_sales")

        metrics, thresholds = build_inventory_metrics(
            products,
            units_sold,
            params,
            computed_at=computed_at,
            generation=generation,
            deadline=deadline,
        )

        run = MetricsRunResponse(
            id=generation,
            status=RUN_STATUS_COMPLETED,
            computed_at=computed_at,
            product_count=len(metrics),
            flavor_count=sum(len(m.flavor_metrics) for m in metrics),
            slow_threshold=thresholds.slow,
            fast_threshold=thresholds.fast,
            **params.model_dump(),
        )

        self._publish(run, metrics, deadline)

        run.duration_ms = deadline.elapsed_ms
        logger.info(
            "recompute_completed",
            generation=generation,
            products=run.product_count,
            flavors=run.flavor_count,
            slow_threshold=thresholds.slow,
            fast_threshold=thresholds.fast,
            duration_ms=run.duration_ms
        )
        return run

    def _publish(
        self,
        run: MetricsRunResponse,
        metrics: list[InventoryMetric],
        deadline: Deadline,
    ) -> None:
        """Write a generation, activate it, then drop every other generation."""
        rows = [m.to_row() for m in metrics]

        try:
            for start in range(0, len(rows), INSERT_BATCH_SIZE):
                self.writer.table(self.table).insert(
                    rows[start:start + INSERT_BATCH_SIZE]
                ).execute()
            deadline.check("write_snapshot")

            run_row = run.model_dump(mode="json")
            run_row["duration_ms"] = deadline.elapsed_ms
            self.writer.table(self.runs_table).insert(run_row).execute()

        except Exception as e:
            self._discard_generation(run.id)
            if isinstance(e, RecomputeTimeoutError):
                raise
            logger.error("publish_snapshot_failed", generation=run.id, error=str(e))
            raise DatabaseError("insert", str(e), details={"generation": run.id})

        logger.info("inventory_metrics_published", generation=run.id, rows=len(rows))

        self._purge_superseded(run.id)

    def _purge_superseded(self, generation: str) -> None:
        """
        Drop metric rows and run records older than the active run.

        The active run is re-read, not assumed to be `generation`: a run in
        another process may have published a newer one meanwhile. Failures
        are logged only, since the active generation is already readable;
        leftovers go with the next successful run.
        """
        try:
            active = self.get_active_run()
        except DatabaseError as e:
            logger.error("purge_stale_generations_failed", generation=generation, error=e.message)
            return

        if active is None:
            return

        if active.id != generation:
            logger.warning(
                "generation_superseded",
                generation=generation,
                active_generation=active.id
            )

        cutoff = active.computed_at.isoformat()

        try:
            (
                self.writer.table(self.table)
                .delete()
                .neq("generation", active.id)
                .lte("computed_at", cutoff)
                .execute()
            )
            (
                self.writer.table(self.runs_table)
                .delete()
                .neq("id", active.id)
                .lte("computed_at", cutoff)
                .execute()
            )
        except Exception as e:
            logger.error(
                "purge_stale_generations_failed",
                generation=generation,
                active_generation=active.id,
                error=str(e)
            )
            return

        logger.info("stale_generations_purged", active_generation=active.id)

    def _discard_generation(self, generation: str) -> None:
        """Remove rows of a generation that never became active."""
        try:
            self.writer.table(self.table).delete().eq("generation", generation).execute()
            logger.warning("unpublished_generation_discarded", generation=generation)
        except Exception as e:
            logger.error(
                "discard_generation_failed",
                generation=generation,
                error=str(e)
            )

    # ===================
    # READ OPERATIONS
    # ===================

    def get_active_run(self) -> Optional[MetricsRunResponse]:
        """Latest completed run, or None if metrics were never computed."""
        try:
            result = (
                self.db.table(self.runs_table)
                .select("*")
                .eq("status", RUN_STATUS_COMPLETED)
                .order("computed_at", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_active_run_failed", error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            return None
        return MetricsRunResponse(**result.data[0])

    def get_latest_run(self) -> MetricsRunResponse:
        """
        Latest completed run.

        Raises:
            MetricsRunNotFoundError: If metrics were never computed
        """
        run = self.get_active_run()
        if run is None:
            raise MetricsRunNotFoundError()
        return run

    def get_snapshot(self) -> tuple[Optional[MetricsRunResponse], list[InventoryMetric]]:
        """
        Active run and its metrics.

        If a newer run replaced the generation between the two reads, the
        read is retried once against the new generation.

        Returns:
            Tuple of (active run or None, metrics ordered by product id)
        """
        run, metrics = self._read_snapshot()
        if run is not None and not metrics and run.product_count > 0:
            logger.info("snapshot_generation_replaced_retrying", generation=run.id)
            run, metrics = self._read_snapshot()
        return run, metrics

    def _read_snapshot(self) -> tuple[Optional[MetricsRunResponse], list[InventoryMetric]]:
        run = self.get_active_run()
        if run is None:
            return None, []

        try:
            rows = fetch_all(
                lambda: self.db.table(self.table)
                .select("*")
                .eq("generation", run.id)
                .order("product_id")
            )
        except Exception as e:
            logger.error("get_snapshot_failed", generation=run.id, error=str(e))
            raise DatabaseError("select", str(e))

        return run, [InventoryMetric(**row) for row in rows]

    def list_metrics(self) -> InventoryMetricListResponse:
        """Active snapshot enriched with product name and SKU."""
        run, metrics = self.get_snapshot()
        products = self.product_service.get_stock_views_by_id() if metrics else {}

        data = []
        for metric in metrics:
            product = products.get(metric.product_id)
            data.append(InventoryMetricWithProduct(
                **metric.model_dump(),
                product_name=product.name if product else None,
                product_sku=product.sku if product else None,
            ))

        return InventoryMetricListResponse(
            data=data,
            total=len(data),
            computed_at=run.computed_at if run else None,
        )


# Singleton instance
_metrics_service: Optional[InventoryMetricsService] = None


def get_inventory_metrics_service() -> InventoryMetricsService:
    """Get or create InventoryMetricsService singleton instance."""
    global _metrics_service
    if _metrics_service is None:
        _metrics_service = InventoryMetricsService()
    return _metrics_service
