"""
Weekly inventory report.

Recomputes the metrics snapshot, renders it into a workbook and hands it
to the delivery channels. Computation and delivery fail independently: a
failed send never touches the snapshot that was just published.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import structlog

from config import settings
from models.inventory_metric import InventoryMetric, RecomputeParams
from models.product import ProductStockView
from models.report import InventoryReportRow, ReportAttachment, WeeklyReportResult
from services.metrics_service import get_inventory_metrics_service
from services.product_service import get_product_service
from services.export_service import get_export_service
from integrations.mailer import send_weekly_inventory_report
from integrations.telegram import send_report_summary
from exceptions import EmailDeliveryError, TelegramError

logger = structlog.get_logger(__name__)

REPORT_FILENAME = "inventory-report.xlsx"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_report_rows(
    metrics: list[InventoryMetric],
    products: dict[str, ProductStockView],
) -> list[InventoryReportRow]:
    """
    Flatten a snapshot into report lines.

    Entries whose product was deleted after the snapshot are skipped.

    Returns:
        One row per product × flavor, ordered by product name then flavor
    """
    rows = []
    for metric in metrics:
        product = products.get(metric.product_id)
        if product is None:
            logger.warning("report_product_missing", product_id=metric.product_id)
            continue

        for fm in metric.flavor_metrics:
            rows.append(InventoryReportRow(
                product=product.name,
                sku=product.sku or "N/A",
                flavor=fm.flavor_name or "N/A",
                current_stock=product.stock_for(fm.flavor_name),
                avg_weekly=round_half_up(fm.avg_weekly_sales),
                reorder_point=round_half_up(fm.reorder_point),
                velocity=fm.sales_velocity.value,
            ))

    rows.sort(key=lambda r: (r.product, r.flavor))
    return rows


class InventoryReportService:
    """Builds and delivers the weekly inventory report."""

    def __init__(self):
        self.metrics_service = get_inventory_metrics_service()
        self.product_service = get_product_service()
        self.export_service = get_export_service()

    def run_weekly_report(
        self,
        params: Optional[RecomputeParams] = None,
        wait: bool = False,
    ) -> WeeklyReportResult:
        """
        Recompute, render and deliver.

        Args:
            params: Recompute parameters (deployment defaults when omitted)
            wait: Wait for a running recompute to finish instead of failing

        Returns:
            WeeklyReportResult; `delivered` is False when the email failed

        Raises:
            AppError: If recompute or reading the snapshot fails
        """
        logger.info("weekly_report_started", wait=wait)

        run = self.metrics_service.recompute(params, wait=wait)
        _, metrics = self.metrics_service.get_snapshot()
        products = self.product_service.get_stock_views_by_id()

        rows = build_report_rows(metrics, products)
        threshold = settings.low_stock_threshold
        workbook = self.export_service.generate_inventory_report_excel(rows, threshold)

        attachment = ReportAttachment(
            filename=REPORT_FILENAME,
            content=workbook.getvalue(),
        )

        delivered, delivery_error = self._deliver_email(attachment)
        telegram_sent = self._notify_telegram(run, rows, threshold)

        result = WeeklyReportResult(
            run=run,
            row_count=len(rows),
            low_stock_count=sum(1 for r in rows if r.current_stock < threshold),
            delivered=delivered,
            delivery_error=delivery_error,
            telegram_sent=telegram_sent,
        )

        logger.info(
            "weekly_report_completed",
            generation=run.id,
            rows=result.row_count,
            low_stock=result.low_stock_count,
            delivered=delivered,
            telegram_sent=telegram_sent
        )
        return result

    def _deliver_email(self, attachment: ReportAttachment) -> tuple[bool, Optional[str]]:
        try:
            send_weekly_inventory_report(attachment)
            return True, None
        except EmailDeliveryError as e:
            # Not retried here; the snapshot stays published
            logger.error("weekly_report_delivery_failed", error=e.message, details=e.details)
            return False, e.message

    def _notify_telegram(self, run, rows: list[InventoryReportRow], threshold: int) -> bool:
        try:
            return send_report_summary(run, rows, threshold)
        except TelegramError as e:
            logger.warning("weekly_report_telegram_failed", error=e.message)
            return False


# Singleton instance
_report_service: Optional[InventoryReportService] = None


def get_inventory_report_service() -> InventoryReportService:
    """Get or create InventoryReportService singleton instance."""
    global _report_service
    if _report_service is None:
        _report_service = InventoryReportService()
    return _report_service
