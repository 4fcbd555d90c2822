"""
Tests for report_service — weekly report build and delivery.
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from models.inventory_metric import (
    FlavorMetric,
    InventoryMetric,
    RecomputeParams,
    SalesVelocity,
)
from models.product import ProductStockView
from models.report import XLSX_CONTENT_TYPE
from services.report_service import (
    REPORT_FILENAME,
    build_report_rows,
    get_inventory_report_service,
    round_half_up,
)
from services.metrics_service import get_inventory_metrics_service
from exceptions import DatabaseError, EmailDeliveryError, TelegramError
from tests.factories import OrderFactory, ProductFactory


NOW = datetime(2026, 10, 17, 2, 0, tzinfo=timezone.utc)


def flavor_metric(name, avg, reorder, velocity=SalesVelocity.AVERAGE):
    return FlavorMetric(
        flavor_name=name,
        avg_weekly_sales=avg,
        recommended_weekly_stock=avg,
        reorder_point=reorder,
        days_of_stock_remaining=None,
        sales_velocity=velocity,
    )


class TestRoundHalfUp:
    """Tests for report rounding."""

    @pytest.mark.parametrize("value,expected", [
        (0, 0),
        (0.49, 0),
        (0.5, 1),
        (2.5, 3),
        (3.5, 4),
        (1.75, 2),
    ])
    def test_rounds_halves_up(self, value, expected):
        assert round_half_up(value) == expected


class TestBuildReportRows:
    """Tests for flattening a snapshot."""

    def test_rows_per_flavor_sorted_by_product_and_flavor(self):
        products = {
            "p1": ProductStockView.from_row(
                ProductFactory.create_flavored({"Mint": 3, "Apple": 8}, id="p1", name="Zeta", sku="Z-1")
            ),
            "p2": ProductStockView.from_row(ProductFactory.create(id="p2", name="Alpha", stock=12)),
        }
        metrics = [
            InventoryMetric(
                product_id="p1",
                computed_at=NOW,
                flavor_metrics=[flavor_metric("Mint", 2.5, 2.5), flavor_metric("Apple", 1.2, 1.2)],
            ),
            InventoryMetric(
                product_id="p2",
                computed_at=NOW,
                flavor_metrics=[flavor_metric(None, 0, 0, SalesVelocity.SLOW)],
            ),
        ]

        rows = build_report_rows(metrics, products)

        assert [(r.product, r.flavor) for r in rows] == [
            ("Alpha", "N/A"), ("Zeta", "Apple"), ("Zeta", "Mint")
        ]
        mint = rows[2]
        assert mint.sku == "Z-1"
        assert mint.current_stock == 3
        assert mint.avg_weekly == 3
        assert mint.reorder_point == 3
        assert rows[0].sku == "N/A"
        assert rows[0].velocity == "Slow"

    def test_deleted_products_are_skipped(self):
        metrics = [
            InventoryMetric(product_id="gone", computed_at=NOW, flavor_metrics=[flavor_metric(None, 1, 1)])
        ]
        assert build_report_rows(metrics, {}) == []


class TestRunWeeklyReport:
    """Tests for the full report run."""

    @pytest.fixture
    def seeded(self, mock_db):
        mock_db.set_table_data("products", [
            ProductFactory.create(id="p1", name="Alpha", stock=2),
            ProductFactory.create_flavored({"Mint": 10, "Mango": 0}, id="p2", name="Bravo"),
        ])
        mock_db.set_table_data("orders", [
            OrderFactory.create(items=[("p1", None, 4), ("p2", "Mint", 8)]),
        ])
        return mock_db

    def test_recomputes_and_mails_workbook(self, seeded):
        with patch("services.report_service.send_weekly_inventory_report") as mock_send, \
                patch("services.report_service.send_report_summary", return_value=True):
            result = get_inventory_report_service().run_weekly_report(RecomputeParams())

        attachment = mock_send.call_args[0][0]
        assert attachment.filename == REPORT_FILENAME == "inventory-report.xlsx"
        assert attachment.content_type == XLSX_CONTENT_TYPE
        assert attachment.content[:2] == b"PK"

        assert result.delivered is True
        assert result.delivery_error is None
        assert result.telegram_sent is True
        assert result.row_count == 3
        # Alpha (2) and Bravo / Mango (0)
        assert result.low_stock_count == 2
        assert result.run.id == get_inventory_metrics_service().get_latest_run().id

    def test_email_failure_keeps_snapshot(self, seeded):
        with patch(
            "services.report_service.send_weekly_inventory_report",
            side_effect=EmailDeliveryError("Failed to send email: connection refused")
        ), patch("services.report_service.send_report_summary", return_value=False):
            result = get_inventory_report_service().run_weekly_report(RecomputeParams())

        assert result.delivered is False
        assert "connection refused" in result.delivery_error
        run, metrics = get_inventory_metrics_service().get_snapshot()
        assert run.id == result.run.id
        assert len(metrics) == 2

    def test_telegram_failure_is_not_fatal(self, seeded):
        with patch("services.report_service.send_weekly_inventory_report"), \
                patch(
                    "services.report_service.send_report_summary",
                    side_effect=TelegramError("Telegram API error: chat not found")
                ):
            result = get_inventory_report_service().run_weekly_report(RecomputeParams())

        assert result.delivered is True
        assert result.telegram_sent is False

    def test_recompute_failure_skips_delivery(self, seeded):
        seeded.fail("orders", "select")

        with patch("services.report_service.send_weekly_inventory_report") as mock_send:
            with pytest.raises(DatabaseError):
                get_inventory_report_service().run_weekly_report(RecomputeParams())

        mock_send.assert_not_called()
