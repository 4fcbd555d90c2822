"""
Tests for sales_service — units sold per (product, flavor).
"""

from datetime import datetime, timedelta, timezone

import pytest

from services.sales_service import get_sales_service, sum_line_items
from exceptions import DatabaseError
from tests.factories import OrderFactory


def window_start(weeks: int = 4) -> datetime:
    return datetime.now(timezone.utc) - timedelta(weeks=weeks)


class TestSumLineItems:
    """Tests for line item summation."""

    def test_sums_across_orders(self):
        orders = [
            OrderFactory.create(items=[("p1", None, 2), ("p2", "Mint", 1)]),
            OrderFactory.create(items=[("p1", None, 3)]),
        ]

        assert sum_line_items(orders) == {("p1", None): 5.0, ("p2", "Mint"): 1.0}

    def test_flavors_are_separate_keys(self):
        orders = [OrderFactory.create(items=[("p1", "Mint", 2), ("p1", "Mango", 7)])]

        totals = sum_line_items(orders)

        assert totals[("p1", "Mint")] == 2
        assert totals[("p1", "Mango")] == 7

    def test_empty_flavor_counts_as_unflavored(self):
        orders = [OrderFactory.create(items=[("p1", "", 2), ("p1", None, 1)])]
        assert sum_line_items(orders) == {("p1", None): 3.0}

    def test_items_without_product_are_skipped(self):
        orders = [OrderFactory.create(items=[(None, None, 4), ("p1", None, 1)])]
        assert sum_line_items(orders) == {("p1", None): 1.0}

    def test_zero_totals_are_dropped(self):
        orders = [OrderFactory.create(items=[("p1", None, 0)])]
        assert sum_line_items(orders) == {}

    def test_orders_without_items(self):
        assert sum_line_items([{"id": "o1", "order_items": None}, {"id": "o2"}]) == {}


class TestAggregateUnitsSold:
    """Tests for the order query."""

    def test_counts_completed_statuses_only(self, mock_db):
        mock_db.set_table_data("orders", [
            OrderFactory.create(items=[("p1", None, 1)], status="Delivered"),
            OrderFactory.create(items=[("p1", None, 2)], status="Pickedup"),
            OrderFactory.create(items=[("p1", None, 4)], status="Order Ready"),
            OrderFactory.create(items=[("p1", None, 8)], status="Pending"),
            OrderFactory.create(items=[("p1", None, 16)], status="Processing"),
            OrderFactory.create(items=[("p1", None, 32)], status="Cancelled"),
        ])

        totals = get_sales_service().aggregate_units_sold(window_start())

        assert totals == {("p1", None): 7.0}

    def test_window_start_is_inclusive(self, mock_db):
        start = window_start()
        mock_db.set_table_data("orders", [
            OrderFactory.create(items=[("p1", None, 1)], created_at=start.isoformat()),
            OrderFactory.create(
                items=[("p1", None, 10)],
                created_at=(start - timedelta(seconds=1)).isoformat()
            ),
        ])

        assert get_sales_service().aggregate_units_sold(start) == {("p1", None): 1.0}

    def test_no_orders(self, mock_db):
        mock_db.set_table_data("orders", [])
        assert get_sales_service().aggregate_units_sold(window_start()) == {}

    def test_read_failure_raises_database_error(self, mock_db):
        mock_db.fail("orders", "select")

        with pytest.raises(DatabaseError) as exc_info:
            get_sales_service().aggregate_units_sold(window_start())

        assert exc_info.value.details["operation"] == "select"
