"""
Tests for alert_service — restock alerts from the active snapshot.
"""

import math
from unittest.mock import patch

import pytest

from config import settings
from models.inventory_metric import RecomputeParams, SalesVelocity
from services.alert_service import (
    ALLOWED_VELOCITIES,
    get_restock_alert_service,
    parse_velocity_filter,
)
from services.metrics_service import get_inventory_metrics_service
from exceptions import InvalidVelocityError
from tests.factories import OrderFactory, ProductFactory


@pytest.fixture
def catalog(mock_db):
    """Three products: runs out in 7 days, in 70 days, and never."""
    mock_db.set_table_data("products", [
        ProductFactory.create(id="p-low", name="Alpha", stock=2),
        ProductFactory.create(id="p-mid", name="Bravo", stock=20),
        ProductFactory.create(id="p-none", name="Charlie", stock=1),
    ])
    mock_db.set_table_data("orders", [
        OrderFactory.create(items=[("p-low", None, 8), ("p-mid", None, 8)]),
    ])
    get_inventory_metrics_service().recompute(RecomputeParams())
    return mock_db


class TestParseVelocityFilter:
    """Tests for filter validation."""

    @pytest.mark.parametrize("value", ALLOWED_VELOCITIES)
    def test_accepts_known_labels(self, value):
        assert parse_velocity_filter(value) == SalesVelocity(value)

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_means_no_filter(self, value):
        assert parse_velocity_filter(value) is None

    @pytest.mark.parametrize("value", ["Medium", "fast", "SLOW"])
    def test_rejects_unknown_labels(self, value):
        with pytest.raises(InvalidVelocityError) as exc_info:
            parse_velocity_filter(value)

        assert exc_info.value.status_code == 400
        assert value in exc_info.value.message
        assert exc_info.value.details["valid"] == ["Fast", "Average", "Slow"]


class TestGetRestockAlerts:
    """Tests for the alert query."""

    def test_sorted_by_days_remaining_with_never_last(self, catalog):
        response = get_restock_alert_service().get_restock_alerts()

        assert [a.product.id for a in response.data] == ["p-low", "p-mid", "p-none"]
        assert response.data[0].days_of_stock_remaining == 7
        assert response.data[1].days_of_stock_remaining == 70
        assert math.isinf(response.data[2].days_of_stock_remaining)
        assert response.total == 3

    def test_low_stock_flags(self, catalog):
        response = get_restock_alert_service().get_restock_alerts()
        flags = {a.product.id: a.is_low_stock for a in response.data}

        assert flags == {"p-low": True, "p-mid": False, "p-none": True}
        assert response.low_stock_count == 2

    def test_low_stock_threshold_from_settings(self, catalog):
        with patch.object(settings, "low_stock_threshold", 25):
            response = get_restock_alert_service().get_restock_alerts()

        assert response.low_stock_count == 3

    def test_low_stock_only(self, catalog):
        response = get_restock_alert_service().get_restock_alerts(low_stock_only=True)
        assert [a.product.id for a in response.data] == ["p-low", "p-none"]

    def test_velocity_filter(self, catalog):
        response = get_restock_alert_service().get_restock_alerts(velocity="Slow")

        assert [a.product.id for a in response.data] == ["p-none"]
        assert response.velocity == SalesVelocity.SLOW

    def test_invalid_velocity_rejected_before_any_query(self, mock_db):
        mock_db.fail("inventory_metric_runs", "select")

        with pytest.raises(InvalidVelocityError):
            get_restock_alert_service().get_restock_alerts(velocity="Medium")

        assert mock_db.table("inventory_metric_runs").calls == []
        assert mock_db.table("products").calls == []

    def test_live_stock_is_used(self, catalog):
        catalog.set_table_data("products", [
            ProductFactory.create(id="p-low", name="Alpha", stock=50),
            ProductFactory.create(id="p-mid", name="Bravo", stock=20),
            ProductFactory.create(id="p-none", name="Charlie", stock=1),
        ])

        response = get_restock_alert_service().get_restock_alerts()
        alert = next(a for a in response.data if a.product.id == "p-low")

        assert alert.current_stock == 50
        assert not alert.is_low_stock

    def test_deleted_product_is_skipped(self, catalog):
        catalog.set_table_data("products", [
            ProductFactory.create(id="p-mid", name="Bravo", stock=20),
        ])

        response = get_restock_alert_service().get_restock_alerts()

        assert [a.product.id for a in response.data] == ["p-mid"]

    def test_removed_flavor_falls_back_to_product_stock(self, mock_db):
        mock_db.set_table_data("products", [
            ProductFactory.create_flavored({"Mint": 1}, id="p1", name="Delta", stock=3),
        ])
        mock_db.set_table_data("orders", [])
        get_inventory_metrics_service().recompute(RecomputeParams())

        mock_db.set_table_data("products", [
            ProductFactory.create_flavored({"Mango": 40}, id="p1", name="Delta", stock=3),
        ])
        response = get_restock_alert_service().get_restock_alerts()

        assert response.data[0].flavor_name == "Mint"
        assert response.data[0].current_stock == 3

    def test_flavored_alerts_carry_flavor_stock(self, mock_db):
        mock_db.set_table_data("products", [
            ProductFactory.create_flavored({"Mint": 2, "Mango": 9}, id="p1", name="Delta"),
        ])
        mock_db.set_table_data("orders", [
            OrderFactory.create(items=[("p1", "Mint", 4), ("p1", "Mango", 4)]),
        ])
        get_inventory_metrics_service().recompute(RecomputeParams())

        response = get_restock_alert_service().get_restock_alerts()

        assert [(a.flavor_name, a.current_stock) for a in response.data] == [
            ("Mint", 2), ("Mango", 9)
        ]

    def test_no_snapshot_yet(self, mock_db):
        response = get_restock_alert_service().get_restock_alerts()

        assert response.data == []
        assert response.total == 0
        assert response.computed_at is None
