"""
Shared test fixtures.

The Supabase fake keeps rows in memory and applies the filters the services
use, so snapshot publishing and aggregation can be tested end to end.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are loaded at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
from contextlib import ExitStack
from datetime import datetime
from typing import Any, Callable, Generator, Optional
from unittest.mock import patch
from uuid import uuid4


# ===================
# MOCK SUPABASE CLIENT
# ===================

def _comparable(value: Any) -> Any:
    """Parse ISO timestamps so range filters compare instants, not strings."""
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Chainable query builder applied to an in-memory table on execute()."""

    def __init__(self, table: "MockSupabaseTable", action: str = "select", payload: Any = None):
        self._table = table
        self._action = action
        self._payload = payload
        self._filters: list[Callable[[dict], bool]] = []
        self._order: list[tuple[str, bool]] = []
        self._range: Optional[tuple[int, int]] = None
        self._limit: Optional[int] = None

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self._filters.append(lambda r: r.get(column) == value)
        return self

    def neq(self, column, value):
        # SQL semantics: NULL never matches
        self._filters.append(lambda r: r.get(column) is not None and r.get(column) != value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self._filters.append(lambda r: r.get(column) in allowed)
        return self

    def gte(self, column, value):
        bound = _comparable(value)
        self._filters.append(
            lambda r: r.get(column) is not None and _comparable(r.get(column)) >= bound
        )
        return self

    def lte(self, column, value):
        bound = _comparable(value)
        self._filters.append(
            lambda r: r.get(column) is not None and _comparable(r.get(column)) <= bound
        )
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order.append((column, desc))
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def execute(self) -> MockSupabaseResponse:
        self._table.check_failure(self._action)
        self._table.calls.append(self._action)

        if self._action == "insert":
            rows = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for row in rows:
                stored = dict(row)
                stored.setdefault("id", str(uuid4()))
                stored.setdefault("created_at", datetime.utcnow().isoformat() + "Z")
                self._table.rows.append(stored)
                inserted.append(dict(stored))
            return MockSupabaseResponse(data=inserted)

        if self._action == "delete":
            removed = [r for r in self._table.rows if self._matches(r)]
            self._table.rows = [r for r in self._table.rows if not self._matches(r)]
            return MockSupabaseResponse(data=removed)

        rows = [dict(r) for r in self._table.rows if self._matches(r)]
        for column, desc in reversed(self._order):
            rows.sort(
                key=lambda r: (r.get(column) is None, _comparable(r.get(column))),
                reverse=desc
            )
        total = len(rows)
        if self._range is not None:
            rows = rows[self._range[0]:self._range[1] + 1]
        if self._limit is not None:
            rows = rows[:self._limit]
        return MockSupabaseResponse(data=rows, count=total)


class MockSupabaseTable:
    """In-memory table with optional failure injection."""

    def __init__(self, rows: list = None):
        self.rows: list[dict] = [dict(r) for r in (rows or [])]
        self.fail_actions: set[str] = set()
        self.calls: list[str] = []

    def check_failure(self, action: str) -> None:
        if action in self.fail_actions:
            raise Exception(f"connection refused during {action}")

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self, "select")

    def insert(self, data):
        return MockSupabaseQuery(self, "insert", data)

    def delete(self):
        return MockSupabaseQuery(self, "delete")


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}

    def set_table_data(self, table_name: str, data: list):
        """Replace the rows of a table."""
        self._tables[table_name] = MockSupabaseTable(data)

    def rows(self, table_name: str) -> list[dict]:
        """Current rows of a table."""
        return self.table(table_name).rows

    def fail(self, table_name: str, *actions: str):
        """Make the given actions on a table raise."""
        self.table(table_name).fail_actions.update(actions)

    def table(self, name: str) -> MockSupabaseTable:
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable()
        return self._tables[name]


# ===================
# FIXTURES
# ===================

SERVICE_MODULES = [
    "services.product_service",
    "services.sales_service",
    "services.metrics_service",
]

SINGLETONS = [
    ("services.product_service", "_product_service"),
    ("services.sales_service", "_sales_service"),
    ("services.metrics_service", "_metrics_service"),
    ("services.alert_service", "_alert_service"),
    ("services.export_service", "_export_service"),
    ("services.report_service", "_report_service"),
]


def reset_service_singletons():
    """Drop cached service instances so they pick up the current mocks."""
    import importlib
    for module_name, attr in SINGLETONS:
        setattr(importlib.import_module(module_name), attr, None)


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "name": "Mango Ice", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db):
            mock_db.set_table_data("products", [...])
            # Now every service gets the mock from get_supabase_client()
    """
    with ExitStack() as stack:
        for module in SERVICE_MODULES:
            stack.enter_context(
                patch(f"{module}.get_supabase_client", return_value=mock_supabase)
            )
        stack.enter_context(
            patch("services.metrics_service.get_admin_client", return_value=None)
        )
        reset_service_singletons()
        yield mock_supabase
        reset_service_singletons()


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    The lifespan (database check, scheduler) is not run.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/inventory-metrics/restock-alerts")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
