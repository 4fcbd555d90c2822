"""
Tests for paged table reads.
"""

from tests.conftest import MockSupabaseClient
from utils.pagination import fetch_all


def test_reads_past_the_page_size():
    client = MockSupabaseClient()
    client.set_table_data("orders", [{"id": f"{i:04d}"} for i in range(25)])

    rows = fetch_all(lambda: client.table("orders").select("id").order("id"), batch_size=10)

    assert [r["id"] for r in rows] == [f"{i:04d}" for i in range(25)]
    # 10 + 10 + 5
    assert client.table("orders").calls == ["select"] * 3


def test_exact_multiple_needs_one_extra_request():
    client = MockSupabaseClient()
    client.set_table_data("orders", [{"id": str(i)} for i in range(20)])

    rows = fetch_all(lambda: client.table("orders").select("id"), batch_size=10)

    assert len(rows) == 20
    assert len(client.table("orders").calls) == 3


def test_empty_table():
    client = MockSupabaseClient()
    assert fetch_all(lambda: client.table("orders").select("id")) == []
