"""
Helpers for reading whole tables through the Supabase REST API.

PostgREST caps every response (1000 rows by default), so full scans have to
walk the table in ranges.
"""

from typing import Callable

FETCH_BATCH_SIZE = 1000


def fetch_all(build_query: Callable[[], object], batch_size: int = FETCH_BATCH_SIZE) -> list[dict]:
    """
    Fetch every row matched by a query.

    Args:
        build_query: Returns a fresh, filtered and ordered query builder.
            Called once per batch since builders are consumed by execute().
        batch_size: Rows requested per round trip

    Returns:
        All rows, in query order
    """
    rows: list[dict] = []
    offset = 0

    while True:
        result = build_query().range(offset, offset + batch_size - 1).execute()
        batch = result.data or []
        rows.extend(batch)

        if len(batch) < batch_size:
            return rows
        offset += batch_size
