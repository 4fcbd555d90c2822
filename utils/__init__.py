"""
Shared helpers.
"""

from utils.pagination import fetch_all, FETCH_BATCH_SIZE

__all__ = ["fetch_all", "FETCH_BATCH_SIZE"]
