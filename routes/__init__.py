"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.inventory_metrics import router as inventory_metrics_router

__all__ = [
    "inventory_metrics_router",
]
