"""
Product catalog reads.

The catalog is owned elsewhere; the metrics engine and the restock alert
query only need every product's flavors and live stock.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.product import ProductStockView
from exceptions import DatabaseError
from utils.pagination import fetch_all

logger = structlog.get_logger(__name__)

PRODUCT_STOCK_COLUMNS = "id, name, sku, stock, flavors"


class ProductService:
    """
    Product catalog reader.

    Returns products as ProductStockView so stock is always read through
    the tagged scalar/flavored variant.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "products"

    def get_all_stock_views(self) -> list[ProductStockView]:
        """
        Get every product with its stock.

        Returns:
            Products ordered by id

        Raises:
            DatabaseError: If the catalog cannot be read
        """
        logger.debug("getting_product_stock_views")

        try:
            rows = fetch_all(
                lambda: self.db.table(self.table)
                .select(PRODUCT_STOCK_COLUMNS)
                .order("id")
            )
        except Exception as e:
            logger.error("get_product_stock_views_failed", error=str(e))
            raise DatabaseError("select", str(e))

        products = [ProductStockView.from_row(row) for row in rows]

        logger.info("product_stock_views_retrieved", count=len(products))
        return products

    def get_stock_views_by_id(self) -> dict[str, ProductStockView]:
        """Get every product keyed by id."""
        return {p.id: p for p in self.get_all_stock_views()}


# Singleton instance for convenience
_product_service: Optional[ProductService] = None


def get_product_service() -> ProductService:
    """Get or create ProductService instance."""
    global _product_service
    if _product_service is None:
        _product_service = ProductService()
    return _product_service
