"""
Product catalog read models.

Products are owned by the catalog service; this service only reads them.
A product either carries its own flavor variants, each with a stock level,
or is unflavored with a single stock level. The two shapes are modelled as
an explicit tagged variant so callers never have to null-check flavors.
"""

from typing import Literal, Optional, Union
from pydantic import Field, field_validator

from models.base import BaseSchema


def coerce_stock(value) -> int:
    """Missing or null stock counts as zero."""
    if value is None:
        return 0
    return int(value)


class Flavor(BaseSchema):
    """A product variant with its own stock."""

    name: str = Field(..., min_length=1, description="Flavor name")
    stock: int = Field(default=0, description="Units on hand")
    price: Optional[float] = Field(None, description="Variant price, if different")

    @field_validator("stock", mode="before")
    @classmethod
    def default_stock(cls, v):
        return coerce_stock(v)


class ScalarStock(BaseSchema):
    """Unflavored product: one stock level for the whole product."""

    kind: Literal["scalar"] = "scalar"
    stock: int = 0

    @field_validator("stock", mode="before")
    @classmethod
    def default_stock(cls, v):
        return coerce_stock(v)


class FlavoredStock(BaseSchema):
    """Flavored product: every flavor carries its own stock."""

    kind: Literal["flavored"] = "flavored"
    flavors: list[Flavor] = Field(..., min_length=1)


ProductStock = Union[ScalarStock, FlavoredStock]


class ProductStockView(BaseSchema):
    """
    The slice of a product needed for inventory metrics.

    Built from a `products` row with `from_row`. `product_stock` keeps the
    top-level stock column even for flavored products; it is the fallback
    when a flavor named in a snapshot has since been removed.
    """

    id: str
    name: str
    sku: Optional[str] = None
    product_stock: int = 0
    stock: ProductStock = Field(..., discriminator="kind")

    @classmethod
    def from_row(cls, row: dict) -> "ProductStockView":
        """
        Build from a raw `products` row.

        A non-empty `flavors` list wins over the top-level `stock` column.
        """
        flavors = row.get("flavors") or []
        product_stock = coerce_stock(row.get("stock"))

        if flavors:
            stock: ProductStock = FlavoredStock(
                flavors=[Flavor(**f) for f in flavors]
            )
        else:
            stock = ScalarStock(stock=product_stock)

        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            sku=row.get("sku") or None,
            product_stock=product_stock,
            stock=stock,
        )

    @property
    def is_flavored(self) -> bool:
        return isinstance(self.stock, FlavoredStock)

    def stock_items(self) -> list[tuple[Optional[str], int]]:
        """
        (flavor name, stock) pairs to compute metrics for.

        Unflavored products yield a single pair with a None name.
        """
        if isinstance(self.stock, FlavoredStock):
            return [(f.name, f.stock) for f in self.stock.flavors]
        return [(None, self.stock.stock)]

    def stock_for(self, flavor_name: Optional[str]) -> int:
        """Live stock for a flavor, falling back to the product-level stock."""
        if isinstance(self.stock, FlavoredStock) and flavor_name is not None:
            for flavor in self.stock.flavors:
                if flavor.name == flavor_name:
                    return flavor.stock
        return self.product_stock
