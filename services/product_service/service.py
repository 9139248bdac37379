from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from shared.exceptions import NotFoundError, ValidationError
from shared.money import line_total, quantize

from .repository import ProductRepository


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    quantity: int
    unit_price: Decimal

    @property
    def total(self) -> Decimal:
        return line_total(self.unit_price, self.quantity)


class ProductService:

    @staticmethod
    async def list_products(db: AsyncSession, query: str | None = None):
        products = await ProductRepository.get_active_products(db)
        if not query:
            return products
        # Any query word matching any word of the product name
        query_words = set(query.lower().split())
        return [p for p in products if query_words & set(p.name.lower().split())]

    @staticmethod
    async def get_product(db: AsyncSession, product_id: str):
        product = await ProductRepository.get_product_by_id(db, product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    @staticmethod
    async def price_cart(db: AsyncSession, quantities: dict[str, int]) -> list[PricedLine]:
        """Prices every cart line at the current catalogue price. Unknown and retired products are rejected."""
        products = await ProductRepository.get_products_by_ids(db, quantities.keys())
        lines = []
        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if product is None or not product.is_active:
                raise ValidationError(f"Product {product_id} is not available")
            lines.append(PricedLine(product_id=product_id, quantity=quantity, unit_price=quantize(product.price)))
        return lines
