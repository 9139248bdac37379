from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from .models import Product

class ProductRepository:

    @staticmethod
    async def get_active_products(db: AsyncSession):
        result = await db.execute(
            select(Product).where(Product.is_active.is_(True)).order_by(Product.name)
        )
        return result.scalars().all()

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: str):
        result = await db.execute(select(Product).where(Product.id == product_id))
        return result.scalars().first()

    @staticmethod
    async def get_products_by_ids(db: AsyncSession, product_ids) -> dict[str, Product]:
        result = await db.execute(select(Product).where(Product.id.in_(list(product_ids))))
        return {product.id: product for product in result.scalars().all()}
