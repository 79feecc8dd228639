from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from catalog.models.product import Product


class ProductRepository:
    """Persistence for Product records."""

    @staticmethod
    async def create(session: AsyncSession, fields: dict) -> Product:
        """Insert a product; id and created_at are assigned here."""
        product = Product(**fields)
        session.add(product)
        await session.commit()
        await session.refresh(product)
        return product

    @staticmethod
    async def list_all(session: AsyncSession) -> List[Product]:
        result = await session.execute(
            select(Product).order_by(Product.created_at, Product.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_by_id(session: AsyncSession, product_id: str) -> Optional[Product]:
        result = await session.execute(
            select(Product).where(Product.id == product_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def update_by_id(
        session: AsyncSession,
        product_id: str,
        fields: dict
    ) -> Optional[Product]:
        """Merge the given fields into an existing product."""
        product = await ProductRepository.get_by_id(session, product_id)
        if not product:
            return None

        for key, value in fields.items():
            setattr(product, key, value)

        await session.commit()
        await session.refresh(product)
        return product

    @staticmethod
    async def delete_by_id(session: AsyncSession, product_id: str) -> Optional[Product]:
        """Delete a product and return it as it was before deletion."""
        product = await ProductRepository.get_by_id(session, product_id)
        if not product:
            return None

        await session.delete(product)
        await session.commit()
        return product
