"""
Product repository - read-only catalog lookups used by checkout.
"""
from sqlalchemy import select

from storefront.models.product import Product
from storefront.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    """Repository for Product model operations."""

    model = Product

    async def find_available_by_ids(self, ids: list[str]) -> list[Product]:
        """
        Get currently-available products among `ids`.

        Missing or unavailable ids are simply absent from the result; the
        caller detects the count mismatch.
        """
        if not ids:
            return []
        stmt = select(Product).where(
            Product.id.in_(ids),
            Product.is_available.is_(True),
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
