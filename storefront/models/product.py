"""
Product model - catalog entry, read-only from the order core's point of view.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from storefront.core.database import Base
from storefront.models.order import utcnow


class Product(Base):
    """Catalog product. Prices are integer minor units."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product {self.slug}>"
