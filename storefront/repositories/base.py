"""
Base repository with common read operations.
Implements the Repository pattern for data access abstraction.
"""
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository providing common database operations.

    Subclasses should set the `model` class attribute to the SQLAlchemy model.
    Writes that change an order's lifecycle state are NOT offered here; they
    live on the concrete repositories as conditional updates.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, id: UUID | str) -> ModelType | None:
        """Get a single record by its primary key, reloaded from the database."""
        return await self.session.get(self.model, id, populate_existing=True)
