"""Base repository with the common async CRUD operations."""
from abc import ABC
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.shared.entities.base import BaseEntity

T = TypeVar("T", bound=BaseEntity)


class BaseRepository(ABC, Generic[T]):
    """Base repository bound to one request-scoped session."""

    model: Type[T]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, entity: T) -> T:
        """Create new entity."""
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def get_by_id(self, entity_id: str) -> Optional[T]:
        """Get entity by ID."""
        stmt = select(self.model).where(self.model.id == entity_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_by_id(self, entity_id: str, **kwargs: Any) -> Optional[T]:
        """Update entity by ID with field values."""
        stmt = (
            update(self.model)
            .where(self.model.id == entity_id)
            .values(**kwargs)
            .returning(self.model)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list(
        self,
        offset: int = 0,
        limit: Optional[int] = None,
        order_by: Optional[List[str]] = None,
        **filters: Any,
    ) -> List[T]:
        """List entities matching equality filters.

        ``order_by`` names columns; a leading ``-`` sorts descending.
        """
        stmt = select(self.model)

        for field_name, value in filters.items():
            if hasattr(self.model, field_name) and value is not None:
                stmt = stmt.where(getattr(self.model, field_name) == value)

        for name in order_by or []:
            if name.startswith("-"):
                stmt = stmt.order_by(getattr(self.model, name[1:]).desc())
            else:
                stmt = stmt.order_by(getattr(self.model, name).asc())

        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
