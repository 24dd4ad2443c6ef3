"""Base repository with common CRUD operations."""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.db.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Generic async repository over one ORM model keyed by ``pk_field``.

    Repositories flush but never commit; the caller owns the transaction.
    """

    model_class: type[T]
    pk_field: str

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, pk_value: str) -> T | None:
        return await self.session.get(self.model_class, pk_value)

    async def create(self, **kwargs: Any) -> T:
        row = self.model_class(**kwargs)
        self.session.add(row)
        await self.session.flush()
        return row

    async def update(self, row: T, **kwargs: Any) -> T:
        for key, value in kwargs.items():
            setattr(row, key, value)
        await self.session.flush()
        return row

    async def upsert(self, pk_value: str, **kwargs: Any) -> T:
        """Update the row with *pk_value* or create it."""
        row = await self.get(pk_value)
        if row is None:
            return await self.create(**{self.pk_field: pk_value, **kwargs})
        return await self.update(row, **kwargs)

    async def delete(self, pk_value: str) -> bool:
        row = await self.get(pk_value)
        if row is None:
            return False
        await self.session.delete(row)
        await self.session.flush()
        return True

    async def list_by_field(self, field: str, value: Any) -> list[T]:
        stmt = select(self.model_class).where(getattr(self.model_class, field) == value)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
