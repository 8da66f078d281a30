"""
Shared repository plumbing.

Every repository works on a session owned by the caller (the request
dependency or a script). Writes commit immediately. Each write runs in its
own SAVEPOINT, so a failed write undoes only itself: rows the caller already
holds stay loaded and the session keeps serving the rest of the request.
"""

from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from brainer.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Lookup, insert and field-patch for a model keyed on ``id``.

    Subclasses add their own queries (ownership checks, tag joins, counter
    updates) and wrap anything they write by hand in ``_transaction``.
    """

    def __init__(self, model: type[ModelType]):
        self.model = model

    @asynccontextmanager
    async def _transaction(self, session: AsyncSession) -> AsyncIterator[None]:
        """
        Run the block inside a SAVEPOINT, then commit.

        An error in the block rolls back to the savepoint only, leaving
        objects the caller holds loaded. Only a failing COMMIT rolls back
        the whole transaction.
        """
        async with session.begin_nested():
            yield
        try:
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    async def get_by_id(self, session: AsyncSession, id: Any) -> ModelType | None:
        result = await session.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalars().first()

    async def page(
        self,
        session: AsyncSession,
        offset: int = 0,
        limit: int = 100,
    ) -> Sequence[ModelType]:
        """
        One page of rows in primary-key order.

        The order is fixed so that walking pages with a growing offset
        visits each row exactly once while no rows are inserted.
        """
        stmt = (
            select(self.model)
            .order_by(self.model.id)  # type: ignore[attr-defined]
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def create(self, session: AsyncSession, values: Mapping[str, Any]) -> ModelType:
        """Insert a row from column values and return it with server defaults loaded."""
        obj = self.model(**values)
        async with self._transaction(session):
            session.add(obj)
        await session.refresh(obj)
        return obj

    async def update(
        self,
        session: AsyncSession,
        obj: ModelType,
        changes: Mapping[str, Any],
    ) -> ModelType:
        """Apply ``changes`` to a loaded row; keys absent from the mapping are left alone."""
        async with self._transaction(session):
            for field, value in changes.items():
                setattr(obj, field, value)
        await session.refresh(obj)
        return obj
