"""Tag repository: global tag catalogue with unique lower-case names."""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from brainer.models import Tag
from brainer.repositories.base import BaseRepository


class TagRepository(BaseRepository[Tag]):
    def __init__(self) -> None:
        super().__init__(Tag)

    async def list_all(self, session: AsyncSession) -> Sequence[Tag]:
        result = await session.execute(select(Tag).order_by(Tag.name))
        return result.scalars().all()

    async def get_by_name(self, session: AsyncSession, name: str) -> Tag | None:
        result = await session.execute(select(Tag).where(Tag.name == name.lower()))
        return result.scalars().first()

    async def existing_ids(
        self, session: AsyncSession, tag_ids: Sequence[uuid.UUID]
    ) -> set[uuid.UUID]:
        """Subset of ``tag_ids`` that actually exist."""
        if not tag_ids:
            return set()
        result = await session.execute(select(Tag.id).where(Tag.id.in_(tag_ids)))
        return set(result.scalars().all())


tag_repository = TagRepository()


async def list_tags(session: AsyncSession) -> Sequence[Tag]:
    """All tags ordered by name."""
    return await tag_repository.list_all(session)


async def get_by_name(session: AsyncSession, name: str) -> Tag | None:
    return await tag_repository.get_by_name(session, name)


async def create_tag(session: AsyncSession, name: str, color: str) -> Tag:
    """Insert a tag; the name is stored lower-cased."""
    return await tag_repository.create(session, {"name": name.lower(), "color": color})


async def existing_ids(
    session: AsyncSession, tag_ids: Sequence[uuid.UUID]
) -> set[uuid.UUID]:
    return await tag_repository.existing_ids(session, tag_ids)
