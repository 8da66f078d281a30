"""
User Repository

Mirror of identity-provider users plus their monthly usage counters.
Counter increments are single ``col = col + 1`` statements so concurrent
requests never lose an update.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from brainer.models import SubscriptionPlan, User
from brainer.models.base import utcnow
from brainer.repositories.base import BaseRepository

# usage type -> counter column
USAGE_COLUMNS: dict[str, str] = {
    "notes": "monthly_notes_created",
    "ai_summaries": "monthly_ai_summaries",
    "voice_transcriptions": "monthly_voice_transcriptions",
    "screenshots": "monthly_screenshots",
    "embeddings": "monthly_embeddings",
}


class UserRepository(BaseRepository[User]):
    def __init__(self) -> None:
        super().__init__(User)

    async def upsert(
        self,
        session: AsyncSession,
        user_id: str,
        email: str,
        name: str | None = None,
    ) -> User:
        """Create the user on first sign-in, otherwise refresh email/name."""
        user = await self.get_by_id(session, user_id)
        if user is None:
            return await self.create(
                session,
                {
                    "id": user_id,
                    "email": email,
                    "name": name,
                    "subscription_plan": SubscriptionPlan.FREE,
                    "last_usage_reset": utcnow(),
                },
            )
        changes: dict[str, object] = {"email": email}
        if name is not None:
            changes["name"] = name
        return await self.update(session, user, changes)

    async def reset_counters(
        self,
        session: AsyncSession,
        user_id: str,
        now: datetime | None = None,
    ) -> None:
        """Zero all monthly counters and stamp the reset date."""
        values: dict[str, object] = {column: 0 for column in USAGE_COLUMNS.values()}
        values["last_usage_reset"] = now or utcnow()
        async with self._transaction(session):
            await session.execute(update(User).where(User.id == user_id).values(**values))

    async def increment_counter(
        self, session: AsyncSession, user_id: str, usage_type: str
    ) -> None:
        """Atomically add one to the counter for ``usage_type``."""
        column = getattr(User, USAGE_COLUMNS[usage_type])
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values({column: column + 1})
            .execution_options(synchronize_session="fetch")
        )
        async with self._transaction(session):
            await session.execute(stmt)


user_repository = UserRepository()


async def get_user(session: AsyncSession, user_id: str) -> User | None:
    return await user_repository.get_by_id(session, user_id)


async def upsert_user(
    session: AsyncSession, user_id: str, email: str, name: str | None = None
) -> User:
    return await user_repository.upsert(session, user_id, email, name)


async def reset_counters(
    session: AsyncSession, user_id: str, now: datetime | None = None
) -> None:
    await user_repository.reset_counters(session, user_id, now)


async def increment_counter(session: AsyncSession, user_id: str, usage_type: str) -> None:
    await user_repository.increment_counter(session, user_id, usage_type)
