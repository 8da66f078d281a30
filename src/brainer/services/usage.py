"""
Usage Service

Per-user monthly counters checked against the subscription plan limits.

Counters roll over lazily: the first read in a new calendar month zeroes
them. ``-1`` in a plan's limits means unlimited.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

from sqlalchemy.ext.asyncio import AsyncSession

from brainer.core.exceptions import UsageLimitExceeded
from brainer.models import SubscriptionPlan, User
from brainer.models.base import utcnow
from brainer.repositories import users as repo
from brainer.repositories.users import USAGE_COLUMNS

logger = logging.getLogger(__name__)

UNLIMITED: Final[int] = -1

USAGE_TYPES: Final[tuple[str, ...]] = tuple(USAGE_COLUMNS)

PLAN_LIMITS: Final[dict[SubscriptionPlan, dict[str, int]]] = {
    SubscriptionPlan.FREE: {
        "notes": 5,
        "ai_summaries": 0,
        "voice_transcriptions": 0,
        "screenshots": 2,
        "embeddings": 0,
    },
    SubscriptionPlan.PRO: {usage_type: UNLIMITED for usage_type in USAGE_COLUMNS},
    SubscriptionPlan.TEAM: {usage_type: UNLIMITED for usage_type in USAGE_COLUMNS},
}


@dataclass
class UsageCheck:
    can_perform: bool
    reason: str | None = None
    current_usage: int | None = None
    limit: int | None = None


def _counts(user: User) -> dict[str, int]:
    return {
        usage_type: getattr(user, column) for usage_type, column in USAGE_COLUMNS.items()
    }


async def get_user_usage(session: AsyncSession, user_id: str) -> User | None:
    """
    Load a user with up-to-date counters.

    Resets every counter when the stored reset date is in an earlier
    month (or year) than now.
    """
    user = await repo.get_user(session, user_id)
    if user is None:
        return None

    now = utcnow()
    last = user.last_usage_reset
    if (last.year, last.month) != (now.year, now.month):
        logger.info("Resetting monthly usage for user %s", user_id)
        await repo.reset_counters(session, user_id, now)
        for column in USAGE_COLUMNS.values():
            setattr(user, column, 0)
        user.last_usage_reset = now
    return user


async def can_perform_action(
    session: AsyncSession, user_id: str, usage_type: str
) -> UsageCheck:
    """Check one usage type against the user's plan limit."""
    if usage_type not in USAGE_COLUMNS:
        raise ValueError(f"Unknown usage type: {usage_type}")

    user = await get_user_usage(session, user_id)
    if user is None:
        return UsageCheck(can_perform=False, reason="User not found")

    current = getattr(user, USAGE_COLUMNS[usage_type])
    limit = PLAN_LIMITS[user.subscription_plan][usage_type]
    if limit == UNLIMITED:
        return UsageCheck(can_perform=True, current_usage=current, limit=limit)

    allowed = current < limit
    return UsageCheck(
        can_perform=allowed,
        reason=None if allowed else f"Monthly limit reached ({current}/{limit})",
        current_usage=current,
        limit=limit,
    )


async def increment_usage(session: AsyncSession, user_id: str, usage_type: str) -> bool:
    """Increment one counter if the limit allows it. Returns False otherwise."""
    check = await can_perform_action(session, user_id, usage_type)
    if not check.can_perform:
        return False
    await repo.increment_counter(session, user_id, usage_type)
    return True


async def ensure_can_perform(session: AsyncSession, user_id: str, usage_type: str) -> None:
    """Raise UsageLimitExceeded when the action is not allowed."""
    check = await can_perform_action(session, user_id, usage_type)
    if not check.can_perform:
        raise UsageLimitExceeded(check.reason or "Usage limit reached")


async def reset_monthly_usage(session: AsyncSession, user_id: str) -> None:
    await repo.reset_counters(session, user_id)


async def get_usage_stats(session: AsyncSession, user_id: str) -> dict | None:
    """Plan, counts, limits and percentage of each limit used (0 when unlimited)."""
    user = await get_user_usage(session, user_id)
    if user is None:
        return None

    counts = _counts(user)
    limits = PLAN_LIMITS[user.subscription_plan]
    percentages: dict[str, float] = {}
    for usage_type, count in counts.items():
        limit = limits[usage_type]
        if limit == UNLIMITED:
            percentages[usage_type] = 0.0
        elif limit == 0:
            percentages[usage_type] = 100.0 if count else 0.0
        else:
            percentages[usage_type] = round(min(count / limit * 100, 100.0), 1)

    return {
        "plan": user.subscription_plan,
        "usage": counts,
        "limits": dict(limits),
        "percentages": percentages,
    }
