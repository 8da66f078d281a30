"""
User Model

Identity is owned by the external auth provider; this table only mirrors
the uid/email and carries subscription plan plus monthly usage counters.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from brainer.models.base import Base, TimestampMixin, utcnow


class SubscriptionPlan(str, enum.Enum):
    FREE = "FREE"
    PRO = "PRO"
    TEAM = "TEAM"


class User(Base, TimestampMixin):
    """
    User entity with usage accounting.

    Attributes:
        id: Identity-provider uid (not generated here).
        subscription_plan: Plan used to look up usage limits.
        monthly_*: Counters for the current calendar month.
        last_usage_reset: When the counters were last zeroed.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    subscription_plan: Mapped[SubscriptionPlan] = mapped_column(
        Enum(SubscriptionPlan, native_enum=False, length=10),
        default=SubscriptionPlan.FREE,
        nullable=False,
    )

    monthly_notes_created: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    monthly_ai_summaries: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    monthly_voice_transcriptions: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    monthly_screenshots: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    monthly_embeddings: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_usage_reset: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(id='{self.id}', plan={self.subscription_plan.value})>"
