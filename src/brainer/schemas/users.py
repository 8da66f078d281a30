"""User and usage schemas"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from brainer.models import SubscriptionPlan


class UserSync(BaseModel):
    """Body of POST /users/sync, sent by the client after sign-in."""

    id: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., min_length=3, max_length=255)
    name: str | None = Field(None, max_length=100)


class UserRead(BaseModel):
    id: str
    email: str
    name: str | None = None
    subscription_plan: SubscriptionPlan

    model_config = ConfigDict(from_attributes=True)


class UsageCounts(BaseModel):
    notes: int
    ai_summaries: int
    voice_transcriptions: int
    screenshots: int
    embeddings: int


class UsageStats(BaseModel):
    """Counts, limits (-1 = unlimited) and percentage of each limit used."""

    plan: SubscriptionPlan
    usage: UsageCounts
    limits: UsageCounts
    percentages: dict[str, float]
