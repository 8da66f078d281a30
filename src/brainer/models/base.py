"""
SQLAlchemy Base Models

Provides the declarative base and reusable mixins for all ORM models.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current time, used for Python-side defaults."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base class for all SQLAlchemy ORM models."""

    pass


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at timestamp fields.

    Behavior:
        - created_at: Set on INSERT
        - updated_at: Set on INSERT and refreshed on any ORM UPDATE

    Note:
        Python-side defaults (not server_default) so the values are known
        without a refresh round-trip. Uses timezone-aware timestamps.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,  # Automatically set on any UPDATE
        nullable=False,
        index=True,
    )
