"""Models package - re-exports all models for convenient imports."""

from brainer.models.base import Base, TimestampMixin
from brainer.models.note import (
    EMBEDDING_DIMENSION,
    Note,
    NoteTag,
    Tag,
    TranscriptionStatus,
)
from brainer.models.user import SubscriptionPlan, User

__all__ = [
    "Base",
    "TimestampMixin",
    "EMBEDDING_DIMENSION",
    "Note",
    "NoteTag",
    "Tag",
    "TranscriptionStatus",
    "SubscriptionPlan",
    "User",
]
