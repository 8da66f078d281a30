"""
Note Models

Core entities for captured content: notes with their derived AI fields,
tags, and the note/tag association. Uses the pgvector extension for
similarity queries on note embeddings.

Tables:
    notes     - Notes with summary, embedding, topic and transcription fields.
    tags      - Global tag catalogue (unique lower-case names).
    note_tags - Many-to-many join between notes and tags.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brainer.models.base import Base, TimestampMixin, utcnow

# text-embedding-3-small output size
EMBEDDING_DIMENSION: int = 1536


class TranscriptionStatus(str, enum.Enum):
    """Lifecycle of a voice note's external transcription job."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (TranscriptionStatus.COMPLETED, TranscriptionStatus.FAILED)


class Note(Base, TimestampMixin):
    """
    Note entity, the aggregate root every enrichment step writes into.

    Each derived field group (summary, embedding, topics) carries a
    ``has_*`` flag. The flag and its content column are always written in
    the same UPDATE statement, and a CHECK constraint rejects any row where
    they disagree.

    Attributes:
        id: UUID primary key (generated Python-side).
        user_id: Owning user (identity-provider uid).
        title: Note title.
        content: Free text, may contain markdown produced by upload handlers.
        summary / key_points: AI summary and its bullet points.
        embedding: 1536-dim vector (nullable until generated).
        extracted_topics: ``{"topics", "concepts", "suggested_tags"}`` blob.
        transcription_*: External transcription job bookkeeping.
        is_processing: True while a transcription job is outstanding.
        tags: Linked Tag rows (read-only view over note_tags).
    """

    __tablename__ = "notes"
    __table_args__ = (
        CheckConstraint(
            "has_embedding = (embedding IS NOT NULL)",
            name="ck_notes_embedding_flag",
        ),
        CheckConstraint(
            "has_summary = (summary IS NOT NULL)",
            name="ck_notes_summary_flag",
        ),
        CheckConstraint(
            "has_topics = (extracted_topics IS NOT NULL)",
            name="ck_notes_topics_flag",
        ),
        CheckConstraint(
            "transcription_job_id IS NULL "
            "OR transcription_status IN ('IN_PROGRESS', 'COMPLETED', 'FAILED')",
            name="ck_notes_job_status",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # AI summary
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary_generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    summary_tokens_used: Mapped[int | None] = mapped_column(Integer, nullable=True)
    key_points: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    has_summary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Semantic search
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSION), nullable=True
    )
    embedding_generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    embedding_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    has_embedding: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Topic extraction
    extracted_topics: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    topics_generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    topics_tokens_used: Mapped[int | None] = mapped_column(Integer, nullable=True)
    has_topics: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Voice transcription
    transcription_job_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True
    )
    transcription_status: Mapped[TranscriptionStatus] = mapped_column(
        Enum(TranscriptionStatus, native_enum=False, length=20),
        default=TranscriptionStatus.NOT_STARTED,
        nullable=False,
    )
    transcription_s3_key: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    transcription_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_processing: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # selectin: async sessions cannot lazy-load on attribute access
    tags: Mapped[list[Tag]] = relationship(
        secondary="note_tags",
        lazy="selectin",
        viewonly=True,
        order_by="Tag.name",
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id!s:.8}, title='{(self.title or '')[:20]}...')>"


class Tag(Base):
    """Tag entity. Independent of note lifecycle; names are stored lower-case."""

    __tablename__ = "tags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False, default="#3B82F6")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Tag(name='{self.name}')>"


class NoteTag(Base):
    """Association row linking a note to a tag."""

    __tablename__ = "note_tags"

    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("notes.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    )
