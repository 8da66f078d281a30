"""
Note Schemas

Pydantic models for Note API request/response validation.
Separates concerns: NoteCreate (input), NoteUpdate (partial), NoteRead (output).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from brainer.models import TranscriptionStatus
from brainer.schemas.tags import TagRead


class NoteCreate(BaseModel):
    """Request schema for POST /notes."""

    title: str = Field(default="Untitled Note", max_length=200)
    content: str = Field(default="")
    tag_ids: list[uuid.UUID] = Field(default_factory=list)


class NoteUpdate(BaseModel):
    """
    Request schema for PUT /notes/{id}.

    All fields optional. ``tag_ids`` when present (even empty) replaces
    every tag association of the note.
    """

    title: str | None = Field(None, max_length=200)
    content: str | None = None
    tag_ids: list[uuid.UUID] | None = None


class NoteRead(BaseModel):
    """Full Note representation (embedding vector itself is never returned)."""

    id: uuid.UUID
    user_id: str
    title: str
    content: str

    summary: str | None = None
    key_points: list[str] | None = None
    summary_generated_at: datetime | None = None
    summary_tokens_used: int | None = None
    has_summary: bool = False

    has_embedding: bool = False
    embedding_model: str | None = None
    embedding_generated_at: datetime | None = None

    extracted_topics: dict[str, Any] | None = None
    topics_generated_at: datetime | None = None
    topics_tokens_used: int | None = None
    has_topics: bool = False

    transcription_job_id: str | None = None
    transcription_status: TranscriptionStatus = TranscriptionStatus.NOT_STARTED
    transcription_confidence: float | None = None
    is_processing: bool = False

    tags: list[TagRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)  # Enables ORM model conversion


class RegenerateRequest(BaseModel):
    """Body for the explicit enrichment endpoints (summarize/embedding/topics)."""

    force_regenerate: bool = False


class SummaryResponse(BaseModel):
    summary: str
    key_points: list[str]
    tokens_used: int
    generated_at: datetime | None = None
    cached: bool = False


class EmbeddingResponse(BaseModel):
    note_id: uuid.UUID
    model: str | None
    dimensions: int
    tokens_used: int
    generated_at: datetime | None = None
    cached: bool = False


class TopicsResponse(BaseModel):
    topics: list[str]
    concepts: list[str]
    suggested_tags: list[str]
    tokens_used: int
    generated_at: datetime | None = None
    cached: bool = False


class BackfillItem(BaseModel):
    note_id: uuid.UUID
    title: str
    success: bool
    error: str | None = None


class BackfillResponse(BaseModel):
    """Per-note report of a batch embedding run."""

    processed: int
    succeeded: int
    failed: int
    skipped: int
    results: list[BackfillItem]
