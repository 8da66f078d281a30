"""
Search Schemas

Request/response models for POST /search/similar.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class SimilarSearchRequest(BaseModel):
    """Request schema for semantic search endpoint."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="Search query text",
    )
    limit: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Number of results to return",
    )
    note_id: uuid.UUID | None = Field(
        default=None,
        description="Note to leave out of the results (e.g. the one being viewed)",
    )


class SimilarNote(BaseModel):
    id: uuid.UUID
    title: str
    snippet: str
    similarity: float
    created_at: datetime
    summary: str | None = None


class SimilarSearchResponse(BaseModel):
    results: list[SimilarNote]
    query: str
    tokens_used: int = 0
    fallback_mode: str | None = None
