"""
Notes API Router

REST endpoints for note CRUD and explicit AI enrichment
(summary, embedding, topics). All routes are scoped to the caller's
user id.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from brainer.api.deps import get_current_user_id
from brainer.api.errors import to_http_exception
from brainer.core.database import get_db
from brainer.core.exceptions import BrainerError
from brainer.models import EMBEDDING_DIMENSION
from brainer.schemas.notes import (
    EmbeddingResponse,
    NoteCreate,
    NoteRead,
    NoteUpdate,
    RegenerateRequest,
    SummaryResponse,
    TopicsResponse,
)
from brainer.services import lifecycle

router = APIRouter()


def _force(body: RegenerateRequest | None) -> bool:
    return bool(body and body.force_regenerate)


@router.get("/", response_model=list[NoteRead])
async def list_notes(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's notes, most recently updated first."""
    return await lifecycle.list_notes(db, user_id)


@router.post("/", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(
    note: NoteCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a new note.

    Substantial content is embedded synchronously on a best-effort basis;
    an embedding failure never fails the creation.
    """
    try:
        return await lifecycle.create_note(db, user_id, note)
    except BrainerError as e:
        raise to_http_exception(e, "Failed to create note") from e


@router.get("/{note_id}", response_model=NoteRead)
async def read_note(
    note_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve a single note by ID."""
    try:
        return await lifecycle.get_note(db, note_id, user_id)
    except BrainerError as e:
        raise to_http_exception(e, "Failed to fetch note") from e


@router.put("/{note_id}", response_model=NoteRead)
async def update_note(
    note_id: uuid.UUID,
    changes: NoteUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Update title/content; ``tag_ids`` replaces all tag links when present."""
    try:
        return await lifecycle.update_note(db, note_id, user_id, changes)
    except BrainerError as e:
        raise to_http_exception(e, "Failed to update note") from e


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete a note together with its tag links."""
    try:
        await lifecycle.delete_note(db, note_id, user_id)
    except BrainerError as e:
        raise to_http_exception(e, "Failed to delete note") from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{note_id}/summarize", response_model=SummaryResponse)
async def summarize_note(
    note_id: uuid.UUID,
    body: RegenerateRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Generate an AI summary for a note.

    Returns the stored summary without calling OpenAI unless
    ``force_regenerate`` is set.
    """
    try:
        note, cached = await lifecycle.summarize_note(
            db, note_id, user_id, force=_force(body)
        )
    except Exception as e:
        raise to_http_exception(e, "Failed to generate summary") from e

    return SummaryResponse(
        summary=note.summary or "",
        key_points=note.key_points or [],
        tokens_used=note.summary_tokens_used or 0,
        generated_at=note.summary_generated_at,
        cached=cached,
    )


@router.post("/{note_id}/embedding", response_model=EmbeddingResponse)
async def generate_embedding(
    note_id: uuid.UUID,
    body: RegenerateRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Generate (or regenerate with ``force_regenerate``) a note's embedding."""
    try:
        note, tokens, cached = await lifecycle.embed_note(
            db, note_id, user_id, force=_force(body)
        )
    except Exception as e:
        raise to_http_exception(e, "Failed to generate embedding") from e

    return EmbeddingResponse(
        note_id=note.id,
        model=note.embedding_model,
        dimensions=EMBEDDING_DIMENSION,
        tokens_used=tokens,
        generated_at=note.embedding_generated_at,
        cached=cached,
    )


@router.post("/{note_id}/topics", response_model=TopicsResponse)
async def extract_topics(
    note_id: uuid.UUID,
    body: RegenerateRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Extract topics, concepts and suggested tags from a note."""
    try:
        note, cached = await lifecycle.extract_topics(
            db, note_id, user_id, force=_force(body)
        )
    except Exception as e:
        raise to_http_exception(e, "Failed to extract topics") from e

    blob = note.extracted_topics or {}
    return TopicsResponse(
        topics=blob.get("topics", []),
        concepts=blob.get("concepts", []),
        suggested_tags=blob.get("suggested_tags", []),
        tokens_used=note.topics_tokens_used or 0,
        generated_at=note.topics_generated_at,
        cached=cached,
    )
