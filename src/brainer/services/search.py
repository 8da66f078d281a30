"""
Similarity Search Service

Finds a user's notes that are semantically close to a free-text query.

Design:
    - Queries under 10 characters short-circuit to an empty result with
      no embedding call.
    - Vector capability is probed before the query is embedded. When it is
      missing (setting off or pgvector not installed) the search degrades to
      a case-insensitive substring match and costs zero tokens.
    - Ranking is done in Postgres via pgvector cosine distance.
"""

from __future__ import annotations

import logging
import uuid
from typing import Final

from sqlalchemy.ext.asyncio import AsyncSession

from brainer.core.config import settings
from brainer.models import Note
from brainer.repositories import notes as repo
from brainer.schemas.search import SimilarNote, SimilarSearchResponse
from brainer.services import ai

logger = logging.getLogger(__name__)

MIN_QUERY_CHARS: Final[int] = 10
MIN_SIMILARITY: Final[float] = 0.25
SNIPPET_CHARS: Final[int] = 150
TEXT_FALLBACK_SIMILARITY: Final[float] = 0.5
TEXT_FALLBACK_MODE: Final[str] = "text_search"


def make_snippet(content: str | None) -> str:
    """First 150 characters of the content, with '...' when cut."""
    content = content or ""
    if len(content) > SNIPPET_CHARS:
        return content[:SNIPPET_CHARS] + "..."
    return content


def _to_result(note: Note, similarity: float) -> SimilarNote:
    return SimilarNote(
        id=note.id,
        title=note.title,
        snippet=make_snippet(note.content),
        similarity=round(similarity, 2),
        created_at=note.created_at,
        summary=note.summary or None,
    )


async def is_vector_search_available(session: AsyncSession) -> bool:
    """Vector search needs both the setting and the pgvector extension."""
    if not settings.VECTOR_SEARCH_ENABLED:
        return False
    return await repo.vector_search_available(session)


async def find_similar(
    session: AsyncSession,
    query: str,
    user_id: str,
    limit: int = 5,
    exclude_note_id: uuid.UUID | None = None,
) -> SimilarSearchResponse:
    """
    Rank the user's notes by similarity to ``query``.

    Args:
        session: Database session.
        query: Free-text search query.
        user_id: Owner whose notes are searched.
        limit: Maximum number of results.
        exclude_note_id: Note to leave out (e.g. the one being viewed).

    Returns:
        SimilarSearchResponse; ``fallback_mode`` is set when the text
        fallback was used.

    Raises:
        AIServiceError: Embedding the query failed.
    """
    if len(query.strip()) < MIN_QUERY_CHARS:
        return SimilarSearchResponse(results=[], query=query, tokens_used=0)

    if not await is_vector_search_available(session):
        logger.warning("Vector search unavailable, using text fallback")
        notes = await repo.search_notes_text(
            session,
            user_id=user_id,
            query=query,
            limit=limit,
            exclude_note_id=exclude_note_id,
        )
        return SimilarSearchResponse(
            results=[_to_result(note, TEXT_FALLBACK_SIMILARITY) for note in notes],
            query=query,
            tokens_used=0,
            fallback_mode=TEXT_FALLBACK_MODE,
        )

    embedded = await ai.generate_embedding(query)
    rows = await repo.search_similar_notes(
        session,
        user_id=user_id,
        embedding=embedded.embedding,
        limit=limit,
        min_similarity=MIN_SIMILARITY,
        exclude_note_id=exclude_note_id,
    )
    results = [_to_result(note, score) for note, score in rows]
    results.sort(key=lambda r: r.similarity, reverse=True)
    logger.info("Found %d similar notes for user %s", len(results), user_id)

    return SimilarSearchResponse(
        results=results, query=query, tokens_used=embedded.tokens_used
    )
