"""
Search API Router

Semantic similarity search over the caller's notes (pgvector), with a
transparent substring fallback when vector search is unavailable.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from brainer.api.deps import get_current_user_id
from brainer.api.errors import to_http_exception
from brainer.core.database import get_db
from brainer.schemas.search import SimilarSearchRequest, SimilarSearchResponse
from brainer.services import search as search_service

router = APIRouter()


@router.post("/similar", response_model=SimilarSearchResponse)
async def search_similar(
    search_req: SimilarSearchRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> SimilarSearchResponse:
    """
    Find notes similar to a query.

    Raises:
        HTTPException 503: AI service or vector database not configured.
        HTTPException 429: OpenAI rate limit or quota reached.
    """
    try:
        return await search_service.find_similar(
            db,
            search_req.query,
            user_id,
            limit=search_req.limit,
            exclude_note_id=search_req.note_id,
        )
    except Exception as e:
        raise to_http_exception(e, "Failed to perform semantic search", vector_errors=True) from e
