"""Embeddings API Router: batch backfill for notes created before embeddings existed."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from brainer.api.deps import get_current_user_id
from brainer.api.errors import to_http_exception
from brainer.core.database import get_db
from brainer.schemas.notes import BackfillResponse
from brainer.services import lifecycle

router = APIRouter()


@router.post("/batch-generate", response_model=BackfillResponse)
async def batch_generate(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> BackfillResponse:
    """Embed all of the caller's qualifying notes that lack an embedding."""
    try:
        report = await lifecycle.backfill_embeddings(db, user_id)
    except Exception as e:
        raise to_http_exception(e, "Failed to generate embeddings") from e

    return BackfillResponse(
        processed=report.processed,
        succeeded=report.succeeded,
        failed=report.failed,
        skipped=report.skipped,
        results=report.results,
    )
