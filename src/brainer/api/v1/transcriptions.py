"""
Transcriptions API Router

GET /transcriptions/{job_id} is polled by clients after a voice upload.
Each call reconciles the external job state into the owning note.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from brainer.api.deps import get_current_user_id
from brainer.api.errors import to_http_exception
from brainer.core.database import get_db
from brainer.schemas.notes import NoteRead
from brainer.schemas.transcription import TranscriptionStatusResponse
from brainer.services import lifecycle
from brainer.services.transcription import TranscriptionService, get_transcription_service

router = APIRouter()


@router.get("/{job_id}", response_model=TranscriptionStatusResponse)
async def check_transcription(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    transcription: TranscriptionService | None = Depends(get_transcription_service),
) -> TranscriptionStatusResponse:
    """
    Check a transcription job and update its note.

    ``job_complete`` is true once the note reached COMPLETED or FAILED;
    ``error`` carries transient retrieval problems while still in progress.
    """
    try:
        outcome = await lifecycle.reconcile_transcription(db, job_id, user_id, transcription)
    except Exception as e:
        raise to_http_exception(e, "Failed to check transcription status") from e

    return TranscriptionStatusResponse(
        job_id=job_id,
        status=outcome.status,
        job_complete=outcome.job_complete,
        note=NoteRead.model_validate(outcome.note),
        error=outcome.error,
    )
