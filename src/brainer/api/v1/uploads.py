"""
Uploads API Router

POST /uploads turns a voice recording or a screenshot into a note.
Voice notes start an asynchronous transcription job; screenshots are
OCR'd and enriched synchronously.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from brainer.api.deps import get_current_user_id
from brainer.api.errors import to_http_exception
from brainer.core.database import get_db
from brainer.core.exceptions import BrainerError
from brainer.schemas.notes import NoteRead
from brainer.schemas.transcription import UploadResponse
from brainer.services import lifecycle
from brainer.services.lifecycle import UploadKind
from brainer.services.transcription import TranscriptionService, get_transcription_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    kind: UploadKind = Form(..., alias="type"),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    transcription: TranscriptionService | None = Depends(get_transcription_service),
) -> UploadResponse:
    """
    Create a note from an uploaded file.

    Returns 400 for unsupported MIME types or oversized files and 403 when
    the plan's monthly upload limit is reached.
    """
    raw = await file.read()
    filename = file.filename or "upload"
    logger.info("Upload %s (%s, %d bytes) from %s", filename, kind.value, len(raw), user_id)

    try:
        outcome = await lifecycle.upload(
            db,
            user_id,
            kind,
            filename,
            file.content_type or "",
            raw,
            transcription,
        )
    except BrainerError as e:
        raise to_http_exception(e, "Upload failed") from e

    return UploadResponse(
        note=NoteRead.model_validate(outcome.note),
        transcription_job_id=outcome.transcription_job_id,
        ocr_characters=outcome.ocr_characters,
    )
