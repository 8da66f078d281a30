"""Schemas for transcription reconciliation and uploads."""

from __future__ import annotations

from pydantic import BaseModel

from brainer.schemas.notes import NoteRead


class TranscriptionStatusResponse(BaseModel):
    """
    Result of GET /transcriptions/{job_id}.

    ``job_complete`` tells the poller to stop; ``error`` carries any
    transient fetch problem while the job is still reported in progress.
    """

    job_id: str
    status: str
    job_complete: bool
    note: NoteRead
    error: str | None = None


class UploadResponse(BaseModel):
    note: NoteRead
    transcription_job_id: str | None = None
    ocr_characters: int | None = None
