"""
Note Lifecycle Service

Glues the classifier, AI service, transcription manager, OCR and usage
ledger around the note verbs: create, update, delete, upload, explicit
enrichment, transcription reconciliation and embedding backfill.

Design:
    - Explicit actions (create, upload, summarize, embed) are gated by the
      usage ledger and consume one unit on success. A cached result
      consumes nothing.
    - Auto-triggered enrichment is best-effort: it runs through
      ``enrichment.attempt_for`` and never fails the surrounding operation.
    - Each enrichment persists through a single-statement repository write,
      so a note's ``has_*`` flags always match their content columns.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from brainer.core.config import settings
from brainer.core.exceptions import (
    AIServiceError,
    ContentTooShortError,
    InvalidUploadError,
    NoteNotFound,
    TranscriptionError,
    TranscriptionUnavailableError,
    UnknownTagError,
)
from brainer.models import Note, TranscriptionStatus
from brainer.models.base import utcnow
from brainer.repositories import notes as repo
from brainer.repositories import tags as tags_repo
from brainer.repositories import users as users_repo
from brainer.schemas.notes import NoteCreate, NoteUpdate
from brainer.services import ai, bodies, classifier, ocr, usage
from brainer.services.enrichment import attempt_for
from brainer.services.transcription import JobState, TranscriptionService

logger = logging.getLogger(__name__)

ALLOWED_AUDIO_TYPES = (
    "audio/wav",
    "audio/mp3",
    "audio/mpeg",
    "audio/mp4",
    "audio/x-m4a",
    "audio/webm",
    "audio/ogg",
    "audio/aac",
    "audio/flac",
)
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")


class UploadKind(str, enum.Enum):
    VOICE = "voice"
    SCREENSHOT = "screenshot"


@dataclass
class UploadOutcome:
    note: Note
    transcription_job_id: str | None = None
    ocr_characters: int | None = None


@dataclass
class Reconciliation:
    note: Note
    status: str
    job_complete: bool
    error: str | None = None


@dataclass
class BackfillReport:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    results: list[dict] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def validate_upload(kind: UploadKind, filename: str, content_type: str, size: int) -> None:
    """
    Check size and MIME type of an upload.

    Audio types match by prefix so codec suffixes like
    ``audio/webm;codecs=opus`` pass. ``.m4a`` files are accepted under any
    m4a-ish or ``audio/mp4`` type.

    Raises:
        InvalidUploadError: Too large, or type not allowed for ``kind``.
    """
    if size > settings.MAX_UPLOAD_BYTES:
        raise InvalidUploadError(
            f"File size too large (max {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB)"
        )

    content_type = (content_type or "").lower()
    if kind is UploadKind.VOICE:
        is_audio = any(content_type.startswith(t) for t in ALLOWED_AUDIO_TYPES)
        is_m4a = filename.lower().endswith(".m4a") and (
            "m4a" in content_type or content_type == "audio/mp4"
        )
        if not (is_audio or is_m4a):
            raise InvalidUploadError(f"Invalid audio file type: {content_type}")
    elif content_type not in ALLOWED_IMAGE_TYPES:
        raise InvalidUploadError(f"Invalid image file type: {content_type}")


async def _check_tags(session: AsyncSession, tag_ids: Sequence[uuid.UUID]) -> None:
    missing = set(tag_ids) - await tags_repo.existing_ids(session, tag_ids)
    if missing:
        raise UnknownTagError(
            f"Unknown tag ids: {', '.join(sorted(str(t) for t in missing))}"
        )


# ---------------------------------------------------------------------------
# Enrichment steps (persist their own result)
# ---------------------------------------------------------------------------


async def _embed(session: AsyncSession, note: Note, text: str) -> ai.EmbeddingResult:
    result = await ai.generate_embedding(classifier.build_embedding_text(note.title, text))
    await repo.set_embedding(session, note.id, result.embedding, result.model)
    return result


async def _summarize(session: AsyncSession, note: Note, text: str) -> ai.SummaryResult:
    result = await ai.generate_summary(text)
    await repo.set_summary(
        session, note.id, result.summary, result.key_points, result.tokens_used
    )
    return result


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def list_notes(session: AsyncSession, user_id: str) -> Sequence[Note]:
    return await repo.list_for_user(session, user_id)


async def get_note(session: AsyncSession, note_id: uuid.UUID, user_id: str) -> Note:
    note = await repo.get_for_user(session, note_id, user_id)
    if note is None:
        raise NoteNotFound(note_id)
    return note


async def create_note(session: AsyncSession, user_id: str, data: NoteCreate) -> Note:
    """
    Create a note and, when its content is substantial, embed it.

    The embedding is best-effort: a failure is logged and the note is
    returned without one.
    """
    await usage.ensure_can_perform(session, user_id, "notes")
    await _check_tags(session, data.tag_ids)

    title = data.title or "Untitled Note"
    note = await repo.create(
        session,
        user_id=user_id,
        title=title,
        content=data.content,
        tag_ids=data.tag_ids,
    )
    await users_repo.increment_counter(session, user_id, "notes")
    logger.info("Created note %s for user %s", note.id, user_id)

    if classifier.should_generate_embedding(note.content):
        await attempt_for(session, note, "embedding", _embed(session, note, note.content))
    return note


async def update_note(
    session: AsyncSession, note_id: uuid.UUID, user_id: str, data: NoteUpdate
) -> Note:
    """
    Apply edits; re-embed when the content changed and still qualifies.

    ``tag_ids`` (even empty) replaces all tag links.
    """
    note = await get_note(session, note_id, user_id)
    fields = data.model_dump(exclude_unset=True, exclude_none=True, exclude={"tag_ids"})
    content_changed = "content" in fields and fields["content"] != note.content

    if data.tag_ids is not None:
        await _check_tags(session, data.tag_ids)

    note = await repo.update_fields(session, note, fields, data.tag_ids)

    if content_changed and classifier.should_generate_embedding(note.content):
        await attempt_for(session, note, "embedding", _embed(session, note, note.content))
    return note


async def delete_note(session: AsyncSession, note_id: uuid.UUID, user_id: str) -> None:
    note = await get_note(session, note_id, user_id)
    await repo.delete_with_tags(session, note)
    logger.info("Deleted note %s", note_id)


# ---------------------------------------------------------------------------
# Explicit enrichment
# ---------------------------------------------------------------------------


async def summarize_note(
    session: AsyncSession, note_id: uuid.UUID, user_id: str, force: bool = False
) -> tuple[Note, bool]:
    """
    Generate (or return the existing) summary.

    Returns:
        (note, cached) where cached is True when no external call was made.

    Raises:
        ContentTooShortError: Content under 50 characters.
        UsageLimitExceeded: Plan does not allow another summary.
        AIServiceError: OpenAI call failed.
    """
    note = await get_note(session, note_id, user_id)
    if note.has_summary and not force:
        return note, True

    if len((note.content or "").strip()) < ai.MIN_SUMMARY_CHARS:
        raise ContentTooShortError(
            "Content is too short to summarize (minimum 50 characters)"
        )
    await usage.ensure_can_perform(session, user_id, "ai_summaries")
    await _summarize(session, note, note.content)
    await users_repo.increment_counter(session, user_id, "ai_summaries")
    return note, False


async def embed_note(
    session: AsyncSession, note_id: uuid.UUID, user_id: str, force: bool = False
) -> tuple[Note, int, bool]:
    """
    Generate (or return the existing) embedding.

    Returns:
        (note, tokens_used, cached).
    """
    note = await get_note(session, note_id, user_id)
    if note.has_embedding and not force:
        return note, 0, True

    if not classifier.should_generate_embedding(note.content):
        raise ContentTooShortError("Note content is not suitable for embedding generation")
    await usage.ensure_can_perform(session, user_id, "embeddings")
    result = await _embed(session, note, note.content)
    await users_repo.increment_counter(session, user_id, "embeddings")
    return note, result.tokens_used, False


async def extract_topics(
    session: AsyncSession, note_id: uuid.UUID, user_id: str, force: bool = False
) -> tuple[Note, bool]:
    """Extract (or return the existing) topics. Returns (note, cached)."""
    note = await get_note(session, note_id, user_id)
    if note.has_topics and not force:
        return note, True

    if len((note.content or "").strip()) < ai.MIN_TOPICS_CHARS:
        raise ContentTooShortError(
            "Content is too short for topic extraction (minimum 20 characters)"
        )
    result = await ai.extract_topics_and_concepts(note.content)
    await repo.set_topics(session, note.id, result.as_blob(), result.tokens_used)
    return note, False


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


async def upload(
    session: AsyncSession,
    user_id: str,
    kind: UploadKind,
    filename: str,
    content_type: str,
    data: bytes,
    transcription: TranscriptionService | None,
) -> UploadOutcome:
    """
    Turn an uploaded recording or screenshot into a note.

    A screenshot consumes `screenshots`. A recording consumes
    `voice_transcriptions` only when a job is started; without a job it is
    a plain note and consumes `notes`.

    Raises:
        InvalidUploadError: Bad MIME type or size.
        UsageLimitExceeded: Plan does not allow another upload of this kind.
    """
    validate_upload(kind, filename, content_type, len(data))
    if kind is UploadKind.VOICE:
        return await _upload_voice(session, user_id, filename, data, transcription)

    await usage.ensure_can_perform(session, user_id, "screenshots")
    outcome = await _upload_screenshot(session, user_id, filename, data)
    await users_repo.increment_counter(session, user_id, "screenshots")
    return outcome


async def _upload_voice(
    session: AsyncSession,
    user_id: str,
    filename: str,
    data: bytes,
    transcription: TranscriptionService | None,
) -> UploadOutcome:
    title = bodies.voice_title(utcnow())

    if transcription is None:
        await usage.ensure_can_perform(session, user_id, "notes")
        note = await repo.create(
            session,
            user_id=user_id,
            title=title,
            content=bodies.voice_unavailable(filename, len(data)),
        )
        await users_repo.increment_counter(session, user_id, "notes")
        return UploadOutcome(note=note)

    await usage.ensure_can_perform(session, user_id, "voice_transcriptions")
    try:
        job = await transcription.start_transcription(data, filename, user_id)
    except TranscriptionError as e:
        note = await repo.create(
            session,
            user_id=user_id,
            title=title,
            content=bodies.voice_start_failed(filename, str(e)),
            transcription_status=TranscriptionStatus.FAILED,
            is_processing=False,
        )
        # no job ran: counted as a plain note
        await users_repo.increment_counter(session, user_id, "notes")
        return UploadOutcome(note=note)

    note = await repo.create(
        session,
        user_id=user_id,
        title=title,
        content=bodies.voice_processing(filename, job.job_id),
        transcription_job_id=job.job_id,
        transcription_status=TranscriptionStatus.IN_PROGRESS,
        transcription_s3_key=job.storage_key,
        is_processing=True,
    )
    await users_repo.increment_counter(session, user_id, "voice_transcriptions")
    return UploadOutcome(note=note, transcription_job_id=job.job_id)


async def _upload_screenshot(
    session: AsyncSession, user_id: str, filename: str, data: bytes
) -> UploadOutcome:
    title = bodies.screenshot_title(utcnow())
    try:
        text: str | None = await ocr.extract_text(data)
    except Exception:
        logger.exception("OCR failed for %s", filename)
        text = None

    if text is None:
        content = bodies.screenshot_ocr_failed(filename)
    elif text:
        content = bodies.screenshot_text(filename, text)
    else:
        content = bodies.screenshot_no_text(filename)

    note = await repo.create(session, user_id=user_id, title=title, content=content)

    if text:
        # Independent steps: one failing does not skip the other
        await attempt_for(session, note, "embedding", _embed(session, note, text))
        await attempt_for(session, note, "summary", _summarize(session, note, text))
    return UploadOutcome(note=note, ocr_characters=len(text) if text is not None else None)


# ---------------------------------------------------------------------------
# Transcription reconciliation
# ---------------------------------------------------------------------------


async def reconcile_transcription(
    session: AsyncSession,
    job_id: str,
    user_id: str,
    transcription: TranscriptionService | None,
) -> Reconciliation:
    """
    Fold the external job state into the note that owns ``job_id``.

    A terminal note is returned as-is without querying the job again.
    In-progress results (including transient fetch errors) leave the note
    untouched so the next poll can retry.

    Raises:
        TranscriptionUnavailableError: AWS is not configured.
        NoteNotFound: No note of this user owns the job.
    """
    if transcription is None:
        raise TranscriptionUnavailableError()

    note = await repo.get_by_job_id(session, job_id, user_id)
    if note is None:
        raise NoteNotFound(job_id)

    if note.transcription_status.is_terminal and not note.is_processing:
        return Reconciliation(
            note=note, status=note.transcription_status.value.lower(), job_complete=True
        )

    storage_key = note.transcription_s3_key
    result = await transcription.get_transcription_result(job_id)

    if result.status is JobState.IN_PROGRESS:
        if result.error:
            logger.info("Transcription %s still pending: %s", job_id, result.error)
        return Reconciliation(
            note=note, status=result.status.value, job_complete=False, error=result.error
        )

    if result.status is JobState.FAILED:
        error = result.error or "Unknown transcription error"
        await repo.update_transcription(
            session,
            note.id,
            status=TranscriptionStatus.FAILED,
            is_processing=False,
            content=bodies.transcript_failed(note.title, job_id, error),
        )
        await transcription.cleanup_files(storage_key, job_id)
        return Reconciliation(note=note, status=result.status.value, job_complete=True, error=error)

    transcript = (result.transcript or "").strip()
    if not transcript:
        await repo.update_transcription(
            session,
            note.id,
            status=TranscriptionStatus.COMPLETED,
            is_processing=False,
            content=bodies.transcript_empty(note.title, job_id),
            confidence=result.confidence,
        )
        return Reconciliation(note=note, status=result.status.value, job_complete=True)

    await repo.update_transcription(
        session,
        note.id,
        status=TranscriptionStatus.COMPLETED,
        is_processing=False,
        content=bodies.transcript_success(note.title, job_id, transcript, result.confidence),
        confidence=result.confidence,
    )

    if len(transcript) >= ai.MIN_SUMMARY_CHARS:
        await attempt_for(session, note, "summary", _summarize(session, note, transcript))
    if classifier.should_generate_embedding(transcript):
        await attempt_for(session, note, "embedding", _embed(session, note, transcript))

    await transcription.cleanup_files(storage_key, job_id)
    return Reconciliation(note=note, status=result.status.value, job_complete=True)


# ---------------------------------------------------------------------------
# Backfill
# ---------------------------------------------------------------------------


async def backfill_embeddings(
    session: AsyncSession, user_id: str, delay: float | None = None
) -> BackfillReport:
    """
    Embed every note of the user that lacks an embedding and qualifies.

    Notes are processed one at a time with a small pause between calls
    to stay under the provider rate limit.
    """
    pause = settings.EMBEDDING_BACKFILL_DELAY_SECONDS if delay is None else delay
    report = BackfillReport()

    pending = await repo.list_missing_embeddings(session, user_id)
    suitable = [n for n in pending if classifier.should_generate_embedding(n.content)]
    report.skipped = len(pending) - len(suitable)

    for index, note in enumerate(suitable):
        report.processed += 1
        try:
            await _embed(session, note, note.content)
        except (AIServiceError, ContentTooShortError) as e:
            logger.error("Backfill failed for note %s: %s", note.id, e)
            report.failed += 1
            report.results.append(
                {"note_id": note.id, "title": note.title, "success": False, "error": str(e)}
            )
        else:
            report.succeeded += 1
            report.results.append({"note_id": note.id, "title": note.title, "success": True})

        if pause and index < len(suitable) - 1:
            await asyncio.sleep(pause)

    logger.info(
        "Backfill for %s: %d ok, %d failed, %d skipped",
        user_id,
        report.succeeded,
        report.failed,
        report.skipped,
    )
    return report
