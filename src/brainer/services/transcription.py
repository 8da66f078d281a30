"""
Transcription Service

Starts AWS Transcribe jobs for uploaded audio and reads their results back.

Design:
    - Audio goes to S3 first; the job reads it from there and writes its
      transcript JSON into the same bucket (keys prefixed with the job id).
    - Reading a completed job tries the pre-signed TranscriptFileUri first.
      If that fails, the bucket is listed for ``{job_id}*.json`` a few times
      (the object may not be visible yet) before giving up.
    - get_transcription_result never raises. Transport and parse problems
      come back as an in-progress result carrying ``error``, so the next
      poll simply tries again.
    - No internal timeout: the caller decides how long to keep polling.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any

import httpx

from brainer.core.config import settings
from brainer.core.exceptions import TranscriptionError, TranscriptionUnavailableError
from brainer.services.storage import ObjectStorage, audio_key, create_aws_client

logger = logging.getLogger(__name__)

MAX_SPEAKER_LABELS = 5
TRANSCRIPT_HTTP_TIMEOUT = 30.0

_CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "webm": "audio/webm",
}

_MEDIA_FORMATS = {
    "mp3": "mp3",
    "wav": "wav",
    "m4a": "m4a",
    "aac": "mp4",
    "ogg": "ogg",
    "flac": "flac",
    "webm": "webm",
}


class JobState(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


# AWS TranscriptionJobStatus -> JobState
_STATUS_MAP = {
    "QUEUED": JobState.IN_PROGRESS,
    "IN_PROGRESS": JobState.IN_PROGRESS,
    "COMPLETED": JobState.COMPLETED,
    "FAILED": JobState.FAILED,
}


@dataclass
class StartedJob:
    job_id: str
    storage_key: str


@dataclass
class TranscriptionResult:
    job_id: str
    status: JobState
    transcript: str | None = None
    confidence: float | None = None
    error: str | None = None


def is_transcribe_available() -> bool:
    """True only when AWS key id, secret and bucket are all configured."""
    return settings.AWS_CONFIGURED


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def content_type_for(filename: str) -> str:
    return _CONTENT_TYPES.get(_extension(filename), "audio/mpeg")


def media_format_for(filename: str) -> str:
    return _MEDIA_FORMATS.get(_extension(filename), "mp3")


def parse_transcript(raw: str) -> tuple[str, float | None]:
    """
    Extract transcript text and mean word confidence from Transcribe JSON.

    Confidence is averaged over the items that carry one; None when no
    item does.
    """
    data = json.loads(raw)
    results = data.get("results") or {}
    transcripts = results.get("transcripts") or []
    text = (transcripts[0].get("transcript") if transcripts else "") or ""

    scores: list[float] = []
    for item in results.get("items") or []:
        alternatives = item.get("alternatives") or []
        if alternatives and alternatives[0].get("confidence") not in (None, ""):
            scores.append(float(alternatives[0]["confidence"]))

    confidence = sum(scores) / len(scores) if scores else None
    return text, confidence


class TranscriptionService:
    """
    AWS Transcribe job manager.

    Args:
        transcribe_client: boto3 "transcribe" client (built lazily if omitted).
        storage: ObjectStorage for the audio/transcript bucket.
        http_client: httpx.AsyncClient used to download transcripts.

    Raises:
        TranscriptionUnavailableError: AWS is not configured and no
            clients were injected.
    """

    def __init__(
        self,
        transcribe_client: Any | None = None,
        storage: ObjectStorage | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if transcribe_client is None and not is_transcribe_available():
            raise TranscriptionUnavailableError()
        self._transcribe = transcribe_client or create_aws_client("transcribe")
        self.storage = storage or ObjectStorage()
        self._http = http_client

    async def start_transcription(
        self, audio: bytes, filename: str, user_id: str
    ) -> StartedJob:
        """
        Upload audio and start a transcription job.

        Returns:
            StartedJob with the job id and the audio storage key.

        Raises:
            TranscriptionError: Upload or job start failed.
        """
        job_id = f"transcribe-{user_id}-{uuid.uuid4()}"
        key = audio_key(user_id, filename)
        logger.info("Starting transcription %s for %s", job_id, filename)

        try:
            await self.storage.put_object(key, audio, content_type_for(filename))
            await asyncio.to_thread(
                self._transcribe.start_transcription_job,
                TranscriptionJobName=job_id,
                LanguageCode=settings.TRANSCRIBE_LANGUAGE_CODE,
                MediaFormat=media_format_for(filename),
                Media={"MediaFileUri": f"s3://{self.storage.bucket}/{key}"},
                OutputBucketName=self.storage.bucket,
                Settings={
                    "ShowSpeakerLabels": True,
                    "MaxSpeakerLabels": MAX_SPEAKER_LABELS,
                },
            )
        except Exception as e:
            logger.error("Failed to start transcription %s: %s", job_id, e)
            raise TranscriptionError(f"Failed to start transcription: {e}") from e

        return StartedJob(job_id=job_id, storage_key=key)

    async def get_transcription_result(self, job_id: str) -> TranscriptionResult:
        """Query a job and, when completed, fetch and parse its transcript."""
        try:
            response = await asyncio.to_thread(
                self._transcribe.get_transcription_job, TranscriptionJobName=job_id
            )
            job = response.get("TranscriptionJob")
            if not job:
                raise LookupError("Transcription job not found")
        except Exception as e:
            logger.warning("Could not query transcription job %s: %s", job_id, e)
            return TranscriptionResult(job_id, JobState.IN_PROGRESS, error=str(e))

        aws_status = job.get("TranscriptionJobStatus", "")
        state = _STATUS_MAP.get(aws_status, JobState.IN_PROGRESS)

        if state is JobState.FAILED:
            return TranscriptionResult(
                job_id,
                JobState.FAILED,
                error=job.get("FailureReason") or "Transcription job failed",
            )
        if state is JobState.IN_PROGRESS:
            return TranscriptionResult(job_id, JobState.IN_PROGRESS)

        uri = (job.get("Transcript") or {}).get("TranscriptFileUri")
        if not uri:
            return TranscriptionResult(
                job_id, JobState.IN_PROGRESS, error="No transcript file URI provided by AWS"
            )

        try:
            raw = await self._download(uri)
            if raw is None:
                raw = await self._read_from_bucket(job_id)
            if raw is None:
                return TranscriptionResult(
                    job_id,
                    JobState.IN_PROGRESS,
                    error="No transcript files found in storage after retries",
                )
        except Exception as e:
            logger.error("Failed to retrieve transcript for %s: %s", job_id, e)
            return TranscriptionResult(
                job_id, JobState.IN_PROGRESS, error=f"Failed to retrieve transcript: {e}"
            )

        try:
            text, confidence = parse_transcript(raw)
        except (ValueError, TypeError, AttributeError) as e:
            logger.error("Failed to parse transcript JSON for %s: %s", job_id, e)
            return TranscriptionResult(
                job_id, JobState.IN_PROGRESS, error="Failed to parse transcript JSON"
            )

        return TranscriptionResult(
            job_id, JobState.COMPLETED, transcript=text, confidence=confidence
        )

    async def _download(self, uri: str) -> str | None:
        """GET the transcript URI; None when the response is not 2xx."""
        if self._http is not None:
            response = await self._http.get(uri)
        else:
            async with httpx.AsyncClient(timeout=TRANSCRIPT_HTTP_TIMEOUT) as client:
                response = await client.get(uri)
        if not response.is_success:
            logger.warning(
                "Transcript URI returned %s, falling back to bucket listing",
                response.status_code,
            )
            return None
        return response.text

    async def _read_from_bucket(self, job_id: str) -> str | None:
        attempts = max(1, settings.TRANSCRIPT_FETCH_ATTEMPTS)
        for attempt in range(1, attempts + 1):
            keys = await self.storage.list_keys(job_id, suffix=".json")
            if keys:
                logger.info("Using transcript file %s", keys[0])
                return await self.storage.get_text(keys[0])
            logger.info("No transcript files yet (attempt %d/%d)", attempt, attempts)
            if attempt < attempts:
                await asyncio.sleep(settings.TRANSCRIPT_FETCH_DELAY_SECONDS)
        return None

    async def cleanup_files(self, storage_key: str | None, job_id: str) -> None:
        """Delete the audio object and every transcript file of the job. Never raises."""
        try:
            if storage_key:
                await self.storage.delete_object(storage_key)
            for key in await self.storage.list_keys(job_id, suffix=".json"):
                await self.storage.delete_object(key)
            logger.info("Cleaned up storage for %s", job_id)
        except Exception as e:
            logger.error("Cleanup failed for %s: %s", job_id, e)


def get_transcription_service() -> TranscriptionService | None:
    """FastAPI dependency; None when AWS is not configured."""
    if not is_transcribe_available():
        return None
    return TranscriptionService()
