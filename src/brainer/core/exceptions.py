"""
Domain Exceptions

Raised by the service layer and translated to HTTP responses by the API layer.
Services never raise HTTPException themselves.
"""

from __future__ import annotations


class BrainerError(Exception):
    """Base class for all domain errors."""


class NoteNotFound(BrainerError):
    """Note does not exist or does not belong to the requesting user."""

    def __init__(self, note_id: object) -> None:
        super().__init__(f"Note {note_id} not found")
        self.note_id = note_id


class UserNotFound(BrainerError):
    """No user row for the given identity-provider uid."""

    def __init__(self, user_id: str) -> None:
        super().__init__("User not found. Please sign in again.")
        self.user_id = user_id


class ContentTooShortError(BrainerError, ValueError):
    """Input text is below the minimum length for the requested operation."""


class AIServiceError(BrainerError, RuntimeError):
    """
    An OpenAI call failed or could not be attempted.

    The message keeps the upstream wording so callers can classify it
    (``OPENAI_API_KEY``, ``rate limit``, ``quota``).
    """


class TranscriptionError(BrainerError, RuntimeError):
    """Starting a transcription job failed."""


class TranscriptionUnavailableError(BrainerError):
    """AWS credentials or bucket are not configured."""

    def __init__(self) -> None:
        super().__init__("AWS Transcribe service not configured")


class UsageLimitExceeded(BrainerError):
    """The user's plan does not allow another action of this type this month."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidUploadError(BrainerError, ValueError):
    """Uploaded file failed type or size validation."""


class UnknownTagError(BrainerError, ValueError):
    """One or more tag ids do not exist."""
