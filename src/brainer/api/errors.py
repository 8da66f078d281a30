"""
Error translation

Maps domain exceptions (and, for AI-backed endpoints, upstream error
messages) onto HTTP responses. Routes call ``to_http_exception`` in their
``except`` clause; services never raise HTTPException.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from brainer.core.exceptions import (
    ContentTooShortError,
    InvalidUploadError,
    NoteNotFound,
    TranscriptionUnavailableError,
    UnknownTagError,
    UsageLimitExceeded,
    UserNotFound,
)

logger = logging.getLogger(__name__)

_STATUS_BY_TYPE: tuple[tuple[type[Exception], int], ...] = (
    (NoteNotFound, status.HTTP_404_NOT_FOUND),
    (UserNotFound, status.HTTP_404_NOT_FOUND),
    (ContentTooShortError, status.HTTP_400_BAD_REQUEST),
    (InvalidUploadError, status.HTTP_400_BAD_REQUEST),
    (UnknownTagError, status.HTTP_400_BAD_REQUEST),
    (UsageLimitExceeded, status.HTTP_403_FORBIDDEN),
    (TranscriptionUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(
    exc: Exception,
    failure_message: str,
    *,
    vector_errors: bool = False,
) -> HTTPException:
    """
    Classify ``exc`` into an HTTPException.

    Domain exceptions map by type. Anything else is classified by message
    (case-insensitive): ``OPENAI_API_KEY`` -> 503, ``rate limit``/``quota``
    -> 429, ``vector`` -> 503 when ``vector_errors`` is set, otherwise 500
    with ``failure_message`` and the original message as details.
    """
    if isinstance(exc, HTTPException):
        return exc

    for exc_type, code in _STATUS_BY_TYPE:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=code, detail=str(exc))

    message = str(exc)
    lowered = message.lower()
    if "openai_api_key" in lowered:
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI service is not configured. Please contact support.",
        )
    if "rate limit" in lowered or "quota" in lowered:
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="AI service rate limit reached. Please try again later.",
        )
    if vector_errors and "vector" in lowered:
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Vector database not properly configured. Please contact support.",
        )

    logger.error("%s: %s", failure_message, message)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": failure_message, "details": message},
    )
