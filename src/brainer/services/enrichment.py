"""
Best-effort enrichment.

Auto-triggered AI steps (embedding on create, summary after OCR or
transcription) must never fail the surrounding operation. ``attempt`` runs
one such step and turns any exception into a logged, inspectable outcome.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from brainer.models import Note

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentOutcome(Generic[T]):
    succeeded: bool
    value: T | None = None
    error: str | None = None


async def attempt(label: str, step: Awaitable[T]) -> EnrichmentOutcome[T]:
    """
    Await ``step``; never raise.

    Args:
        label: Human-readable step name used in the log line.
        step: Coroutine performing the enrichment and its persistence.

    Returns:
        EnrichmentOutcome with the value on success, the error text otherwise.
    """
    try:
        value = await step
    except Exception as e:
        logger.warning("Best-effort %s failed: %s", label, e)
        return EnrichmentOutcome(succeeded=False, error=str(e))
    return EnrichmentOutcome(succeeded=True, value=value)


async def attempt_for(
    session: AsyncSession, note: Note, label: str, step: Awaitable[T]
) -> EnrichmentOutcome[T]:
    """
    ``attempt`` for a step that writes into ``note``.

    A failure that rolled back the whole transaction leaves ``note``
    expired; it is reloaded so the caller can keep reading it.
    """
    outcome = await attempt(label, step)
    if not outcome.succeeded and inspect(note).expired:
        await session.refresh(note)
    return outcome
