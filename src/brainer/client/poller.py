"""
Transcription Poller

Client-side loop that polls GET /api/v1/transcriptions/{job_id} after a
voice upload until the job reaches a terminal state, a wall-clock cap
elapses, or the caller cancels.

The server holds no per-job session: if polling stops, the external job
still finishes but the note is only reconciled on the next poll.

Usage::

    async with httpx.AsyncClient(base_url="http://localhost:8000") as http:
        poller = TranscriptionPoller(http, job_id, user_id="uid-123")
        result = await poller.run()
        if result.outcome is PollOutcome.TRANSCRIBED_SUCCESS:
            ...
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from brainer.services.bodies import ISSUES_MARKER, TRANSCRIPT_HEADING

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5.0
DEFAULT_TIMEOUT_SECONDS = 600.0

# Responses that will not change by polling again
_PERMANENT_STATUS_CODES = frozenset({401, 403, 404, 503})


class PollState(str, enum.Enum):
    IDLE = "idle"
    POLLING = "polling"
    DONE = "done"


class PollOutcome(str, enum.Enum):
    TRANSCRIBED_SUCCESS = "transcribed_success"
    TRANSCRIBED_WITH_ISSUES = "transcribed_with_issues"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass
class PollResult:
    outcome: PollOutcome
    attempts: int
    payload: dict[str, Any] | None = None
    error: str | None = None


def classify(payload: dict[str, Any]) -> PollOutcome:
    """
    Outcome of a terminal status payload.

    A completed note whose body carries the transcript heading and no
    issues marker is a clean success; any other completed body was
    transcribed with issues.
    """
    if payload.get("status") == "failed":
        return PollOutcome.FAILED
    content = (payload.get("note") or {}).get("content") or ""
    if TRANSCRIPT_HEADING in content and ISSUES_MARKER not in content:
        return PollOutcome.TRANSCRIBED_SUCCESS
    return PollOutcome.TRANSCRIBED_WITH_ISSUES


class TranscriptionPoller:
    """
    Poll one transcription job: IDLE -> POLLING -> DONE.

    Args:
        client: httpx.AsyncClient pointed at the Brainer API.
        job_id: Job returned by the voice upload.
        user_id: Sent as the X-User-Id header.
        interval: Seconds between polls.
        timeout: Total wall-clock cap in seconds.
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        job_id: str,
        user_id: str,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self.job_id = job_id
        self.user_id = user_id
        self.interval = interval
        self.timeout = timeout
        self._clock = clock
        self._cancelled = asyncio.Event()
        self._state = PollState.IDLE

    @property
    def state(self) -> PollState:
        return self._state

    def cancel(self) -> None:
        """Stop polling at the next check; run() returns CANCELLED."""
        self._cancelled.set()

    async def run(self) -> PollResult:
        if self._state is not PollState.IDLE:
            raise RuntimeError("Poller already started")

        self._state = PollState.POLLING
        deadline = self._clock() + self.timeout
        attempts = 0
        last_error: str | None = None
        try:
            while True:
                if self._cancelled.is_set():
                    return PollResult(PollOutcome.CANCELLED, attempts, error=last_error)

                attempts += 1
                payload, last_error, permanent = await self._poll_once()
                if permanent:
                    return PollResult(PollOutcome.FAILED, attempts, payload, last_error)
                if payload is not None and payload.get("job_complete"):
                    outcome = classify(payload)
                    logger.info("Job %s finished: %s", self.job_id, outcome.value)
                    return PollResult(outcome, attempts, payload, payload.get("error"))

                remaining = deadline - self._clock()
                if remaining <= 0:
                    return PollResult(PollOutcome.TIMED_OUT, attempts, payload, last_error)

                try:
                    await asyncio.wait_for(
                        self._cancelled.wait(), timeout=min(self.interval, remaining)
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            self._state = PollState.DONE

    async def _poll_once(self) -> tuple[dict[str, Any] | None, str | None, bool]:
        """One GET. Returns (payload, error, permanent_failure)."""
        try:
            response = await self._client.get(
                f"/api/v1/transcriptions/{self.job_id}",
                headers={"X-User-Id": self.user_id},
            )
        except httpx.HTTPError as e:
            logger.warning("Polling %s failed: %s", self.job_id, e)
            return None, str(e), False

        if response.status_code in _PERMANENT_STATUS_CODES:
            return None, f"HTTP {response.status_code}: {response.text}", True
        if not response.is_success:
            return None, f"HTTP {response.status_code}", False

        payload = response.json()
        return payload, payload.get("error"), False
