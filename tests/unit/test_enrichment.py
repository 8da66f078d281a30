"""Best-effort enrichment wrapper."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from brainer.core.exceptions import AIServiceError
from brainer.services.enrichment import attempt, attempt_for


async def _ok():
    return 42


async def _boom():
    raise AIServiceError("Summary generation failed: rate limit")


@pytest.mark.asyncio
async def test_attempt_returns_value():
    outcome = await attempt("summary", _ok())

    assert outcome.succeeded is True
    assert outcome.value == 42
    assert outcome.error is None


@pytest.mark.asyncio
async def test_attempt_never_raises():
    outcome = await attempt("summary", _boom())

    assert outcome.succeeded is False
    assert outcome.value is None
    assert outcome.error == "Summary generation failed: rate limit"


@pytest.mark.asyncio
async def test_attempt_for_reloads_expired_note(session, note_factory):
    note = note_factory()
    with patch(
        "brainer.services.enrichment.inspect", return_value=SimpleNamespace(expired=True)
    ):
        outcome = await attempt_for(session, note, "embedding", _boom())

    assert outcome.succeeded is False
    session.refresh.assert_awaited_once_with(note)


@pytest.mark.asyncio
async def test_attempt_for_leaves_loaded_note_alone(session, note_factory):
    note = note_factory()

    outcome = await attempt_for(session, note, "embedding", _boom())

    assert outcome.succeeded is False
    session.refresh.assert_not_awaited()
