"""
Pytest Configuration and Fixtures

Environment defaults, object factories for unit tests, and session-scoped
fixtures for live tests against a running Docker stack.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults: MUST be set before any brainer imports.
#
# 1. Load .env first so that Docker-matching credentials are available.
# 2. setdefault fills in anything still missing (CI runners, fresh clones
#    without a .env file) so that pydantic Settings validation doesn't crash.
# ---------------------------------------------------------------------------
load_dotenv()  # .env -> os.environ (no-op if file is missing)

_test_env = {
    "POSTGRES_USER": "brainer",
    "POSTGRES_PASSWORD": "brainer_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "brainer_db",
    "OPENAI_API_KEY": "mock",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
import time  # noqa: E402
import uuid  # noqa: E402
from collections.abc import Generator  # noqa: E402
from datetime import UTC, datetime  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from brainer.models import Note, TranscriptionStatus  # noqa: E402

BASE_URL = "http://localhost:8000"
TEST_USER_ID = "user-123"
# Fresh user per session so FREE-plan limits never carry over between runs
LIVE_USER_ID = f"live-{uuid.uuid4().hex[:12]}"


def make_note(**overrides) -> Note:
    """
    Build a transient Note with every column populated.

    ORM column defaults only apply at flush time, so unit tests that never
    touch a database need them set explicitly.
    """
    now = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)
    values = {
        "id": uuid.uuid4(),
        "user_id": TEST_USER_ID,
        "title": "Test Note",
        "content": "",
        "summary": None,
        "summary_generated_at": None,
        "summary_tokens_used": None,
        "key_points": None,
        "has_summary": False,
        "embedding": None,
        "embedding_generated_at": None,
        "embedding_model": None,
        "has_embedding": False,
        "extracted_topics": None,
        "topics_generated_at": None,
        "topics_tokens_used": None,
        "has_topics": False,
        "transcription_job_id": None,
        "transcription_status": TranscriptionStatus.NOT_STARTED,
        "transcription_s3_key": None,
        "transcription_confidence": None,
        "is_processing": False,
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    note = Note(**values)
    note.tags = []
    return note


@pytest.fixture
def session() -> MagicMock:
    """Stand-in AsyncSession; repositories are patched in the tests that use it."""
    db = MagicMock()
    savepoint = MagicMock()
    savepoint.__aenter__ = AsyncMock()
    savepoint.__aexit__ = AsyncMock(return_value=False)
    db.begin_nested = MagicMock(return_value=savepoint)
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest.fixture(scope="session")
def wait_for_api():
    """
    Block until the API is ready or timeout expires.

    Polls /health endpoint with 1s intervals for up to 30s.
    Fails the test session if API is unreachable (Docker likely not running).
    """
    url = f"{BASE_URL}/health"
    timeout = 30
    start = time.time()

    print("\n[Test] Waiting for API...")
    while time.time() - start < timeout:
        try:
            res = httpx.get(url, timeout=1.0)
            if res.status_code == 200:
                print("API Ready")
                return
        except httpx.RequestError:
            time.sleep(1)

    pytest.fail("API unreachable. Docker is likely down.")


@pytest.fixture(scope="session")
def api_client(wait_for_api) -> Generator[httpx.Client, None, None]:
    """
    Pre-configured HTTP client for live tests.

    Base URL points to /api/v1 and every request carries a test user id.
    """
    with httpx.Client(
        base_url=f"{BASE_URL}/api/v1",
        headers={"X-User-Id": LIVE_USER_ID},
        timeout=10.0,
    ) as client:
        client.post(
            "/users/sync",
            json={"id": LIVE_USER_ID, "email": f"{LIVE_USER_ID}@example.com"},
        ).raise_for_status()
        yield client


@pytest.fixture
def note_factory():
    """Expose make_note to tests (tests/ is not an importable package)."""
    return make_note
