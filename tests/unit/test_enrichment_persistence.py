"""
Enrichment Persistence Tests

Runs the lifecycle against a real AsyncSession (in-memory SQLite through
aiosqlite) with one UPDATE forced to fail at the driver. A failed
best-effort write must leave the request's note loaded and readable.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from pgvector.sqlalchemy import Vector
from sqlalchemy import event, func, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.ext.compiler import compiles

from brainer.models import Note, TranscriptionStatus
from brainer.models.base import Base
from brainer.repositories import notes as repo
from brainer.schemas.notes import NoteCreate, NoteRead
from brainer.services import lifecycle
from brainer.services.ai import EmbeddingResult, SummaryResult
from brainer.services.transcription import JobState, TranscriptionResult

USER = "user-123"
JOB_ID = "transcribe-user-123-abc"
STORAGE_KEY = "audio/user-123/1-memo.mp3"
SUBSTANTIAL = (
    "Our quarterly planning meeting covered the hiring roadmap, the new "
    "onboarding flow and the budget for next year."
)


@compiles(JSONB, "sqlite")
def _jsonb_on_sqlite(type_, compiler, **kw):
    return "JSON"


@compiles(Vector, "sqlite")
def _vector_on_sqlite(type_, compiler, **kw):
    return "TEXT"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://")

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session


def fail_note_update(engine, column: str) -> None:
    """Make every ``UPDATE notes`` that sets ``column`` raise at the driver."""

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def _fail(conn, cursor, statement, parameters, context, executemany):
        if statement.startswith("UPDATE notes") and f"{column}=" in statement:
            raise RuntimeError("server closed the connection unexpectedly")


@pytest.fixture
def ai_calls():
    with (
        patch("brainer.services.lifecycle.usage.ensure_can_perform", new_callable=AsyncMock),
        patch(
            "brainer.services.lifecycle.ai.generate_embedding", new_callable=AsyncMock
        ) as embed,
        patch(
            "brainer.services.lifecycle.ai.generate_summary", new_callable=AsyncMock
        ) as summarize,
    ):
        embed.return_value = EmbeddingResult(
            embedding=[0.1] * 1536, model="text-embedding-3-small", tokens_used=12
        )
        summarize.return_value = SummaryResult(
            summary="Call the supplier.", key_points=["Supplier"], tokens_used=20
        )
        yield embed, summarize


@pytest.mark.asyncio
async def test_create_survives_failed_embedding_write(engine, db, ai_calls):
    fail_note_update(engine, "embedding")

    note = await lifecycle.create_note(
        db, USER, NoteCreate(title="Planning", content=SUBSTANTIAL)
    )

    read = NoteRead.model_validate(note)
    assert read.title == "Planning"
    assert read.has_embedding is False

    count = await db.scalar(select(func.count()).select_from(Note))
    assert count == 1


@pytest.mark.asyncio
async def test_reconcile_survives_failed_summary_write(engine, db, ai_calls):
    transcript = SUBSTANTIAL + " Follow up with the finance team on Friday."
    await repo.create(
        db,
        user_id=USER,
        title="🎙️ Voice Note - 2026-10-01",
        content="processing",
        transcription_job_id=JOB_ID,
        transcription_status=TranscriptionStatus.IN_PROGRESS,
        transcription_s3_key=STORAGE_KEY,
        is_processing=True,
    )
    service = MagicMock()
    service.get_transcription_result = AsyncMock(
        return_value=TranscriptionResult(
            job_id=JOB_ID, status=JobState.COMPLETED, transcript=transcript, confidence=0.9
        )
    )
    service.cleanup_files = AsyncMock()
    fail_note_update(engine, "summary")

    outcome = await lifecycle.reconcile_transcription(db, JOB_ID, USER, service)

    assert outcome.job_complete is True
    service.cleanup_files.assert_awaited_once_with(STORAGE_KEY, JOB_ID)
    read = NoteRead.model_validate(outcome.note)
    assert read.has_summary is False
    assert read.has_embedding is True
    assert transcript in read.content


@pytest.mark.asyncio
async def test_screenshot_summary_runs_after_failed_embedding_write(engine, db, ai_calls):
    embed, summarize = ai_calls
    fail_note_update(engine, "embedding")

    with patch(
        "brainer.services.lifecycle.ocr.extract_text", new=AsyncMock(return_value=SUBSTANTIAL)
    ):
        outcome = await lifecycle.upload(
            db, USER, lifecycle.UploadKind.SCREENSHOT, "shot.png", "image/png", b"png", None
        )

    summarize.assert_awaited_once()
    read = NoteRead.model_validate(outcome.note)
    assert read.has_embedding is False
    assert read.has_summary is True
