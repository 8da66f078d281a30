"""
Brainer API entrypoint.

Builds the FastAPI app, mounts the v1 routers and owns process startup:
the app refuses to serve until Postgres answers, and it logs which optional
integrations (AWS transcription, OpenAI) are switched off.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from brainer.api.v1 import embeddings, notes, search, tags, transcriptions, uploads, users
from brainer.core.config import settings
from brainer.core.database import dispose_engine
from brainer.core.logging import setup_logging
from brainer.services.transcription import is_transcribe_available

setup_logging()
logger = logging.getLogger(__name__)

# (module, path segment, OpenAPI tag) for every router under /api/v1
ROUTERS = (
    (notes, "notes", "Notes"),
    (uploads, "uploads", "Uploads"),
    (transcriptions, "transcriptions", "Transcriptions"),
    (search, "search", "Search"),
    (tags, "tags", "Tags"),
    (users, "users", "Users"),
    (embeddings, "embeddings", "Embeddings"),
)


async def wait_for_db(retries: int = 10, delay: int = 1) -> bool:
    """
    Poll Postgres with ``SELECT 1`` until it answers.

    Compose starts the API and the database together, so the first few
    attempts usually fail. Uses a throwaway engine so the shared one is
    only created once the database is known to be up.

    Returns:
        False once ``retries`` attempts ``delay`` seconds apart have all failed.
    """
    engine = create_async_engine(settings.DATABASE_URL)
    try:
        for attempt in range(1, retries + 1):
            try:
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                logger.info("Postgres is reachable")
                return True
            except Exception as e:
                logger.warning("Postgres not ready (attempt %d/%d): %s", attempt, retries, e)
                await asyncio.sleep(delay)
        return False
    finally:
        await engine.dispose()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Brainer API starting (log level %s)", settings.LOG_LEVEL)

    if not await wait_for_db():
        logger.critical("Postgres never became reachable, aborting startup")
        raise RuntimeError("Database connection failed")

    if not is_transcribe_available():
        logger.warning("AWS credentials missing: voice uploads will not be transcribed")
    if not os.getenv("OPENAI_API_KEY"):
        logger.warning("OPENAI_API_KEY not set: AI endpoints will return 503")

    yield

    await dispose_engine()
    logger.info("Brainer API stopped")


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

for module, segment, tag in ROUTERS:
    app.include_router(module.router, prefix=f"/api/v1/{segment}", tags=[tag])


@app.get("/health")
async def health_check():
    """Liveness probe; also reports whether transcription is configured."""
    return {
        "status": "ok",
        "service": "brainer",
        "environment": os.getenv("ENVIRONMENT", "unknown"),
        "transcription": "configured" if is_transcribe_available() else "disabled",
    }
