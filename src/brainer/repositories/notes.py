"""
Note Repository

Data access layer for Note entities with semantic search capabilities.
Extends BaseRepository with pgvector-specific query methods and the
targeted single-statement writes used by the enrichment pipeline.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, or_, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import defer

from brainer.models import Note, NoteTag, TranscriptionStatus
from brainer.models.base import utcnow
from brainer.repositories.base import BaseRepository


class NoteRepository(BaseRepository[Note]):
    """
    Repository for Note entities with vector search support.

    Inherits standard CRUD from BaseRepository and adds:
        - search_similar: Semantic search via pgvector cosine distance
        - search_text: Case-insensitive substring fallback
        - set_embedding / set_summary / set_topics: atomic derived-field writes
        - replace_tags / delete_with_tags: join-table maintenance

    Every derived-field write sets the content column and its ``has_*`` flag
    in one UPDATE, so the pair is never observably split.
    """

    def __init__(self) -> None:
        super().__init__(Note)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_for_user(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        user_id: str,
    ) -> Note | None:
        """Get a note by ID, only if it belongs to ``user_id``."""
        stmt = select(Note).where(Note.id == note_id, Note.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalars().first()

    async def list_for_user(self, session: AsyncSession, user_id: str) -> Sequence[Note]:
        """All notes of a user, most recently updated first."""
        stmt = (
            select(Note)
            .where(Note.user_id == user_id)
            .options(defer(Note.embedding))
            .order_by(Note.updated_at.desc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_by_job_id(
        self,
        session: AsyncSession,
        job_id: str,
        user_id: str | None = None,
    ) -> Note | None:
        """Find the note that owns a transcription job."""
        stmt = select(Note).where(Note.transcription_job_id == job_id)
        if user_id is not None:
            stmt = stmt.where(Note.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalars().first()

    async def list_missing_embeddings(
        self,
        session: AsyncSession,
        user_id: str,
    ) -> Sequence[Note]:
        """Notes of a user that have no embedding yet (oldest first)."""
        stmt = (
            select(Note)
            .where(Note.user_id == user_id, Note.has_embedding.is_(False))
            .order_by(Note.created_at)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _write(self, session: AsyncSession, stmt: Any) -> None:
        """Execute one UPDATE in its own savepoint and commit."""
        async with self._transaction(session):
            await session.execute(stmt)

    async def create_with_tags(
        self,
        session: AsyncSession,
        *,
        user_id: str,
        title: str,
        content: str,
        tag_ids: Sequence[uuid.UUID] = (),
        **fields: Any,
    ) -> Note:
        """Insert a note and its tag links in one transaction."""
        note = Note(user_id=user_id, title=title, content=content, **fields)
        async with self._transaction(session):
            session.add(note)
            await session.flush()  # assigns defaults before linking tags
            if tag_ids:
                session.add_all(NoteTag(note_id=note.id, tag_id=tag_id) for tag_id in tag_ids)
        await session.refresh(note)
        return note

    async def update_fields(
        self,
        session: AsyncSession,
        note: Note,
        fields: dict[str, Any],
        tag_ids: Sequence[uuid.UUID] | None = None,
    ) -> Note:
        """
        Apply field changes and, when ``tag_ids`` is given, replace all tag links.

        Tag replacement is delete-all-then-insert, never a diff.
        """
        async with self._transaction(session):
            for field, value in fields.items():
                setattr(note, field, value)
            if tag_ids is not None:
                await self.replace_tags(session, note.id, tag_ids)
        await session.refresh(note)
        return note

    async def replace_tags(
        self, session: AsyncSession, note_id: uuid.UUID, tag_ids: Sequence[uuid.UUID]
    ) -> None:
        """Delete every tag link of the note, then insert ``tag_ids``. Caller commits."""
        await session.execute(delete(NoteTag).where(NoteTag.note_id == note_id))
        if tag_ids:
            session.add_all(NoteTag(note_id=note_id, tag_id=tag_id) for tag_id in tag_ids)

    async def delete_with_tags(self, session: AsyncSession, note: Note) -> None:
        """
        Remove a note's tag links, then the note, in a single transaction.

        Either both steps are committed or neither is.
        """
        async with self._transaction(session):
            await session.execute(delete(NoteTag).where(NoteTag.note_id == note.id))
            await session.execute(delete(Note).where(Note.id == note.id))

    async def set_embedding(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        embedding: list[float],
        model: str,
    ) -> None:
        """
        Overwrite a note's embedding together with its metadata and flag.

        Uses bulk UPDATE (no SELECT required); pgvector's bind processor
        handles the vector literal so callers never build SQL.
        """
        now = utcnow()
        stmt = (
            update(Note)
            .where(Note.id == note_id)
            .values(
                embedding=embedding,
                embedding_model=model,
                embedding_generated_at=now,
                has_embedding=True,
                updated_at=now,
            )
        )
        await self._write(session, stmt)

    async def set_summary(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        summary: str,
        key_points: list[str],
        tokens_used: int,
    ) -> None:
        """Overwrite a note's AI summary fields and flag atomically."""
        now = utcnow()
        stmt = (
            update(Note)
            .where(Note.id == note_id)
            .values(
                summary=summary,
                key_points=key_points,
                summary_tokens_used=tokens_used,
                summary_generated_at=now,
                has_summary=True,
                updated_at=now,
            )
        )
        await self._write(session, stmt)

    async def set_topics(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        topics: dict[str, list[str]],
        tokens_used: int,
    ) -> None:
        """Overwrite a note's extracted topics blob and flag atomically."""
        now = utcnow()
        stmt = (
            update(Note)
            .where(Note.id == note_id)
            .values(
                extracted_topics=topics,
                topics_tokens_used=tokens_used,
                topics_generated_at=now,
                has_topics=True,
                updated_at=now,
            )
        )
        await self._write(session, stmt)

    async def update_transcription(
        self,
        session: AsyncSession,
        note_id: uuid.UUID,
        *,
        status: TranscriptionStatus,
        is_processing: bool,
        content: str | None = None,
        job_id: str | None = None,
        storage_key: str | None = None,
        confidence: float | None = None,
    ) -> None:
        """Write the transcription bookkeeping (and optionally new content)."""
        values: dict[str, Any] = {
            "transcription_status": status,
            "is_processing": is_processing,
            "updated_at": utcnow(),
        }
        if content is not None:
            values["content"] = content
        if job_id is not None:
            values["transcription_job_id"] = job_id
        if storage_key is not None:
            values["transcription_s3_key"] = storage_key
        if confidence is not None:
            values["transcription_confidence"] = confidence

        await self._write(session, update(Note).where(Note.id == note_id).values(**values))

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def vector_search_available(self, session: AsyncSession) -> bool:
        """True when the pgvector extension is installed in this database."""
        result = await session.execute(
            text("SELECT 1 FROM pg_extension WHERE extname = 'vector'")
        )
        return result.scalar() is not None

    async def search_similar(
        self,
        session: AsyncSession,
        *,
        user_id: str,
        embedding: list[float],
        limit: int = 5,
        min_similarity: float = 0.0,
        exclude_note_id: uuid.UUID | None = None,
    ) -> list[tuple[Note, float]]:
        """
        Search a user's notes by vector similarity using cosine distance (pgvector).

        The cosine distance is converted to a similarity score:
        ``score = 1 - distance`` (higher = more similar).

        Args:
            session: Database session.
            user_id: Owner whose notes are searched.
            embedding: Query vector (1536 dimensions).
            limit: Maximum number of results.
            min_similarity: Notes scoring below this are dropped.
            exclude_note_id: Optional note to leave out (e.g. the one being viewed).

        Returns:
            List of (Note, similarity) ordered by similarity (highest first).
        """
        distance = Note.embedding.cosine_distance(embedding).label("distance")

        stmt = (
            select(Note, distance)
            .options(defer(Note.embedding))
            .where(
                Note.user_id == user_id,
                Note.has_embedding.is_(True),
                Note.embedding.isnot(None),  # Exclude notes pending embedding
                distance <= 1.0 - min_similarity,
            )
            .order_by(distance)
            .limit(limit)
        )
        if exclude_note_id is not None:
            stmt = stmt.where(Note.id != exclude_note_id)

        result = await session.execute(stmt)
        return [(row[0], 1.0 - float(row[1])) for row in result.all()]

    async def search_text(
        self,
        session: AsyncSession,
        *,
        user_id: str,
        query: str,
        limit: int = 5,
        exclude_note_id: uuid.UUID | None = None,
    ) -> Sequence[Note]:
        """Case-insensitive substring match over title, content and summary."""
        stmt = (
            select(Note)
            .options(defer(Note.embedding))
            .where(
                Note.user_id == user_id,
                or_(
                    Note.title.icontains(query, autoescape=True),
                    Note.content.icontains(query, autoescape=True),
                    Note.summary.icontains(query, autoescape=True),
                ),
            )
            .order_by(Note.updated_at.desc())
            .limit(limit)
        )
        if exclude_note_id is not None:
            stmt = stmt.where(Note.id != exclude_note_id)

        result = await session.execute(stmt)
        return result.scalars().all()


# Module-level instance for function-based API
note_repository = NoteRepository()


# ============================================================================
# Function-based API (delegates to repository instance)
# Provides a simpler import pattern: `from repositories import notes as repo`
# ============================================================================


async def create(
    session: AsyncSession,
    *,
    user_id: str,
    title: str,
    content: str,
    tag_ids: Sequence[uuid.UUID] = (),
    **fields: Any,
) -> Note:
    """Create a new note with optional tag links."""
    return await note_repository.create_with_tags(
        session, user_id=user_id, title=title, content=content, tag_ids=tag_ids, **fields
    )


async def get_for_user(
    session: AsyncSession, note_id: uuid.UUID, user_id: str
) -> Note | None:
    """Get a note owned by a user."""
    return await note_repository.get_for_user(session, note_id, user_id)


async def list_for_user(session: AsyncSession, user_id: str) -> Sequence[Note]:
    """List a user's notes."""
    return await note_repository.list_for_user(session, user_id)


async def get_by_job_id(
    session: AsyncSession, job_id: str, user_id: str | None = None
) -> Note | None:
    """Find the note for a transcription job."""
    return await note_repository.get_by_job_id(session, job_id, user_id)


async def list_missing_embeddings(session: AsyncSession, user_id: str) -> Sequence[Note]:
    """Notes still lacking an embedding."""
    return await note_repository.list_missing_embeddings(session, user_id)


async def update_fields(
    session: AsyncSession,
    note: Note,
    fields: dict[str, Any],
    tag_ids: Sequence[uuid.UUID] | None = None,
) -> Note:
    """Update note fields and optionally replace its tags."""
    return await note_repository.update_fields(session, note, fields, tag_ids)


async def delete_with_tags(session: AsyncSession, note: Note) -> None:
    """Delete a note and its tag links."""
    await note_repository.delete_with_tags(session, note)


async def set_embedding(
    session: AsyncSession, note_id: uuid.UUID, embedding: list[float], model: str
) -> None:
    """Store a freshly generated embedding."""
    await note_repository.set_embedding(session, note_id, embedding, model)


async def set_summary(
    session: AsyncSession,
    note_id: uuid.UUID,
    summary: str,
    key_points: list[str],
    tokens_used: int,
) -> None:
    """Store a freshly generated summary."""
    await note_repository.set_summary(session, note_id, summary, key_points, tokens_used)


async def set_topics(
    session: AsyncSession,
    note_id: uuid.UUID,
    topics: dict[str, list[str]],
    tokens_used: int,
) -> None:
    """Store freshly extracted topics."""
    await note_repository.set_topics(session, note_id, topics, tokens_used)


async def update_transcription(
    session: AsyncSession, note_id: uuid.UUID, **kwargs: Any
) -> None:
    """Update transcription bookkeeping."""
    await note_repository.update_transcription(session, note_id, **kwargs)


async def vector_search_available(session: AsyncSession) -> bool:
    """Probe for the pgvector extension."""
    return await note_repository.vector_search_available(session)


async def search_similar_notes(
    session: AsyncSession,
    *,
    user_id: str,
    embedding: list[float],
    limit: int = 5,
    min_similarity: float = 0.0,
    exclude_note_id: uuid.UUID | None = None,
) -> list[tuple[Note, float]]:
    """Search notes by semantic similarity."""
    return await note_repository.search_similar(
        session,
        user_id=user_id,
        embedding=embedding,
        limit=limit,
        min_similarity=min_similarity,
        exclude_note_id=exclude_note_id,
    )


async def search_notes_text(
    session: AsyncSession,
    *,
    user_id: str,
    query: str,
    limit: int = 5,
    exclude_note_id: uuid.UUID | None = None,
) -> Sequence[Note]:
    """Substring search fallback."""
    return await note_repository.search_text(
        session, user_id=user_id, query=query, limit=limit, exclude_note_id=exclude_note_id
    )
