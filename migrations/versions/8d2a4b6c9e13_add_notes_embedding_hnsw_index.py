"""add hnsw index on notes.embedding

Revision ID: 8d2a4b6c9e13
Revises: 5c1f0e7a2b91
Create Date: 2026-10-18 12:45:00.000000

"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8d2a4b6c9e13"
down_revision: str | Sequence[str] | None = "5c1f0e7a2b91"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """HNSW index for cosine similarity search over note embeddings."""
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_notes_embedding_hnsw
        ON notes
        USING hnsw (embedding vector_cosine_ops)
        WITH (m = 16, ef_construction = 64);
    """
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("DROP INDEX IF EXISTS ix_notes_embedding_hnsw;")
