"""create users, notes, tags and note_tags

Revision ID: 5c1f0e7a2b91
Revises:
Create Date: 2026-10-18 12:40:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "5c1f0e7a2b91"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the core Brainer tables."""
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    # -- users --
    op.create_table(
        "users",
        sa.Column("id", sa.String(128), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column(
            "subscription_plan",
            sa.String(10),
            nullable=False,
            server_default="FREE",
        ),
        sa.Column("monthly_notes_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("monthly_ai_summaries", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "monthly_voice_transcriptions", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("monthly_screenshots", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("monthly_embeddings", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "last_usage_reset",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_updated_at", "users", ["updated_at"])

    # -- notes --
    op.create_table(
        "notes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        # AI summary
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("summary_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("summary_tokens_used", sa.Integer(), nullable=True),
        sa.Column("key_points", JSONB(), nullable=True),
        sa.Column("has_summary", sa.Boolean(), nullable=False, server_default=sa.false()),
        # Semantic search
        sa.Column("embedding", Vector(1536), nullable=True),
        sa.Column("embedding_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("embedding_model", sa.String(100), nullable=True),
        sa.Column("has_embedding", sa.Boolean(), nullable=False, server_default=sa.false()),
        # Topic extraction
        sa.Column("extracted_topics", JSONB(), nullable=True),
        sa.Column("topics_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("topics_tokens_used", sa.Integer(), nullable=True),
        sa.Column("has_topics", sa.Boolean(), nullable=False, server_default=sa.false()),
        # Voice transcription
        sa.Column("transcription_job_id", sa.String(255), nullable=True),
        sa.Column(
            "transcription_status",
            sa.String(20),
            nullable=False,
            server_default="NOT_STARTED",
        ),
        sa.Column("transcription_s3_key", sa.String(1024), nullable=True),
        sa.Column("transcription_confidence", sa.Float(), nullable=True),
        sa.Column("is_processing", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("transcription_job_id", name="uq_notes_transcription_job_id"),
        sa.CheckConstraint(
            "has_embedding = (embedding IS NOT NULL)", name="ck_notes_embedding_flag"
        ),
        sa.CheckConstraint(
            "has_summary = (summary IS NOT NULL)", name="ck_notes_summary_flag"
        ),
        sa.CheckConstraint(
            "has_topics = (extracted_topics IS NOT NULL)", name="ck_notes_topics_flag"
        ),
        sa.CheckConstraint(
            "transcription_job_id IS NULL "
            "OR transcription_status IN ('IN_PROGRESS', 'COMPLETED', 'FAILED')",
            name="ck_notes_job_status",
        ),
    )
    op.create_index("ix_notes_user_id", "notes", ["user_id"])
    op.create_index("ix_notes_updated_at", "notes", ["updated_at"])

    # -- tags --
    op.create_table(
        "tags",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("color", sa.String(7), nullable=False, server_default="#3B82F6"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_tags_name"),
    )

    # -- note_tags --
    op.create_table(
        "note_tags",
        sa.Column("note_id", sa.Uuid(), nullable=False),
        sa.Column("tag_id", sa.Uuid(), nullable=False),
        sa.PrimaryKeyConstraint("note_id", "tag_id"),
        sa.ForeignKeyConstraint(["note_id"], ["notes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tag_id"], ["tags.id"], ondelete="CASCADE"),
    )


def downgrade() -> None:
    """Drop the core Brainer tables."""
    op.drop_table("note_tags")
    op.drop_table("tags")
    op.drop_index("ix_notes_updated_at", table_name="notes")
    op.drop_index("ix_notes_user_id", table_name="notes")
    op.drop_table("notes")
    op.drop_index("ix_users_updated_at", table_name="users")
    op.drop_table("users")
