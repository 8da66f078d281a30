"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars (no defaults):
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_DB

    Optional env vars:
        POSTGRES_PORT (5432), LOG_LEVEL (INFO), OPENAI_* model names,
        AWS_* credentials and bucket, transcript fetch retry tuning,
        VECTOR_SEARCH_ENABLED (True)

    Note:
        OPENAI_API_KEY is deliberately not a field here. It is read from the
        environment at call time by services.ai so that it can be rotated
        (or set to 'mock') without restarting the process.
    """

    PROJECT_NAME: str = "Brainer"

    # Database
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str

    # OpenAI
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    OPENAI_CHAT_MODEL: str = "gpt-3.5-turbo"

    # AWS (S3 + Transcribe)
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None
    AWS_S3_BUCKET_NAME: str = "brainer-audio-uploads"
    TRANSCRIBE_LANGUAGE_CODE: str = "en-US"

    # Transcript fallback listing (storage is eventually consistent)
    TRANSCRIPT_FETCH_ATTEMPTS: int = 3
    TRANSCRIPT_FETCH_DELAY_SECONDS: float = 2.0

    # Search / enrichment
    VECTOR_SEARCH_ENABLED: bool = True
    EMBEDDING_BACKFILL_DELAY_SECONDS: float = 0.1

    # Uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    TESSERACT_LANGUAGE: str = "eng"

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL connection string using asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def AWS_CONFIGURED(self) -> bool:
        """True when credentials and bucket are all present."""
        return bool(
            self.AWS_ACCESS_KEY_ID
            and self.AWS_SECRET_ACCESS_KEY
            and self.AWS_S3_BUCKET_NAME
        )


settings = Settings()  # type: ignore[call-arg]
