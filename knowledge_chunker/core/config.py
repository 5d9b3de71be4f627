"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Chunker settings with environment variable binding.

    No env vars are required; every value has a default.

    Optional env vars:
        CHUNK_MAX_LEN (2400), CHUNK_MIN_LEN (80), CHUNK_MIN_UNIT_LEN (20),
        CHUNK_MAX_PER_GROUP (12), CHUNK_MAX_TOTAL (1200),
        DEFAULT_DOCUMENT_NAME (Document), LOG_LEVEL (INFO)
    """

    PROJECT_NAME: str = "HR Knowledge Chunker"

    # Chunk sizing (characters)
    CHUNK_MAX_LEN: int = 2400
    CHUNK_MIN_LEN: int = 80
    CHUNK_MIN_UNIT_LEN: int = 20

    # Chunk-count ceilings
    CHUNK_MAX_PER_GROUP: int = 12
    CHUNK_MAX_TOTAL: int = 1200

    # Titles
    DEFAULT_DOCUMENT_NAME: str = "Document"

    # Text loading
    TEXT_FILE_EXTENSIONS: list[str] = [".txt", ".md"]
    PAGE_BREAK: str = "\f"

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )


settings = Settings()
