"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class SentenceBackend(str, Enum):
    """Where sentence-level embeddings come from."""

    LOCAL = "local"
    HTTP = "http"
    NONE = "none"


class EmbeddingSettings(BaseSettings):
    """Embedding engine configuration.

    The sentence model is tried first, then word vectors (if a vector
    file is configured), then the hashed bag-of-words fallback.
    """

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    dimensions: int = Field(
        default=512,
        gt=0,
        description="Target vector dimension for hashed and combined vectors",
    )
    sentence_backend: SentenceBackend = Field(
        default=SentenceBackend.LOCAL,
        description="Sentence embedding backend (local, http or none)",
    )
    model: str = Field(
        default="sentence-transformers/distiluse-base-multilingual-cased-v2",
        description="Sentence embedding model name",
    )
    base_url: str = Field(
        default="http://localhost:8080",
        description="Embedding server base URL (http backend only)",
    )
    timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds (http backend only)",
    )
    word_vectors_path: Path | None = Field(
        default=None,
        description="GloVe or word2vec text file for the word-vector tier",
    )
    transcript_max_chars: int = Field(
        default=500,
        gt=0,
        description="Transcript prefix length used for metadata embeddings",
    )


class StoreSettings(BaseSettings):
    """Vector store configuration."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    path: Path = Field(
        default=Path("data/vector_store.json"),
        description="Location of the persisted store document",
    )
    autoload: bool = Field(
        default=True,
        description="Load the persisted document when opening the store",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Nested settings
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
