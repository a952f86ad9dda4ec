"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from src.config import EmbeddingSettings, SentenceBackend, StoreSettings
from src.embeddings.service import EmbeddingService
from src.vectorstore.service import VectorStore


@pytest.fixture
def embedding_settings() -> EmbeddingSettings:
    """Embedding settings with only the hashed tier enabled."""
    return EmbeddingSettings(sentence_backend=SentenceBackend.NONE)


@pytest.fixture
def embedding_service(embedding_settings: EmbeddingSettings) -> EmbeddingService:
    """Deterministic embedding service (hashed fallback only)."""
    return EmbeddingService(settings=embedding_settings)


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    """Location for the persisted store document."""
    return tmp_path / "store" / "vector_store.json"


@pytest.fixture
async def store(
    store_path: Path,
    embedding_service: EmbeddingService,
) -> AsyncGenerator[VectorStore, None]:
    """Empty vector store persisting under a temporary directory.

    Yields:
        VectorStore backed by the hashed embedding service.
    """
    settings = StoreSettings(path=store_path, autoload=False)
    yield VectorStore(settings=settings, embedding_service=embedding_service)
