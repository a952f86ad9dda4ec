"""Embedding engine module."""

from src.embeddings.encoders import (
    HTTPSentenceEncoder,
    LocalSentenceEncoder,
    SentenceEncoder,
)
from src.embeddings.models import EmbeddingResult, EmbeddingStrategy
from src.embeddings.service import EmbeddingService, get_embedding_service
from src.embeddings.word_vectors import WordVectors

__all__ = [
    "EmbeddingResult",
    "EmbeddingService",
    "EmbeddingStrategy",
    "HTTPSentenceEncoder",
    "LocalSentenceEncoder",
    "SentenceEncoder",
    "WordVectors",
    "get_embedding_service",
]
