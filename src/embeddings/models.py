"""Embedding data models."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class EmbeddingStrategy(str, Enum):
    """Embedding tiers, in the order they are tried."""

    SENTENCE = "sentence"
    WORD = "word"
    HASHED = "hashed"


class EmbeddingResult(BaseModel):
    """Result of an embedding operation.

    Attributes:
        text: The text that was embedded (after trimming).
        embedding: The unit-normalized embedding vector.
        model: The model used to generate the embedding.
        strategy: The tier that produced the vector.
        dimensions: Number of dimensions in the embedding.
        generated_at: When the vector was produced.
    """

    text: str = Field(description="Embedded text")
    embedding: list[float] = Field(description="Embedding vector")
    model: str = Field(description="Model used for embedding")
    strategy: EmbeddingStrategy = Field(description="Tier that produced the vector")
    dimensions: int = Field(description="Vector dimensions")
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def model_post_init(self, __context: object) -> None:
        """Validate dimensions match embedding length."""
        if self.dimensions != len(self.embedding):
            raise ValueError(
                f"dimensions ({self.dimensions}) does not match "
                f"embedding length ({len(self.embedding)})"
            )
