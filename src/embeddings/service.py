"""Embedding engine with tiered fallback and similarity primitives."""

import asyncio
import threading
import time
from collections.abc import Sequence
from functools import lru_cache

import numpy as np
import numpy.typing as npt

from src.config import EmbeddingSettings, get_settings
from src.embeddings.encoders import SentenceEncoder, create_sentence_encoder
from src.embeddings.models import EmbeddingResult, EmbeddingStrategy
from src.embeddings.tokenize import word_tokens
from src.embeddings.vectors import (
    VectorLike,
    as_array,
    cosine_similarity,
    hashed_embedding,
    normalize,
    rank_scores,
)
from src.embeddings.word_vectors import WordVectors
from src.exceptions import EmbeddingError, ErrorCode
from src.logging_config import get_logger
from src.observability.metrics import track_embedding_request

logger = get_logger(__name__)

HASHED_MODEL_NAME = "hashed-bow"

# Relative weight of each metadata field in a combined media embedding.
DESCRIPTION_WEIGHT = 1.0
KEYWORDS_WEIGHT = 0.8
TRANSCRIPT_WEIGHT = 0.5
PEOPLE_WEIGHT = 0.7

# Failures that switch a tier off until reset_models().
_TIER_DISABLING_CODES = frozenset(
    {ErrorCode.EMBEDDING_MODEL_UNAVAILABLE, ErrorCode.EMBEDDING_DIMENSION_MISMATCH}
)


class EmbeddingService:
    """Turns text into unit-normalized vectors.

    Three strategies are tried in order and the first that produces a
    vector wins:

    1. a sentence encoder (local sentence-transformers model or an HTTP
       embedding server), which embeds the text as a whole;
    2. the average of word vectors, when a word-vector file is configured
       and at least one word of the text is in its vocabulary;
    3. a hashed bag-of-words, which always succeeds for non-empty text
       and is deterministic across processes.

    Every vector the service returns has `dimensions` components. A
    sentence model or word-vector table of another width is disabled on
    first contact, so stored and query vectors are always comparable.

    Models are loaded on first use and shared by all callers. The
    service holds no per-call state, so concurrent calls are safe.
    """

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        sentence_encoder: SentenceEncoder | None = None,
        word_vectors: WordVectors | None = None,
    ) -> None:
        """Initialize the embedding service.

        Args:
            settings: Embedding configuration. Uses defaults if not provided.
            sentence_encoder: Sentence tier. Built from settings if not provided.
            word_vectors: Word tier. Built from settings if not provided.
        """
        self._settings = settings or get_settings().embedding
        self._sentence = (
            sentence_encoder
            if sentence_encoder is not None
            else create_sentence_encoder(self._settings)
        )
        if word_vectors is None and self._settings.word_vectors_path is not None:
            word_vectors = WordVectors(self._settings.word_vectors_path)
        self._words = word_vectors

        self._sentence_available = self._sentence is not None
        self._words_available = self._words is not None
        self._load_lock = threading.Lock()
        self._models_loaded = False

    @property
    def dimensions(self) -> int:
        """Width of hashed and combined vectors."""
        return self._settings.dimensions

    @property
    def sentence_model_name(self) -> str | None:
        """Name of the configured sentence model, if any."""
        return self._sentence.model_name if self._sentence is not None else None

    # -- model lifecycle -------------------------------------------------

    def load_models(self) -> None:
        """Load the word-vector table once.

        Safe to call repeatedly and from several threads. The sentence
        encoder loads itself on first encode. A tier that fails to load
        is disabled until `reset_models()`.
        """
        if self._models_loaded:
            return
        with self._load_lock:
            if self._models_loaded:
                return
            if self._words is not None:
                try:
                    self._words.load()
                    self._check_width(self._words.dimensions, "word-vectors")
                except EmbeddingError as e:
                    self._words_available = False
                    logger.warning(f"Word vectors disabled: {e.message}", extra=e.details)
            self._models_loaded = True

    def reset_models(self) -> None:
        """Forget loaded models and past load failures.

        The next embedding call reloads everything, which picks up a
        replaced model or vector file.
        """
        with self._load_lock:
            unload = getattr(self._sentence, "unload", None)
            if callable(unload):
                unload()
            if self._words is not None and self._settings.word_vectors_path is not None:
                self._words = WordVectors(self._settings.word_vectors_path)
            self._sentence_available = self._sentence is not None
            self._words_available = self._words is not None
            self._models_loaded = False
        logger.info("Embedding models reset")

    async def close(self) -> None:
        """Release encoder resources."""
        if self._sentence is not None:
            await self._sentence.close()

    # -- embedding -------------------------------------------------------

    async def embed_result(self, text: str) -> EmbeddingResult | None:
        """Embed text and report which strategy produced the vector.

        Args:
            text: Text to embed. Surrounding whitespace is ignored.

        Returns:
            EmbeddingResult, or None for empty text.
        """
        cleaned = text.strip()
        if not cleaned:
            return None

        if not self._models_loaded:
            await asyncio.to_thread(self.load_models)
        start = time.perf_counter()

        vector = await self._sentence_vector(cleaned)
        strategy = EmbeddingStrategy.SENTENCE
        model = self.sentence_model_name or ""

        if vector is None:
            vector = await asyncio.to_thread(self._word_vector, cleaned)
            strategy = EmbeddingStrategy.WORD
            model = "word-vectors"

        if vector is None:
            vector = hashed_embedding(cleaned, self.dimensions)
            strategy = EmbeddingStrategy.HASHED
            model = HASHED_MODEL_NAME

        track_embedding_request(strategy.value, time.perf_counter() - start)
        embedding = vector.tolist()
        return EmbeddingResult(
            text=cleaned,
            embedding=embedding,
            model=model,
            strategy=strategy,
            dimensions=len(embedding),
        )

    async def embed(self, text: str) -> list[float] | None:
        """Embed text as a unit vector, or None for empty text."""
        result = await self.embed_result(text)
        if result is None:
            track_embedding_request("none", 0.0, success=False)
            return None
        return result.embedding

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float] | None]:
        """Embed each text independently, preserving input order."""
        return [await self.embed(text) for text in texts]

    async def embed_media_metadata(
        self,
        description: str,
        keywords: Sequence[str],
        transcript: str | None = None,
        people: Sequence[str] | None = None,
    ) -> list[float] | None:
        """Weighted combination of a media item's text fields.

        Each non-empty field is embedded separately, scaled by its weight
        (description 1.0, keywords 0.8, transcript 0.5, people 0.7), and
        the sum is divided by the total weight of the fields that produced
        a vector before being renormalized. Only the first
        `transcript_max_chars` characters of the transcript are used.

        Returns:
            Unit vector of `dimensions` width, or None if no field
            produced a vector.
        """
        fields: list[tuple[str, float]] = []
        if description:
            fields.append((description, DESCRIPTION_WEIGHT))
        if keywords:
            fields.append((" ".join(keywords), KEYWORDS_WEIGHT))
        if transcript:
            fields.append(
                (transcript[: self._settings.transcript_max_chars], TRANSCRIPT_WEIGHT)
            )
        if people:
            fields.append((" ".join(people), PEOPLE_WEIGHT))

        if not fields:
            return None

        total = np.zeros(self.dimensions, dtype=np.float32)
        total_weight = 0.0
        for text, weight in fields:
            vector = await self.embed(text)
            if vector is None:
                continue
            total += as_array(vector) * np.float32(weight)
            total_weight += weight

        if total_weight <= 0:
            return None

        return normalize(total / np.float32(total_weight)).tolist()

    # -- similarity ------------------------------------------------------

    @staticmethod
    def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
        """Cosine similarity; 0.0 for mismatched, empty or zero vectors."""
        return cosine_similarity(a, b)

    @staticmethod
    def find_similar(
        query_vector: VectorLike,
        candidates: Sequence[tuple[str, VectorLike]],
        top_k: int = 10,
        threshold: float = 0.3,
    ) -> list[tuple[str, float]]:
        """Rank candidates by cosine similarity to the query.

        Returns at most `top_k` (id, score) pairs with score >= threshold,
        best first; equal scores are ordered by id.
        """
        scored = (
            (candidate_id, cosine_similarity(query_vector, vector))
            for candidate_id, vector in candidates
        )
        return rank_scores(
            ((cid, score) for cid, score in scored if score >= threshold), top_k
        )

    # -- tiers -----------------------------------------------------------

    def _check_width(self, width: int, model: str) -> None:
        """Reject a tier whose vectors are not `dimensions` wide."""
        if width != self.dimensions:
            raise EmbeddingError(
                f"{model} produces {width}-dimension vectors, expected {self.dimensions}",
                code=ErrorCode.EMBEDDING_DIMENSION_MISMATCH,
                details={"model": model, "width": width, "expected": self.dimensions},
            )

    async def _sentence_vector(self, text: str) -> npt.NDArray[np.float32] | None:
        if self._sentence is None or not self._sentence_available:
            return None
        try:
            raw = await self._sentence.encode(text)
            self._check_width(len(raw), self._sentence.model_name)
        except EmbeddingError as e:
            if e.code in _TIER_DISABLING_CODES:
                self._sentence_available = False
                logger.warning(f"Sentence tier disabled: {e.message}", extra=e.details)
            else:
                logger.warning(f"Sentence tier failed: {e.message}", extra=e.details)
            return None
        return normalize(raw)

    def _word_vector(self, text: str) -> npt.NDArray[np.float32] | None:
        if self._words is None or not self._words_available:
            return None

        found: list[npt.NDArray[np.float32]] = []
        try:
            for word in word_tokens(text):
                vector = self._words.vector(word)
                if vector is not None:
                    found.append(vector)
        except EmbeddingError as e:
            self._words_available = False
            logger.warning(f"Word vectors disabled: {e.message}", extra=e.details)
            return None

        if not found:
            return None
        return normalize(np.mean(np.stack(found), axis=0))


@lru_cache
def get_embedding_service() -> EmbeddingService:
    """Process-wide embedding service built from settings."""
    return EmbeddingService()
