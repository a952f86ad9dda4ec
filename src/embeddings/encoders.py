"""Sentence-level encoders: the first and best embedding tier."""

import asyncio
import threading
from abc import ABC, abstractmethod
from typing import Any

import httpx

from src.config import EmbeddingSettings, SentenceBackend
from src.exceptions import EmbeddingError, ErrorCode
from src.logging_config import get_logger

logger = get_logger(__name__)


class SentenceEncoder(ABC):
    """Abstract base class for sentence embedding backends.

    Implementations load their model lazily; `encode` raises
    EmbeddingError when the model is unavailable or fails on a text.
    """

    @abstractmethod
    async def encode(self, text: str) -> list[float]:
        """Embed a whole text as one vector.

        Args:
            text: Non-empty, trimmed text.

        Returns:
            Raw (not necessarily normalized) vector.

        Raises:
            EmbeddingError: If the backend cannot produce a vector.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name used for embeddings."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        return None


class LocalSentenceEncoder(SentenceEncoder):
    """In-process sentence-transformers model.

    The model is loaded on first use. Loading is guarded by a lock so
    concurrent first calls load it exactly once; a failed load is
    remembered until `unload()` is called.
    """

    def __init__(self, model_name: str) -> None:
        self._model_name = model_name
        self._model: Any = None
        self._load_error: str | None = None
        self._lock = threading.Lock()

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._model_name

    @property
    def loaded(self) -> bool:
        """Whether the model is in memory."""
        return self._model is not None

    def load(self) -> Any:
        """Load the model if needed and return it."""
        if self._model is not None:
            return self._model

        with self._lock:
            if self._model is not None:
                return self._model
            if self._load_error is not None:
                raise EmbeddingError(
                    f"Sentence model unavailable: {self._load_error}",
                    code=ErrorCode.EMBEDDING_MODEL_UNAVAILABLE,
                    details={"model": self._model_name},
                )

            try:
                from sentence_transformers import SentenceTransformer

                self._model = SentenceTransformer(self._model_name)
            except Exception as e:
                self._load_error = str(e)
                logger.warning(
                    f"Sentence model failed to load: {e}",
                    extra={"model": self._model_name},
                )
                raise EmbeddingError(
                    f"Sentence model unavailable: {e}",
                    code=ErrorCode.EMBEDDING_MODEL_UNAVAILABLE,
                    details={"model": self._model_name},
                ) from e

            logger.info("Sentence model loaded", extra={"model": self._model_name})
            return self._model

    def unload(self) -> None:
        """Drop the model (and any remembered load failure)."""
        with self._lock:
            self._model = None
            self._load_error = None

    def _encode_sync(self, text: str) -> list[float]:
        model = self.load()
        try:
            vector = model.encode(text, convert_to_numpy=True)
        except Exception as e:
            raise EmbeddingError(
                f"Sentence model failed to encode text: {e}",
                code=ErrorCode.EMBEDDING_BACKEND_ERROR,
                details={"model": self._model_name},
            ) from e
        return [float(x) for x in vector]

    async def encode(self, text: str) -> list[float]:
        """Encode on a worker thread so model inference does not block the loop."""
        return await asyncio.to_thread(self._encode_sync, text)


class HTTPSentenceEncoder(SentenceEncoder):
    """Sentence encoder backed by an HTTP embedding server.

    Compatible with OpenAI-style embedding APIs and
    text-embeddings-inference (TEI) servers.
    """

    def __init__(
        self,
        settings: EmbeddingSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP encoder.

        Args:
            settings: Embedding configuration.
            client: HTTP client. Creates new one if not provided.
        """
        self._settings = settings
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._settings.model

    async def encode(self, text: str) -> list[float]:
        """Request an embedding for one text."""
        client = await self._get_client()
        url = f"{self._settings.base_url}/embeddings"
        payload = {
            "input": [text],
            "model": self._settings.model,
        }

        try:
            response = await client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"Embedding request failed: {e.response.status_code}",
                extra={"url": url, "status": e.response.status_code},
            )
            raise EmbeddingError(
                f"Embedding service returned {e.response.status_code}",
                code=ErrorCode.EMBEDDING_BACKEND_ERROR,
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            logger.warning(f"Embedding request error: {e}", extra={"url": url})
            raise EmbeddingError(
                f"Failed to connect to embedding service: {e}",
                code=ErrorCode.EMBEDDING_BACKEND_ERROR,
                details={"url": url},
            ) from e

        try:
            data = response.json()
            embedding = data["data"][0]["embedding"]
            vector = [float(x) for x in embedding]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingError(
                f"Invalid response from embedding service: {e}",
                code=ErrorCode.EMBEDDING_BACKEND_ERROR,
                details={"error": str(e)},
            ) from e

        if not vector:
            raise EmbeddingError(
                "Embedding service returned an empty vector",
                code=ErrorCode.EMBEDDING_BACKEND_ERROR,
                details={"url": url},
            )
        return vector


def create_sentence_encoder(settings: EmbeddingSettings) -> SentenceEncoder | None:
    """Build the configured sentence encoder, or None when disabled."""
    if settings.sentence_backend == SentenceBackend.LOCAL:
        return LocalSentenceEncoder(settings.model)
    if settings.sentence_backend == SentenceBackend.HTTP:
        return HTTPSentenceEncoder(settings)
    return None
