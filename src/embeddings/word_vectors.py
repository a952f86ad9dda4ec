"""Word-vector table used by the second embedding tier."""

import threading
from pathlib import Path

import numpy as np
import numpy.typing as npt

from src.exceptions import EmbeddingError, ErrorCode
from src.logging_config import get_logger

logger = get_logger(__name__)


class WordVectors:
    """Word -> vector lookup read from a GloVe or word2vec text file.

    Each line is `word v1 v2 ... vN`. A leading word2vec header line
    (`count dims`) is skipped, as are lines whose width disagrees with
    the first vector. The file is read on first lookup.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._vectors: dict[str, npt.NDArray[np.float32]] | None = None
        self._dimensions = 0
        self._lock = threading.Lock()

    @classmethod
    def from_mapping(
        cls, vectors: dict[str, list[float]]
    ) -> "WordVectors":
        """Build an in-memory table (no backing file)."""
        table = cls(Path("<memory>"))
        table._vectors = {
            word.lower(): np.asarray(vec, dtype=np.float32)
            for word, vec in vectors.items()
        }
        table._dimensions = len(next(iter(vectors.values()), []))
        return table

    @property
    def dimensions(self) -> int:
        """Width of the loaded vectors (0 before loading)."""
        return self._dimensions

    def load(self) -> dict[str, npt.NDArray[np.float32]]:
        """Read the vector file once and return the table.

        Raises:
            EmbeddingError: If the file cannot be read.
        """
        vectors = self._vectors
        if vectors is not None:
            return vectors
        with self._lock:
            if self._vectors is None:
                self._vectors = self._read()
                logger.info(
                    f"Loaded {len(self._vectors)} word vectors",
                    extra={"path": str(self._path), "dimensions": self._dimensions},
                )
            return self._vectors

    def _read(self) -> dict[str, npt.NDArray[np.float32]]:
        vectors: dict[str, npt.NDArray[np.float32]] = {}
        try:
            with self._path.open(encoding="utf-8") as handle:
                for line in handle:
                    parts = line.rstrip().split(" ")
                    if len(parts) < 3:
                        continue
                    try:
                        values = np.asarray(parts[1:], dtype=np.float32)
                    except ValueError:
                        continue
                    if not self._dimensions:
                        self._dimensions = values.size
                    elif values.size != self._dimensions:
                        continue
                    vectors[parts[0].lower()] = values
        except OSError as e:
            raise EmbeddingError(
                f"Cannot read word vectors: {e}",
                code=ErrorCode.EMBEDDING_MODEL_UNAVAILABLE,
                details={"path": str(self._path)},
            ) from e
        return vectors

    def vector(self, word: str) -> npt.NDArray[np.float32] | None:
        """Vector for a word, or None if it is not in the vocabulary."""
        return self.load().get(word.lower())

    def __len__(self) -> int:
        return len(self.load())
