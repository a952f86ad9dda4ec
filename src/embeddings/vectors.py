"""Vector math: normalization, cosine similarity and the hashed fallback."""

import hashlib
from collections.abc import Iterable, Sequence

import numpy as np
import numpy.typing as npt

from src.embeddings.tokenize import extract_keywords

VectorLike = Sequence[float] | npt.NDArray[np.floating]


def as_array(vector: VectorLike) -> npt.NDArray[np.float32]:
    """View a vector as a flat float32 array."""
    return np.asarray(vector, dtype=np.float32).reshape(-1)


def normalize(vector: VectorLike) -> npt.NDArray[np.float32]:
    """Scale a vector to unit length; the zero vector is returned unchanged."""
    arr = as_array(vector)
    norm = float(np.linalg.norm(arr))
    if norm > 0:
        arr = arr / np.float32(norm)
    return arr.astype(np.float32)


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """Cosine of the angle between two vectors.

    Returns 0.0 when lengths differ, either vector is empty, or either
    vector has zero norm.
    """
    va = as_array(a)
    vb = as_array(b)
    if va.size == 0 or va.shape != vb.shape:
        return 0.0

    denominator = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if denominator <= 0:
        return 0.0
    return float(np.dot(va, vb)) / denominator


def token_bucket(token: str, dimensions: int) -> int:
    """Stable bucket for a token, identical across processes and platforms."""
    digest = hashlib.md5(token.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") % dimensions


def hashed_embedding(text: str, dimensions: int) -> npt.NDArray[np.float32]:
    """Hashed bag-of-words vector.

    Each keyword (see `extract_keywords`) increments one of `dimensions`
    buckets. The result is normalized; text without any keyword yields
    the zero vector.
    """
    counts = np.zeros(dimensions, dtype=np.float32)
    for token in extract_keywords(text):
        counts[token_bucket(token, dimensions)] += 1.0
    return normalize(counts)


def rank_scores(
    scores: Iterable[tuple[str, float]],
    top_k: int,
) -> list[tuple[str, float]]:
    """Sort (id, score) pairs by score descending, then id, and keep top_k."""
    ordered = sorted(scores, key=lambda item: (-item[1], item[0]))
    return ordered[: max(top_k, 0)]
