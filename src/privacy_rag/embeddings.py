"""Embedding providers and similarity scoring.

``CharacterFoldEmbedder`` is a structural placeholder, not a language
model: it folds character code points into a fixed-size vector. Anything
implementing ``EmbeddingProvider`` can replace it without touching the
engine.
"""

from __future__ import annotations
import logging
from functools import lru_cache
from typing import Protocol, Sequence, runtime_checkable

import numpy as np

from .errors import EmbeddingError

logger = logging.getLogger(__name__)

DEFAULT_DIMENSION = 384


@runtime_checkable
class EmbeddingProvider(Protocol):
    """text -> fixed-dimension vector. Must be pure for a given text."""

    dimension: int

    def embed(self, text: str) -> list[float]:
        ...


class CharacterFoldEmbedder:
    """Deterministic, non-semantic reference embedder.

    Each character's code point (scaled by 1/1000) is added to slot
    ``position % dimension``; the result is L2-normalised. A zero vector
    (empty text) is returned as-is.
    """

    def __init__(self, dimension: int = DEFAULT_DIMENSION, *, cache_size: int = 1024) -> None:
        if dimension < 1:
            raise ValueError("dimension must be at least 1")
        self.dimension = dimension
        self._cached = lru_cache(maxsize=cache_size)(self._compute)

    def embed(self, text: str) -> list[float]:
        return list(self._cached(text))

    def _compute(self, text: str) -> tuple[float, ...]:
        acc = np.zeros(self.dimension, dtype=np.float64)
        if text:
            codes = np.fromiter((ord(ch) for ch in text), dtype=np.float64, count=len(text))
            slots = np.arange(len(text)) % self.dimension
            np.add.at(acc, slots, codes / 1000.0)
        norm = float(np.linalg.norm(acc))
        if norm > 0:
            acc = acc / norm
        return tuple(acc.tolist())


def embed_checked(provider: EmbeddingProvider, text: str) -> np.ndarray:
    """Embed *text* and verify the vector shape.

    Provider exceptions are re-raised as EmbeddingError.
    """
    try:
        vec = provider.embed(text)
    except EmbeddingError:
        raise
    except Exception as e:
        raise EmbeddingError(f"embedding provider failed: {e}") from e
    arr = np.asarray(vec, dtype=np.float64)
    if arr.ndim != 1 or arr.shape[0] != provider.dimension:
        raise EmbeddingError(
            f"expected a vector of length {provider.dimension}, got shape {arr.shape}"
        )
    if not np.all(np.isfinite(arr)):
        raise EmbeddingError("embedding contains non-finite values")
    return arr


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between *a* and *b*; 0.0 if either is zero."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / denom, -1.0, 1.0))


def cosine_scores(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Row-wise cosine similarity of *matrix* (N x D) against *query* (D,)."""
    if matrix.size == 0:
        return np.zeros(matrix.shape[0], dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.zeros_like(dots)
    nonzero = norms > 0
    scores[nonzero] = dots[nonzero] / norms[nonzero]
    return np.clip(scores, -1.0, 1.0)
