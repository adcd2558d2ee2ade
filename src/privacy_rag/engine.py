"""RetrievalEngine — ingestion and ranked search over the document store.

Trust boundary: ``add_document`` stores content exactly as given. Keeping
PII out of the index is the caller's job (see ``privacy_rag.gate``); the
engine never calls the Redactor.

Usage:
    engine = RetrievalEngine.initialize("/tmp/index")
    doc_id = engine.add_document(redacted_text, {"source": "notes.txt"})
    for hit in engine.search("quarterly report", limit=3):
        print(hit.score, hit.content)
"""

from __future__ import annotations
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import numpy as np

from .chunker import DEFAULT_CHUNK_SIZE, DEFAULT_OVERLAP, Chunker
from .embeddings import (
    DEFAULT_DIMENSION,
    CharacterFoldEmbedder,
    EmbeddingProvider,
    cosine_scores,
    embed_checked,
)
from .locks import ReadWriteLock
from .store import DocumentStore
from .types import Chunk, ReasoningRecord, SearchResult, validate_metadata

logger = logging.getLogger(__name__)

AgenticResult = Union[SearchResult, ReasoningRecord]


@dataclass
class EngineConfig:
    """Configuration for the RetrievalEngine."""
    index_dir: str | Path | None = None     # None = ~/.privacy-rag/rag_index
    chunk_size: int = DEFAULT_CHUNK_SIZE     # words per chunk
    chunk_overlap: int = DEFAULT_OVERLAP     # words shared by neighbours
    embedding_dim: int = DEFAULT_DIMENSION
    agentic_limit: int = 10                  # fixed search depth of agentic_search
    recover_corrupt_index: bool = False


class RetrievalEngine:
    """Chunk → embed → store on ingestion; embed → scan → rank on search.

    Writers (add_document, clear_index) hold the lock exclusively; readers
    (search, agentic_search, counts) share it.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        config: EngineConfig | None = None,
        embedder: EmbeddingProvider | None = None,
    ) -> None:
        if not isinstance(store, DocumentStore):
            raise TypeError("use RetrievalEngine.initialize() to open an engine")
        self.config = config or EngineConfig()
        self.embedder = embedder or CharacterFoldEmbedder(self.config.embedding_dim)
        self.chunker = Chunker(self.config.chunk_size, self.config.chunk_overlap)
        self._store = store
        self._lock = ReadWriteLock()

    @classmethod
    def initialize(
        cls,
        index_dir: str | Path | None = None,
        *,
        config: EngineConfig | None = None,
        embedder: EmbeddingProvider | None = None,
    ) -> "RetrievalEngine":
        """Open the index (creating it if needed) and return a ready engine."""
        config = config or EngineConfig()
        store = DocumentStore.initialize(
            index_dir or config.index_dir,
            dimension=embedder.dimension if embedder is not None else config.embedding_dim,
            recover_corrupt=config.recover_corrupt_index,
        )
        return cls(store, config=config, embedder=embedder)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_document(self, content: str, metadata: Any = None) -> str:
        """Chunk, embed and store *content*. Returns the new document id.

        All chunks are embedded before the store is touched, so a failing
        embedder leaves the index unchanged.
        """
        validate_metadata(metadata)
        doc_id = str(uuid.uuid4())
        pieces = self.chunker.chunk(content)
        now = int(time.time())

        chunks = [
            Chunk(
                id=f"{doc_id}_{i}",
                content=piece,
                metadata=metadata,
                embedding=tuple(embed_checked(self.embedder, piece).tolist()),
                timestamp=now,
            )
            for i, piece in enumerate(pieces)
        ]

        with self._lock.write():
            self._store.insert_many(chunks)
        logger.info("Added document %s (%d chunks)", doc_id, len(chunks))
        return doc_id

    def clear_index(self) -> None:
        with self._lock.write():
            self._store.clear()
        logger.info("Cleared index at %s", self._store.path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def search(self, query: str, limit: int = 5) -> list[SearchResult]:
        """Top *limit* chunks by cosine similarity to *query*.

        Equal scores are ordered by chunk id so results are reproducible.
        """
        if limit < 0:
            raise ValueError("limit must not be negative")
        if limit == 0:
            return []
        query_vec = embed_checked(self.embedder, query)

        with self._lock.read():
            chunks = self._store.values()
        if not chunks:
            return []

        # Linear scan: O(N * D), no secondary index
        matrix = np.asarray([c.embedding for c in chunks], dtype=np.float64)
        scores = cosine_scores(matrix, query_vec)
        ranked = sorted(zip(scores.tolist(), chunks), key=lambda sc: (-sc[0], sc[1].id))

        logger.debug("Scored %d chunks, returning top %d", len(chunks), limit)
        return [
            SearchResult(id=c.id, content=c.content, score=score, metadata=c.metadata)
            for score, c in ranked[:limit]
        ]

    def agentic_search(self, query: str, context: str) -> list[AgenticResult]:
        """Context-augmented search plus one trailing reasoning record.

        The returned list mixes two shapes; check ``item.type``
        ("chunk" or "reasoning") before reading chunk fields.
        """
        enhanced = f"{query} Context: {context}"
        results = self.search(enhanced, self.config.agentic_limit)
        results = self._rerank(results, query)
        reasoning = ReasoningRecord(content=self._reasoning(results, query))
        return [*results, reasoning]

    def get_document_count(self) -> int:
        """Number of stored chunks."""
        with self._lock.read():
            return len(self._store)

    def get_chunk(self, chunk_id: str) -> Chunk | None:
        with self._lock.read():
            return self._store.get(chunk_id)

    @property
    def index_path(self) -> Path:
        return self._store.path

    # ------------------------------------------------------------------
    # Extension seams
    # ------------------------------------------------------------------

    def _rerank(self, results: list[SearchResult], query: str) -> list[SearchResult]:
        # Stable re-sort on the retrieval score; a real reranker scores against query.
        return sorted(results, key=lambda r: -r.score)

    def _reasoning(self, results: list[SearchResult], query: str) -> str:
        return (
            f"Based on the query '{query}', I found {len(results)} relevant documents. "
            "The top results suggest that the answer relates to the following key points..."
        )
