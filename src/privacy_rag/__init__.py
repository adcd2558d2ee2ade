"""privacy-rag — PII-gated local retrieval for document assistants."""

from .redactor import Redactor, RedactorConfig
from .patterns import PatternRegistry
from .chunker import Chunker, chunk_text
from .embeddings import CharacterFoldEmbedder, EmbeddingProvider, cosine_similarity
from .store import DocumentStore
from .engine import EngineConfig, RetrievalEngine
from .gate import IngestResult, PrivacyGate
from .config import create_gate, load_config, load_from_yaml
from .types import Chunk, PIIMatch, ReasoningRecord, RedactionResult, SearchResult
from .errors import (
    EmbeddingError, IndexIOError, MetadataError, PatternError,
    PrivacyRagError, SerializationError, SourceError, UnsupportedFormatError,
)

__all__ = [
    "Redactor", "RedactorConfig", "PatternRegistry",
    "Chunker", "chunk_text",
    "CharacterFoldEmbedder", "EmbeddingProvider", "cosine_similarity",
    "DocumentStore",
    "EngineConfig", "RetrievalEngine",
    "IngestResult", "PrivacyGate",
    "create_gate", "load_config", "load_from_yaml",
    "Chunk", "PIIMatch", "ReasoningRecord", "RedactionResult", "SearchResult",
    "EmbeddingError", "IndexIOError", "MetadataError", "PatternError",
    "PrivacyRagError", "SerializationError", "SourceError", "UnsupportedFormatError",
]
__version__ = "0.1.0"
