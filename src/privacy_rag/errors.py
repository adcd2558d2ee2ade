"""Error taxonomy.

Every failure the library raises derives from ``PrivacyRagError`` and
carries a short ``kind`` tag so callers (CLI, HTTP sidecar) can report
one failure kind without matching on class names.
"""

from __future__ import annotations


class PrivacyRagError(Exception):
    """Base class for all privacy-rag failures."""
    kind = "error"


class PatternError(PrivacyRagError, ValueError):
    """A custom PII pattern could not be registered."""
    kind = "pattern"


class MetadataError(PrivacyRagError, ValueError):
    """Document metadata is not a JSON-shaped value."""
    kind = "metadata"


class ConfigError(PrivacyRagError, ValueError):
    kind = "config"


class IndexIOError(PrivacyRagError, OSError):
    """Reading or writing the index snapshot failed."""
    kind = "io"


class SerializationError(PrivacyRagError):
    """The index snapshot exists but cannot be decoded."""
    kind = "serialization"


class EmbeddingError(PrivacyRagError):
    """An embedding provider failed or returned a malformed vector."""
    kind = "embedding"


class SourceError(PrivacyRagError):
    """A source document could not be read."""
    kind = "source"


class UnsupportedFormatError(SourceError):
    kind = "unsupported_format"
