"""Core types."""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Union

from .errors import MetadataError

# JSON-shaped document metadata
Metadata = Union[None, bool, int, float, str, list["Metadata"], dict[str, "Metadata"]]


@dataclass(frozen=True, slots=True)
class PIIMatch:
    """A single structured PII detection."""
    category: str              # e.g. "SSN", "EMAIL", "PHONE"
    start: int
    end: int
    matched_text: str
    entity_id: int | None = None   # assigned by Redactor.redact, None from detect_pii

    @property
    def token(self) -> str:
        return f"[{self.category}_REDACTED_{self.entity_id}]"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "category": self.category,
            "start": self.start,
            "end": self.end,
            "matched_text": self.matched_text,
        }
        if self.entity_id is not None:
            out["entity_id"] = self.entity_id
        return out


@dataclass(slots=True)
class RedactionResult:
    """Result of redacting a piece of text."""
    text: str                                            # redacted text with placeholders
    matches: list[PIIMatch] = field(default_factory=list)  # structured matches, start ascending
    heuristic_replacements: int = 0                      # name/org tokens, not traceable


@dataclass(frozen=True, slots=True)
class Chunk:
    """One stored window of a document."""
    id: str                    # "<doc_uuid>_<index>"
    content: str
    metadata: Metadata
    embedding: tuple[float, ...]
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "metadata": self.metadata,
            "embeddings": list(self.embedding),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Chunk":
        """Rebuild a chunk from its snapshot form. Raises ValueError on any
        field of the wrong type; nothing is coerced."""
        if not isinstance(data, dict):
            raise ValueError("entry must be a JSON object")
        cid, content, timestamp = data["id"], data["content"], data["timestamp"]
        if not isinstance(cid, str):
            raise ValueError(f"id must be a string, got {type(cid).__name__}")
        if not isinstance(content, str):
            raise ValueError(f"content must be a string, got {type(content).__name__}")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValueError(f"timestamp must be an integer, got {timestamp!r}")

        raw = data["embeddings"]
        if not isinstance(raw, list) or not all(
            isinstance(x, (int, float)) and not isinstance(x, bool) for x in raw
        ):
            raise ValueError("embeddings must be a list of numbers")
        embedding = tuple(float(x) for x in raw)
        if not all(math.isfinite(x) for x in embedding):
            raise ValueError("embeddings contain non-finite values")

        metadata = validate_metadata(data.get("metadata"))
        return cls(id=cid, content=content, metadata=metadata,
                   embedding=embedding, timestamp=timestamp)


@dataclass(frozen=True, slots=True)
class SearchResult:
    id: str
    content: str
    score: float
    metadata: Metadata
    type: str = "chunk"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "id": self.id,
            "content": self.content,
            "score": self.score,
            "metadata": self.metadata,
        }


@dataclass(frozen=True, slots=True)
class ReasoningRecord:
    """Narrative entry appended by agentic search; not a chunk."""
    content: str
    type: str = "reasoning"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "content": self.content}


def validate_metadata(value: Any, _path: str = "metadata") -> Metadata:
    """Check that *value* survives a JSON round trip unchanged.

    Raises MetadataError naming the offending path otherwise.
    """
    if value is None or isinstance(value, (bool, str, int)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise MetadataError(f"{_path}: non-finite float is not JSON")
        return value
    if isinstance(value, list):
        for i, item in enumerate(value):
            validate_metadata(item, f"{_path}[{i}]")
        return value
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise MetadataError(f"{_path}: key {key!r} is not a string")
            validate_metadata(item, f"{_path}.{key}")
        return value
    raise MetadataError(f"{_path}: unsupported type {type(value).__name__}")
