"""Privacy gate — the ingestion boundary in front of the retrieval engine.

Everything headed for the index or used as a query passes through the
Redactor first. This is the only place that ordering is enforced.

Usage:
    gate = PrivacyGate.create(index_dir="/tmp/index")

    # Before storing
    result = gate.ingest_text("Call Jane at 555-123-4567", {"source": "chat"})

    # Before searching
    hits = gate.search("who called about the invoice?", limit=5)
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .engine import AgenticResult, EngineConfig, RetrievalEngine
from .redactor import Redactor, RedactorConfig
from .sources import extract_text
from .types import PIIMatch, RedactionResult, SearchResult

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestResult:
    """Outcome of ingesting one document."""
    doc_id: str
    redacted_text: str
    matches: list[PIIMatch] = field(default_factory=list)
    heuristic_replacements: int = 0


@dataclass
class PrivacyGate:
    """Redact-then-store / redact-then-search front door."""

    redactor: Redactor
    engine: RetrievalEngine

    @classmethod
    def create(
        cls,
        *,
        index_dir: str | Path | None = None,
        redactor_config: RedactorConfig | None = None,
        engine_config: EngineConfig | None = None,
    ) -> "PrivacyGate":
        """Factory — fresh redactor, engine opened on *index_dir*."""
        return cls(
            redactor=Redactor(redactor_config),
            engine=RetrievalEngine.initialize(index_dir, config=engine_config),
        )

    def ingest_text(self, text: str, metadata: Any = None) -> IngestResult:
        """Redact *text* and add it to the index."""
        redaction = self.redactor.redact(text)
        doc_id = self.engine.add_document(redaction.text, metadata)
        return IngestResult(
            doc_id=doc_id,
            redacted_text=redaction.text,
            matches=redaction.matches,
            heuristic_replacements=redaction.heuristic_replacements,
        )

    def ingest_file(self, path: str | Path, metadata: dict[str, Any] | None = None) -> IngestResult:
        """Extract, redact and index a source document."""
        p = Path(path)
        text = extract_text(p)
        meta = {"filename": p.name, "type": p.suffix.lower().lstrip(".")}
        meta.update(metadata or {})
        result = self.ingest_text(text, meta)
        logger.info("Ingested %s as %s", p.name, result.doc_id)
        return result

    def search(self, query: str, limit: int = 5) -> list[SearchResult]:
        """Redact the query, then search."""
        return self.engine.search(self.redactor.remove_pii(query), limit)

    def agentic_search(self, query: str, context: str = "") -> list[AgenticResult]:
        """Redact query and context, then run agentic search."""
        return self.engine.agentic_search(
            self.redactor.remove_pii(query),
            self.redactor.remove_pii(context),
        )

    def redact_text(self, text: str) -> RedactionResult:
        return self.redactor.redact(text)

    def detect(self, text: str) -> list[PIIMatch]:
        return self.redactor.detect_pii(text)

    def clear(self) -> None:
        self.engine.clear_index()

    @property
    def stats(self) -> dict:
        return {
            "chunks": self.engine.get_document_count(),
            "index_path": str(self.engine.index_path),
            "custom_patterns": self.redactor.custom_patterns,
        }
