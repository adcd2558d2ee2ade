"""Redactor — the PII API.  Layered: structured patterns, then heuristics.

Usage:
    from privacy_rag import Redactor

    redactor = Redactor()        # reusable, thread-safe

    result = redactor.redact("Email me at john@acme.com")
    print(result.text)           # "Email me at [EMAIL_REDACTED_0]"
    print(result.matches[0])     # PIIMatch(category='EMAIL', ..., entity_id=0)

    redactor.detect_pii("SSN 123-45-6789")   # read-only, no ids consumed

Entity ids come from one counter per Redactor instance, shared by all
categories and calls. Ids are unique and increase within a call; across
concurrent callers they say nothing about which call happened first.
"""

from __future__ import annotations
import itertools
import logging
import threading
from dataclasses import dataclass, field, replace

from .patterns import PatternRegistry, redact_names, redact_organizations
from .types import PIIMatch, RedactionResult

logger = logging.getLogger(__name__)


@dataclass
class RedactorConfig:
    """Configuration for the Redactor."""
    use_ner: bool = False             # add the Presidio layer to the heuristic pass
    language: str = "en"
    score_threshold: float = 0.35     # minimum confidence for Presidio
    # Categories to never detect (e.g. {"BANK_ACCOUNT"})
    skip_categories: set[str] = field(default_factory=set)
    # Allow-list: exact values that should NEVER be redacted
    allow_list: set[str] = field(default_factory=set)
    # name -> regex source, registered at construction
    custom_patterns: dict[str, str] = field(default_factory=dict)


class Redactor:
    """Layered PII redactor.

    Layer 1: Structured patterns (SSN, email, phone, ... and custom ones),
             each replaced by an id-bearing token such as [SSN_REDACTED_7]
    Layer 2: Name and organization heuristics on the redacted text,
             replaced by [NAME_REDACTED] / [ORG_REDACTED] without ids
    Layer 3: Optional Presidio NER, same untraced tokens as layer 2
    """

    def __init__(self, config: RedactorConfig | None = None) -> None:
        self.config = config or RedactorConfig()
        self.registry = PatternRegistry()
        self._ids = itertools.count()
        self._id_lock = threading.Lock()
        for name, source in self.config.custom_patterns.items():
            self.registry.add(name, source)

    def add_custom_pattern(self, name: str, pattern_source: str) -> None:
        """Register an extra structured pattern. Raises PatternError if invalid."""
        category = self.registry.add(name, pattern_source)
        logger.info("Registered custom PII pattern %s", category)

    @property
    def custom_patterns(self) -> list[str]:
        return self.registry.custom_categories

    def detect_pii(self, text: str) -> list[PIIMatch]:
        """Structured matches ordered by start offset.

        Read-only: no ids are assigned and the heuristic layers are not
        consulted, so names and organizations never appear here.
        """
        return self._scan(text)

    def redact(self, text: str) -> RedactionResult:
        """Redact PII from text.

        Returns a RedactionResult with the sanitized text and the ledger
        of structured matches (with entity ids).
        """
        # --- Layer 1: structured patterns over the original text ---
        matches = self._assign_ids(self._scan(text))
        result = _apply_tokens(text, matches)

        # --- Layer 2: heuristics over the redacted text ---
        result, names = redact_names(result)
        result, orgs = redact_organizations(result)
        heuristic = names + orgs

        # --- Layer 3: NER (if enabled) ---
        if self.config.use_ner:
            from .presidio_layer import redact_entities
            result, ner = redact_entities(
                result,
                language=self.config.language,
                score_threshold=self.config.score_threshold,
            )
            heuristic += ner

        if matches or heuristic:
            logger.debug(
                "Redacted %d structured and %d heuristic spans", len(matches), heuristic,
            )
        return RedactionResult(text=result, matches=matches, heuristic_replacements=heuristic)

    def remove_pii(self, text: str) -> str:
        """Redacted copy of *text* (convenience)."""
        return self.redact(text).text

    def _scan(self, text: str) -> list[PIIMatch]:
        matches = self.registry.scan(text, skip=self.config.skip_categories)
        if self.config.allow_list:
            matches = [m for m in matches if m.matched_text not in self.config.allow_list]
        return matches

    def _assign_ids(self, matches: list[PIIMatch]) -> list[PIIMatch]:
        with self._id_lock:
            return [replace(m, entity_id=next(self._ids)) for m in matches]


def _apply_tokens(text: str, matches: list[PIIMatch]) -> str:
    """Replace matches right-to-left to preserve offsets.

    Overlapping matches (e.g. a nine-digit run that is both SSN and bank
    account) collapse into one region replaced by all of their tokens in
    start order, so no character of any matched span survives.
    """
    regions: list[list] = []   # [start, end, tokens]
    for m in matches:          # start ascending
        if regions and m.start < regions[-1][1]:
            regions[-1][1] = max(regions[-1][1], m.end)
            regions[-1][2].append(m.token)
        else:
            regions.append([m.start, m.end, [m.token]])

    result = text
    for start, end, tokens in reversed(regions):
        result = result[:start] + "".join(tokens) + result[end:]
    return result
