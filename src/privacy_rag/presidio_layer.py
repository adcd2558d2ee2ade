"""Optional NER layer for the name/organization heuristics.

When enabled, Presidio (spaCy underneath) finds PERSON and ORGANIZATION
spans the capitalisation heuristics miss. Like the heuristics, these
replacements carry no entity id.
"""

from __future__ import annotations
from typing import TYPE_CHECKING

from .patterns import NAME_TOKEN, ORG_TOKEN, PLACEHOLDER

if TYPE_CHECKING:
    from presidio_analyzer import AnalyzerEngine

# Lazy singleton — don't load spaCy until first use
_engine: AnalyzerEngine | None = None
_engine_lang: str = ""

# Presidio entity type -> replacement token
ENTITY_TOKENS = {
    "PERSON": NAME_TOKEN,
    "ORGANIZATION": ORG_TOKEN,
    "ORG": ORG_TOKEN,
}


def _get_engine(language: str = "en") -> AnalyzerEngine:
    """Lazy-init the Presidio analyzer engine."""
    global _engine, _engine_lang
    if _engine is None or _engine_lang != language:
        from presidio_analyzer import AnalyzerEngine
        from presidio_analyzer.nlp_engine import NlpEngineProvider

        provider = NlpEngineProvider(nlp_configuration={
            "nlp_engine_name": "spacy",
            "models": [{"lang_code": language, "model_name": f"{language}_core_web_sm"}],
        })
        nlp_engine = provider.create_engine()
        _engine = AnalyzerEngine(nlp_engine=nlp_engine, supported_languages=[language])
        _engine_lang = language
    return _engine


def scan_presidio(
    text: str,
    *,
    language: str = "en",
    score_threshold: float = 0.35,
) -> list[tuple[str, int, int]]:
    """Return (entity_type, start, end) spans for names and organizations.

    Spans touching an existing placeholder token are dropped.
    """
    engine = _get_engine(language)
    results = engine.analyze(
        text=text,
        language=language,
        entities=["PERSON", "ORGANIZATION"],
        score_threshold=score_threshold,
    )

    placeholders = [(m.start(), m.end()) for m in PLACEHOLDER.finditer(text)]
    spans: list[tuple[str, int, int]] = []
    for r in results:
        if r.entity_type not in ENTITY_TOKENS:
            continue
        if any(r.start < e and r.end > s for s, e in placeholders):
            continue
        spans.append((r.entity_type, r.start, r.end))
    return sorted(spans, key=lambda s: s[1])


def redact_entities(
    text: str,
    *,
    language: str = "en",
    score_threshold: float = 0.35,
) -> tuple[str, int]:
    """Replace NER-detected names/orgs. Returns (text, count)."""
    spans = scan_presidio(text, language=language, score_threshold=score_threshold)

    # Keep the first of any overlapping spans
    kept: list[tuple[str, int, int]] = []
    for span in spans:
        if kept and span[1] < kept[-1][2]:
            continue
        kept.append(span)

    result = text
    for entity_type, start, end in reversed(kept):
        result = result[:start] + ENTITY_TOKENS[entity_type] + result[end:]
    return result, len(kept)


def reset_engine() -> None:
    global _engine, _engine_lang
    _engine = None
    _engine_lang = ""

