"""Pattern registry: structured PII detectors plus the name/org heuristics.

The structured table is plain data. Every matcher runs over the original
text on its own, so one category never sees another's replacements.
Quantifiers are bounded throughout so a single scan stays linear in the
input length even on adversarial text.
"""

from __future__ import annotations
import re
import threading
from typing import Iterable

from .errors import PatternError
from .types import PIIMatch

# Each entry: (category, compiled_regex). Table order is the tie-break
# when two categories start and end at the same offsets.
BUILTIN_PATTERNS: list[tuple[str, re.Pattern]] = [
    # SSN: dashed form, or a bare nine-digit run
    ("SSN", re.compile(
        r"\b\d{3}-\d{2}-\d{4}\b|\b\d{9}\b"
    )),

    ("EMAIL", re.compile(
        r"\b[A-Za-z0-9._%+\-]{1,64}@[A-Za-z0-9.\-]{1,255}\.[A-Za-z]{2,24}\b"
    )),

    # Phone: optional +1, optional parenthesised area code
    ("PHONE", re.compile(
        r"(?<!\w)(?:\+?1[\-.\s]?)?\(?\d{3}\)?[\-.\s]?\d{3}[\-.\s]?\d{4}\b"
    )),

    ("CREDIT_CARD", re.compile(
        r"\b(?:\d{4}[\-\s]?){3}\d{4}\b"
    )),

    ("IP_ADDRESS", re.compile(
        r"\b(?:\d{1,3}\.){3}\d{1,3}\b"
    )),

    # MM/DD/YYYY or MM-DD-YYYY, 19xx/20xx only
    ("DOB", re.compile(
        r"\b(?:0[1-9]|1[0-2])[/\-](?:0[1-9]|[12]\d|3[01])[/\-](?:19|20)\d{2}\b"
    )),

    ("PASSPORT", re.compile(
        r"\b[A-Z]{1,2}\d{6,9}\b"
    )),

    ("DRIVER_LICENSE", re.compile(
        r"\b[A-Z]\d{7,12}\b"
    )),

    # Deliberately broad: also hits order numbers and long ids.
    ("BANK_ACCOUNT", re.compile(
        r"\b\d{8,17}\b"
    )),

    ("ADDRESS", re.compile(
        r"\b\d{1,6}(?:\s+[A-Za-z0-9'.\-]{1,30}){1,5}?\s+"
        r"(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Lane|Ln|Drive|Dr|"
        r"Court|Ct|Circle|Cir|Plaza|Pl|Way|Parkway|Pkwy)\b"
    )),

    # "Case No. 2:19-CV-0042", "Docket # A-17", "Matter: 2021-118"
    ("CASE_NUMBER", re.compile(
        r"\b(?:Case|Docket|Matter)\s{0,3}(?:No\.?|Number|#)?\s{0,3}:?\s{0,3}"
        r"(?=[A-Z:\-]{0,40}\d)[A-Z0-9:\-]{1,40}\b"
    )),

    ("EIN", re.compile(
        r"\b\d{2}-\d{7}\b"
    )),

    ("MEDICAL_RECORD", re.compile(
        r"\b(?:MRN|Medical Record Number)\s{0,3}:?\s{0,3}[A-Z0-9]{1,20}\b"
    )),
]

BUILTIN_CATEGORIES: frozenset[str] = frozenset(c for c, _ in BUILTIN_PATTERNS)

# Placeholder tokens already present in redacted text
PLACEHOLDER = re.compile(r"\[[A-Z0-9_]+_REDACTED(?:_\d+)?\]")

NAME_TOKEN = "[NAME_REDACTED]"
ORG_TOKEN = "[ORG_REDACTED]"

_TITLES = [
    "Mr.", "Mrs.", "Ms.", "Miss", "Dr.", "Prof.", "Professor",
    "Judge", "Justice", "Attorney", "Counsel", "Esq.",
]

_TITLED_NAME = re.compile(
    r"\b(?:" + "|".join(re.escape(t) for t in _TITLES) + r")"
    r"\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,2}\b"
)

# Two or three capitalised words with an optional middle initial
_BARE_NAME = re.compile(
    r"\b[A-Z][a-z]+(?:\s+[A-Z]\.?)?(?:\s+[A-Z][a-z]+){1,2}\b"
)

# Institutional phrases the bare-name pass must leave alone
COMMON_PHRASES: frozenset[str] = frozenset({
    "united states", "new york", "los angeles", "supreme court",
    "district court", "circuit court", "court of appeals",
    "federal government", "state government", "local government",
})

_ORG_SUFFIXES = [
    "Inc.", "LLC", "LLP", "Ltd.", "Corp.", "Corporation",
    "Company", "Co.", "Partnership", "Associates", "Group",
    "Foundation", "Institute", "University", "College",
    "Hospital", "Clinic", "Bank", "Credit Union",
]

_ORG_SUFFIX_WORDS = frozenset(s.split()[-1].rstrip(".") for s in _ORG_SUFFIXES)

_ORGANIZATION = re.compile(
    r"(?<!\w)(?:(?:[A-Z][\w&'\-]{0,40}|" + re.escape(NAME_TOKEN) + r")\s+){1,4}"
    r"(?:" + "|".join(re.escape(s) for s in _ORG_SUFFIXES) + r")(?!\w)"
)


def is_common_phrase(text: str) -> bool:
    return " ".join(text.split()).lower() in COMMON_PHRASES


def redact_names(text: str) -> tuple[str, int]:
    """Replace titled and bare capitalised names. Returns (text, count)."""
    text, count = _TITLED_NAME.subn(NAME_TOKEN, text)

    def _bare(m: re.Match) -> str:
        nonlocal count
        phrase = m.group()
        words = phrase.split()
        if (
            is_common_phrase(" ".join(words[:2]))
            or is_common_phrase(" ".join(words[-2:]))
            or words[-1] in _ORG_SUFFIX_WORDS
        ):
            return phrase
        count += 1
        return NAME_TOKEN

    return _BARE_NAME.sub(_bare, text), count


def redact_organizations(text: str) -> tuple[str, int]:
    """Replace capitalised phrases that end in an organization suffix."""
    return _ORGANIZATION.subn(ORG_TOKEN, text)


def _normalize_category(name: str) -> str:
    return re.sub(r"[^A-Z0-9]+", "_", name.strip().upper()).strip("_")


class PatternRegistry:
    """Built-in structured detectors plus user-registered custom patterns.

    Custom patterns run after the built-ins and use the same placeholder
    format, with the category taken from the normalised pattern name.
    """

    def __init__(self) -> None:
        self._custom: dict[str, re.Pattern] = {}
        self._lock = threading.Lock()

    def add(self, name: str, pattern_source: str) -> str:
        """Compile and register a custom pattern. Returns its category."""
        category = _normalize_category(name or "")
        if not category:
            raise PatternError(f"invalid pattern name: {name!r}")
        if category in BUILTIN_CATEGORIES:
            raise PatternError(f"{category} is a built-in category")
        try:
            compiled = re.compile(pattern_source)
        except (re.error, TypeError) as e:
            raise PatternError(f"invalid pattern for {category}: {e}") from e
        with self._lock:
            self._custom[category] = compiled
        return category

    @property
    def custom_categories(self) -> list[str]:
        return list(self._custom)

    @property
    def categories(self) -> list[str]:
        return [c for c, _ in BUILTIN_PATTERNS] + self.custom_categories

    def entries(self) -> list[tuple[str, re.Pattern]]:
        with self._lock:
            return BUILTIN_PATTERNS + list(self._custom.items())

    def scan(self, text: str, *, skip: Iterable[str] = ()) -> list[PIIMatch]:
        """Run every matcher over *text*. Overlaps across categories are kept."""
        skipped = set(skip)
        found: list[tuple[int, int, int, str, str]] = []
        for order, (category, pattern) in enumerate(self.entries()):
            if category in skipped:
                continue
            for m in pattern.finditer(text):
                if m.end() == m.start():
                    continue
                found.append((m.start(), m.end(), order, category, m.group()))
        found.sort()
        return [
            PIIMatch(category=category, start=start, end=end, matched_text=value)
            for start, end, _, category, value in found
        ]
