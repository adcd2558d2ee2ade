"""Plain-text extraction for source documents.

Only formats that are text already are handled here. Binary office and
PDF formats belong to an external decoder and are rejected with
UnsupportedFormatError.
"""

from __future__ import annotations
import html
import json
import re
from pathlib import Path

from .errors import SourceError, UnsupportedFormatError

MAX_FILE_SIZE = 50 * 1024 * 1024   # 50 MiB

TEXT_EXTS = {".txt", ".md", ".csv"}
JSON_EXTS = {".json"}
MARKUP_EXTS = {".html", ".htm", ".xml"}
SUPPORTED_EXTS = TEXT_EXTS | JSON_EXTS | MARKUP_EXTS

_SCRIPT = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_STYLE = re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]+>")


def is_supported(path: str | Path) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_EXTS


def extract_text(path: str | Path) -> str:
    """Read *path* and return its text content."""
    p = Path(path)
    ext = p.suffix.lower()
    if ext not in SUPPORTED_EXTS:
        raise UnsupportedFormatError(f"unsupported file format: {ext or p.name}")
    if not p.is_file():
        raise SourceError(f"file does not exist: {p}")
    if p.stat().st_size > MAX_FILE_SIZE:
        raise SourceError(f"{p.name} exceeds the {MAX_FILE_SIZE // (1024 * 1024)} MiB limit")

    try:
        raw = p.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SourceError(f"{p.name} is not UTF-8 text: {e}") from e
    except OSError as e:
        raise SourceError(f"cannot read {p}: {e}") from e

    if ext in JSON_EXTS:
        try:
            return json.dumps(json.loads(raw), indent=2, ensure_ascii=False)
        except json.JSONDecodeError as e:
            raise SourceError(f"{p.name} is not valid JSON: {e}") from e
    if ext in MARKUP_EXTS:
        return strip_markup(raw)
    return raw


def strip_markup(markup: str) -> str:
    """Drop scripts, styles and tags; unescape entities; collapse whitespace."""
    text = _SCRIPT.sub("", markup)
    text = _STYLE.sub("", text)
    text = _TAG.sub(" ", text)
    return " ".join(html.unescape(text).split())
