"""CLI interface for privacy-rag.

Usage:
    # Redact text (stdin: text, stdout: JSON with redacted text + ledger)
    echo 'I am john@x.com' | python -m privacy_rag.cli redact-text

    # Report structured PII without redacting
    echo 'SSN 123-45-6789' | python -m privacy_rag.cli detect

    # Ingest files (redacted before indexing), or stdin with "-"
    python -m privacy_rag.cli ingest notes.txt report.md --metadata '{"case": 12}'

    # Search
    python -m privacy_rag.cli search "lease renewal" --limit 3
    python -m privacy_rag.cli agentic-search "lease renewal" --context "tenant dispute"

    # Maintenance
    python -m privacy_rag.cli count
    python -m privacy_rag.cli clear

The index lives under --index-dir (default ~/.privacy-rag/rag_index) and
survives across calls.
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import Any

from .config import create_gate, load_default, load_from_yaml
from .errors import PrivacyRagError
from .gate import PrivacyGate


def _build_gate(args: argparse.Namespace) -> PrivacyGate:
    cfg = load_from_yaml(args.config) if args.config else load_default()
    if args.index_dir:
        cfg["index_dir"] = args.index_dir
    if args.use_ner:
        cfg["use_ner"] = True
    return create_gate(cfg)


def _emit(data: Any) -> None:
    json.dump(data, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def cmd_redact_text(args: argparse.Namespace) -> None:
    """Redact PII from plain text on stdin."""
    gate = _build_gate(args)
    result = gate.redact_text(sys.stdin.read())
    _emit({
        "text": result.text,
        "entities": [m.to_dict() for m in result.matches],
        "heuristic_replacements": result.heuristic_replacements,
    })


def cmd_detect(args: argparse.Namespace) -> None:
    """List structured PII found in stdin."""
    gate = _build_gate(args)
    _emit([m.to_dict() for m in gate.detect(sys.stdin.read())])


def cmd_ingest(args: argparse.Namespace) -> None:
    """Redact and index files, or stdin when the path is '-'."""
    gate = _build_gate(args)
    metadata = json.loads(args.metadata) if args.metadata else None
    out = []
    for path in args.paths:
        if path == "-":
            result = gate.ingest_text(sys.stdin.read(), metadata)
        else:
            result = gate.ingest_file(path, metadata)
        out.append({
            "source": path,
            "doc_id": result.doc_id,
            "redacted_entities": len(result.matches),
            "heuristic_replacements": result.heuristic_replacements,
        })
    _emit(out)


def cmd_search(args: argparse.Namespace) -> None:
    gate = _build_gate(args)
    _emit([r.to_dict() for r in gate.search(args.query, args.limit)])


def cmd_agentic_search(args: argparse.Namespace) -> None:
    gate = _build_gate(args)
    _emit([r.to_dict() for r in gate.agentic_search(args.query, args.context)])


def cmd_count(args: argparse.Namespace) -> None:
    gate = _build_gate(args)
    _emit({"chunks": gate.engine.get_document_count()})


def cmd_clear(args: argparse.Namespace) -> None:
    """Clear the index."""
    gate = _build_gate(args)
    gate.clear()
    sys.stderr.write(f"Cleared index at {gate.engine.index_path}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="privacy-rag",
        description="PII-redacting local document index",
    )
    parser.add_argument("--config", default="", help="YAML config file")
    parser.add_argument("--index-dir", default="", help="Index directory")
    parser.add_argument("--use-ner", action="store_true", help="Enable Presidio name/org layer")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("redact-text", help="Redact plain text (stdin)")
    sub.add_parser("detect", help="Detect structured PII (stdin)")

    ingest = sub.add_parser("ingest", help="Redact and index files ('-' for stdin)")
    ingest.add_argument("paths", nargs="+")
    ingest.add_argument("--metadata", default="", help="JSON metadata for every document")

    search = sub.add_parser("search", help="Search the index")
    search.add_argument("query")
    search.add_argument("--limit", type=int, default=5)

    agentic = sub.add_parser("agentic-search", help="Context-augmented search")
    agentic.add_argument("query")
    agentic.add_argument("--context", default="")

    sub.add_parser("count", help="Number of indexed chunks")
    sub.add_parser("clear", help="Clear the index")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    cmds = {
        "redact-text": cmd_redact_text,
        "detect": cmd_detect,
        "ingest": cmd_ingest,
        "search": cmd_search,
        "agentic-search": cmd_agentic_search,
        "count": cmd_count,
        "clear": cmd_clear,
    }
    try:
        cmds[args.command](args)
    except (PrivacyRagError, ValueError) as e:
        sys.stderr.write(f"error: {e}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
