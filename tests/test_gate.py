"""Tests for the privacy gate, source extraction, config and CLI."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import io
import json

import pytest

from privacy_rag import (
    PatternError, PrivacyGate, SourceError, UnsupportedFormatError,
    create_gate, load_config, load_from_yaml,
)
from privacy_rag.cli import main
from privacy_rag.errors import ConfigError
from privacy_rag.sources import extract_text, is_supported, strip_markup

PII_TEXT = "Contact john@example.com or call 555-123-4567 about the lease"


@pytest.fixture
def gate(tmp_path):
    return PrivacyGate.create(index_dir=tmp_path / "index")


# ── Gate ─────────────────────────────────────────────────────────────

def test_ingest_never_stores_raw_pii(gate):
    result = gate.ingest_text(PII_TEXT, {"source": "chat"})
    assert [m.category for m in result.matches] == ["EMAIL", "PHONE"]

    chunk = gate.engine.get_chunk(f"{result.doc_id}_0")
    assert chunk.content == result.redacted_text
    snapshot = gate.engine.index_path.read_text(encoding="utf-8")
    assert "john@example.com" not in snapshot
    assert "555-123-4567" not in snapshot


def test_search_redacts_query(gate, monkeypatch):
    seen = {}

    def fake_search(query, limit):
        seen["query"] = query
        return []

    monkeypatch.setattr(gate.engine, "search", fake_search)
    gate.search("who is john@example.com", 3)
    assert "john@example.com" not in seen["query"]
    assert "[EMAIL_REDACTED_" in seen["query"]


def test_agentic_search_redacts_context(gate, monkeypatch):
    seen = {}

    def fake_agentic(query, context):
        seen.update(query=query, context=context)
        return []

    monkeypatch.setattr(gate.engine, "agentic_search", fake_agentic)
    gate.agentic_search("lease terms", "tenant ssn 123-45-6789")
    assert seen["query"] == "lease terms"
    assert "123-45-6789" not in seen["context"]


def test_redacted_search_finds_ingested_document(gate):
    gate.ingest_text(PII_TEXT)
    gate.ingest_text("parking permits for the north lot")
    results = gate.search(PII_TEXT, 1)
    assert results[0].content.startswith("Contact [EMAIL_REDACTED_")


def test_ingest_file_adds_file_metadata(gate, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("ssn 123-45-6789 on record", encoding="utf-8")
    result = gate.ingest_file(path, {"case": 12})
    chunk = gate.engine.get_chunk(f"{result.doc_id}_0")
    assert chunk.metadata == {"filename": "notes.txt", "type": "txt", "case": 12}
    assert chunk.content == "ssn [SSN_REDACTED_0] on record"


def test_gate_clear_and_stats(gate):
    gate.ingest_text("alpha")
    assert gate.stats["chunks"] == 1
    gate.clear()
    assert gate.stats["chunks"] == 0


# ── Sources ──────────────────────────────────────────────────────────

def test_html_is_stripped(tmp_path):
    path = tmp_path / "page.html"
    path.write_text(
        "<html><style>p {}</style><script>var x = 1;</script>"
        "<p>Fish &amp; chips</p>\n<p>today</p></html>",
        encoding="utf-8",
    )
    assert extract_text(path) == "Fish & chips today"


def test_json_is_pretty_printed(tmp_path):
    path = tmp_path / "data.json"
    path.write_text('{"a":1}', encoding="utf-8")
    assert extract_text(path) == '{\n  "a": 1\n}'


def test_unsupported_format(tmp_path):
    path = tmp_path / "scan.pdf"
    path.write_bytes(b"%PDF-1.4")
    with pytest.raises(UnsupportedFormatError):
        extract_text(path)


def test_missing_file(tmp_path):
    with pytest.raises(SourceError):
        extract_text(tmp_path / "missing.txt")


@pytest.mark.parametrize("name, ok", [
    ("a.txt", True), ("B.MD", True), ("rows.csv", True), ("page.HTM", True),
    ("scan.pdf", False), ("memo.docx", False), ("README", False),
])
def test_is_supported(name, ok):
    assert is_supported(name) is ok


def test_strip_markup_entities():
    assert strip_markup("a&lt;b&gt;  <br/> c") == "a<b> c"


# ── Config ───────────────────────────────────────────────────────────

def test_load_config_defaults():
    cfg = load_config({})
    assert cfg["chunk_size"] == 512
    assert cfg["chunk_overlap"] == 50
    assert cfg["embedding_dim"] == 384
    assert cfg["agentic_limit"] == 10
    assert cfg["use_ner"] is False
    assert cfg["index_dir"] is None


def test_load_config_nested():
    cfg = load_config({"privacy_rag": {
        "chunk_size": 100,
        "redactor": {"skip_categories": ["bank_account"], "allow_list": ["ok@x.com"]},
    }})
    assert cfg["chunk_size"] == 100
    assert cfg["skip_categories"] == {"BANK_ACCOUNT"}
    assert cfg["allow_list"] == {"ok@x.com"}


@pytest.mark.parametrize("data", [
    {"chunk_size": 0},
    {"chunk_overlap": -1},
    {"chunk_size": "big"},
    {"redactor": {"allow_list": "not-a-list"}},
    {"redactor": {"score_threshold": "high"}},
])
def test_invalid_config(data):
    with pytest.raises(ConfigError):
        load_config(data)


def test_load_from_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "privacy_rag:\n"
        f"  index_dir: {tmp_path / 'idx'}\n"
        "  chunk_size: 64\n"
        "  redactor:\n"
        "    custom_patterns:\n"
        "      TICKET: 'TCK\\d{4}'\n",
        encoding="utf-8",
    )
    cfg = load_from_yaml(path)
    assert cfg["chunk_size"] == 64
    gate = create_gate(cfg)
    assert gate.engine.config.chunk_size == 64
    assert gate.redact_text("ref TCK0042").text == "ref [TICKET_REDACTED_0]"


def test_redactor_keys_accepted_at_top_level():
    cfg = load_config({"use_ner": True, "skip_categories": ["ssn"],
                       "redactor": {"language": "de"}})
    assert cfg["use_ner"] is True
    assert cfg["skip_categories"] == {"SSN"}
    assert cfg["language"] == "de"


def test_load_config_is_idempotent(tmp_path):
    cfg = load_config({"index_dir": str(tmp_path), "chunk_size": 64, "redactor": {
        "allow_list": ["ok@x.com"], "custom_patterns": {"TICKET": r"TCK\d{4}"},
    }})
    assert load_config(cfg) == cfg


def test_create_gate_from_flat_dict(tmp_path):
    gate = create_gate({"index_dir": str(tmp_path), "use_ner": False, "chunk_size": 64})
    assert gate.engine.config.chunk_size == 64
    assert gate.redactor.config.use_ner is False


def test_create_gate_rejects_bad_custom_pattern(tmp_path):
    with pytest.raises(PatternError):
        create_gate({"index_dir": str(tmp_path), "redactor": {"custom_patterns": {"x": "("}}})


# ── CLI ──────────────────────────────────────────────────────────────

@pytest.fixture
def cli(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("PRIVACY_RAG_CONFIG", raising=False)
    index_dir = str(tmp_path / "cli-index")

    def run(*argv, stdin=""):
        monkeypatch.setattr("sys.stdin", io.StringIO(stdin))
        code = main(["--index-dir", index_dir, *argv])
        out = capsys.readouterr()
        return code, out.out, out.err

    return run


def test_cli_redact_text(cli):
    code, out, _ = cli("redact-text", stdin="mail a@b.com")
    assert code == 0
    data = json.loads(out)
    assert data["text"] == "mail [EMAIL_REDACTED_0]"
    assert data["entities"][0]["category"] == "EMAIL"


def test_cli_detect(cli):
    code, out, _ = cli("detect", stdin="ssn 123-45-6789")
    assert code == 0
    assert json.loads(out) == [
        {"category": "SSN", "start": 4, "end": 15, "matched_text": "123-45-6789"},
    ]


def test_cli_ingest_search_count_clear(cli, tmp_path):
    doc = tmp_path / "memo.md"
    doc.write_text("the quarterly budget memo", encoding="utf-8")

    code, out, _ = cli("ingest", str(doc), "--metadata", '{"team": "ops"}')
    assert code == 0
    assert json.loads(out)[0]["source"] == str(doc)

    code, out, _ = cli("search", "quarterly budget", "--limit", "1")
    hits = json.loads(out)
    assert hits[0]["metadata"] == {"filename": "memo.md", "type": "md", "team": "ops"}

    code, out, _ = cli("agentic-search", "budget", "--context", "finance")
    assert json.loads(out)[-1]["type"] == "reasoning"

    code, out, _ = cli("count")
    assert json.loads(out) == {"chunks": 1}

    code, _, err = cli("clear")
    assert code == 0
    assert "Cleared index" in err
    assert json.loads(cli("count")[1]) == {"chunks": 0}


def test_cli_ingest_stdin(cli):
    code, out, _ = cli("ingest", "-", stdin="call 555-123-4567")
    assert code == 0
    assert json.loads(out)[0]["redacted_entities"] == 1


def test_cli_reports_errors(cli, tmp_path):
    doc = tmp_path / "scan.docx"
    doc.write_bytes(b"PK")
    code, _, err = cli("ingest", str(doc))
    assert code == 1
    assert err.startswith("error: unsupported file format")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
