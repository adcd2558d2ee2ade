"""HTTP sidecar server for privacy-rag.

Runs a small threaded JSON server on localhost so a desktop shell or chat
layer can reach one shared index without spawning a process per request.

Endpoints:
    GET  /health          — Health check
    GET  /count           — Number of indexed chunks
    POST /redact-text     — {"text"} → redacted text + ledger
    POST /detect          — {"text"} → structured matches
    POST /documents       — {"content", "metadata"} → redact, then index
    POST /search          — {"query", "limit"} → ranked chunks
    POST /agentic-search  — {"query", "context"} → chunks + reasoning record
    POST /clear           — Clear the index

Failures come back as {"error": message, "kind": tag}.
"""

from __future__ import annotations
import json
import logging
import os
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from .config import create_gate, load_default
from .errors import PrivacyRagError
from .gate import PrivacyGate

logger = logging.getLogger(__name__)

DEFAULT_PORT = int(os.environ.get("PRIVACY_RAG_PORT", "18792"))

# Shared state
_gate: PrivacyGate | None = None

# Client-side failures; everything else is a 500
_CLIENT_KINDS = {"pattern", "metadata", "config", "source", "unsupported_format"}


def _get_gate() -> PrivacyGate:
    global _gate
    if _gate is None:
        _gate = create_gate(load_default())
    return _gate


def set_gate(gate: PrivacyGate | None) -> None:
    """Install the gate the handlers use (None resets to lazy default)."""
    global _gate
    _gate = gate


class RAGHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the privacy-rag sidecar."""

    def _read_json(self) -> dict[str, Any]:
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length).decode("utf-8")
        data = json.loads(body) if body else {}
        if not isinstance(data, dict):
            raise ValueError("request body must be a JSON object")
        return data

    def _respond(self, status: int, data: Any) -> None:
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def _fail(self, e: Exception) -> None:
        if isinstance(e, PrivacyRagError):
            status = 400 if e.kind in _CLIENT_KINDS else 500
            logger.warning("%s failed (%s): %s", self.path, e.kind, e)
            self._respond(status, {"error": str(e), "kind": e.kind})
        else:
            self._respond(400, {"error": str(e), "kind": "bad_request"})

    def do_GET(self) -> None:
        try:
            gate = _get_gate()
            if self.path == "/health":
                self._respond(200, {"status": "ok", **gate.stats})
            elif self.path == "/count":
                self._respond(200, {"chunks": gate.engine.get_document_count()})
            else:
                self._respond(404, {"error": "not found"})
        except (PrivacyRagError, ValueError, TypeError) as e:
            self._fail(e)

    def do_POST(self) -> None:
        try:
            body = self._read_json()
            gate = _get_gate()

            if self.path == "/redact-text":
                result = gate.redact_text(body.get("text", ""))
                self._respond(200, {
                    "text": result.text,
                    "entities": [m.to_dict() for m in result.matches],
                    "heuristic_replacements": result.heuristic_replacements,
                })

            elif self.path == "/detect":
                matches = gate.detect(body.get("text", ""))
                self._respond(200, {"entities": [m.to_dict() for m in matches]})

            elif self.path == "/documents":
                result = gate.ingest_text(body.get("content", ""), body.get("metadata"))
                self._respond(200, {
                    "doc_id": result.doc_id,
                    "redacted_entities": len(result.matches),
                    "heuristic_replacements": result.heuristic_replacements,
                })

            elif self.path == "/search":
                results = gate.search(body.get("query", ""), int(body.get("limit", 5)))
                self._respond(200, {"results": [r.to_dict() for r in results]})

            elif self.path == "/agentic-search":
                results = gate.agentic_search(body.get("query", ""), body.get("context", ""))
                self._respond(200, {"results": [r.to_dict() for r in results]})

            elif self.path == "/clear":
                gate.clear()
                self._respond(200, {"status": "cleared"})

            else:
                self._respond(404, {"error": "not found"})

        except (PrivacyRagError, ValueError, TypeError) as e:
            self._fail(e)


def make_server(port: int = DEFAULT_PORT, gate: PrivacyGate | None = None) -> ThreadingHTTPServer:
    """Build (but do not start) the sidecar server on 127.0.0.1."""
    if gate is not None:
        set_gate(gate)
    return ThreadingHTTPServer(("127.0.0.1", port), RAGHandler)


def serve(port: int = DEFAULT_PORT) -> None:
    """Start the privacy-rag HTTP sidecar."""
    server = make_server(port)
    gate = _get_gate()
    print(f"privacy-rag sidecar listening on http://127.0.0.1:{server.server_address[1]}")
    print(f"  index: {gate.engine.index_path}")
    print(f"  ner: {'enabled' if gate.redactor.config.use_ner else 'disabled'}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down...")
        server.shutdown()


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="privacy-rag HTTP sidecar")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    serve(port=args.port)
