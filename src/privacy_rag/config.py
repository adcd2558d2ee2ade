"""YAML/dict config loader for privacy-rag.

Supports loading from a YAML file or a plain dict (for embedding in a
larger application config).

Example YAML:

    privacy_rag:
      index_dir: ~/.privacy-rag/rag_index
      chunk_size: 512
      chunk_overlap: 50
      embedding_dim: 384
      agentic_limit: 10
      recover_corrupt_index: false
      redactor:
        use_ner: false
        language: en
        score_threshold: 0.35
        skip_categories:
          - BANK_ACCOUNT
        allow_list:
          - safe@example.com
        custom_patterns:
          EMPLOYEE_ID: 'EMP-\\d{6}'
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any

from .engine import EngineConfig
from .errors import ConfigError
from .gate import PrivacyGate
from .redactor import RedactorConfig

CONFIG_ENV = "PRIVACY_RAG_CONFIG"

REDACTOR_KEYS = (
    "use_ner", "language", "score_threshold",
    "skip_categories", "allow_list", "custom_patterns",
)


def _int(data: dict[str, Any], key: str, default: int, minimum: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ConfigError(f"{key} must be an integer >= {minimum}, got {value!r}")
    return value


def _str_set(data: dict[str, Any], key: str) -> set[str]:
    value = data.get(key) or []
    if not isinstance(value, (list, tuple, set, frozenset)) or not all(
        isinstance(v, str) for v in value
    ):
        raise ConfigError(f"{key} must be a list of strings")
    return set(value)


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline).

    Idempotent: the flat dict it returns is accepted again unchanged.
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("config must be a mapping")
    # Support nested under "privacy_rag" key or flat
    if "privacy_rag" in data:
        data = data["privacy_rag"] or {}
        if not isinstance(data, dict):
            raise ConfigError("privacy_rag must be a mapping")

    block = data.get("redactor") or {}
    if not isinstance(block, dict):
        raise ConfigError("redactor must be a mapping")
    # Redactor keys may also sit at the top level; the block wins
    redactor = {k: data[k] for k in REDACTOR_KEYS if k in data}
    redactor.update(block)
    custom = redactor.get("custom_patterns") or {}
    if not isinstance(custom, dict):
        raise ConfigError("custom_patterns must map names to regex strings")

    try:
        score_threshold = float(redactor.get("score_threshold", 0.35))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"score_threshold must be a number: {e}") from e

    index_dir = data.get("index_dir")
    return {
        "index_dir": str(Path(index_dir).expanduser()) if index_dir else None,
        "chunk_size": _int(data, "chunk_size", 512, 1),
        "chunk_overlap": _int(data, "chunk_overlap", 50, 0),
        "embedding_dim": _int(data, "embedding_dim", 384, 1),
        "agentic_limit": _int(data, "agentic_limit", 10, 0),
        "recover_corrupt_index": bool(data.get("recover_corrupt_index", False)),
        "use_ner": bool(redactor.get("use_ner", False)),
        "language": redactor.get("language", "en"),
        "score_threshold": score_threshold,
        "skip_categories": {c.upper() for c in _str_set(redactor, "skip_categories")},
        "allow_list": _str_set(redactor, "allow_list"),
        "custom_patterns": {str(k): str(v) for k, v in custom.items()},
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    import yaml
    try:
        with open(Path(path).expanduser(), encoding="utf-8") as f:
            return load_config(yaml.safe_load(f))
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e


def load_default() -> dict[str, Any]:
    """Config from $PRIVACY_RAG_CONFIG if set, otherwise defaults."""
    path = os.environ.get(CONFIG_ENV)
    return load_from_yaml(path) if path else load_config({})


def engine_config(cfg: dict[str, Any]) -> EngineConfig:
    return EngineConfig(
        index_dir=cfg["index_dir"],
        chunk_size=cfg["chunk_size"],
        chunk_overlap=cfg["chunk_overlap"],
        embedding_dim=cfg["embedding_dim"],
        agentic_limit=cfg["agentic_limit"],
        recover_corrupt_index=cfg["recover_corrupt_index"],
    )


def redactor_config(cfg: dict[str, Any]) -> RedactorConfig:
    return RedactorConfig(
        use_ner=cfg["use_ner"],
        language=cfg["language"],
        score_threshold=cfg["score_threshold"],
        skip_categories=cfg["skip_categories"],
        allow_list=cfg["allow_list"],
        custom_patterns=cfg["custom_patterns"],
    )


def create_gate(config: dict[str, Any] | None = None) -> PrivacyGate:
    """Create a fully configured gate from a config dict."""
    cfg = load_config(config)
    return PrivacyGate.create(
        index_dir=cfg["index_dir"],
        redactor_config=redactor_config(cfg),
        engine_config=engine_config(cfg),
    )
