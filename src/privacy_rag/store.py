"""DocumentStore: chunk-id -> Chunk in memory, mirrored to one JSON snapshot.

Every mutation rewrites the whole snapshot. The write goes straight to
the target file (no temp file, no rename), so a crash mid-write can leave
a truncated snapshot behind; ``recover_corrupt`` exists for that case.
Single-process ownership is assumed: nothing locks the file against
other writers.

Usage:
    store = DocumentStore.initialize("~/.privacy-rag/rag_index")
    store.insert_many(chunks)
    store.clear()
"""

from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Iterable, Iterator

from .errors import IndexIOError, SerializationError
from .types import Chunk

logger = logging.getLogger(__name__)

SNAPSHOT_NAME = "documents.json"


def default_index_dir() -> Path:
    """$PRIVACY_RAG_HOME/rag_index, or ~/.privacy-rag/rag_index."""
    home = os.environ.get("PRIVACY_RAG_HOME", str(Path.home() / ".privacy-rag"))
    return Path(home).expanduser() / "rag_index"


class DocumentStore:
    """In-memory chunk map backed by a JSON snapshot.

    Obtain instances through ``initialize()``; that call is what makes
    a store usable (directory created, snapshot loaded).
    """

    __slots__ = ("_index_dir", "_chunks")

    def __init__(self, index_dir: Path, chunks: dict[str, Chunk]) -> None:
        self._index_dir = index_dir
        self._chunks = chunks

    @classmethod
    def initialize(
        cls,
        index_dir: str | Path | None = None,
        *,
        dimension: int | None = None,
        recover_corrupt: bool = False,
    ) -> "DocumentStore":
        """Create the index directory and load the snapshot if present.

        A missing snapshot gives an empty store. A corrupt one raises
        SerializationError unless *recover_corrupt* is set, in which case
        it is moved aside and the store starts empty. When *dimension* is
        given, every stored vector must have exactly that length.
        """
        index_dir = Path(index_dir or default_index_dir()).expanduser()
        try:
            index_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IndexIOError(f"cannot create index directory {index_dir}: {e}") from e

        path = index_dir / SNAPSHOT_NAME
        try:
            chunks = _load_snapshot(path, dimension)
        except SerializationError:
            if not recover_corrupt:
                raise
            aside = path.with_name(SNAPSHOT_NAME + ".corrupt")
            try:
                path.replace(aside)
            except OSError as e:
                raise IndexIOError(f"cannot move corrupt snapshot aside: {e}") from e
            logger.warning("Corrupt snapshot moved to %s; starting with an empty index", aside)
            chunks = {}

        logger.info("Loaded %d chunks from %s", len(chunks), path)
        return cls(index_dir, chunks)

    # ------------------------------------------------------------------
    # Mutations (each ends with a full snapshot write)
    # ------------------------------------------------------------------

    def insert_many(self, chunks: Iterable[Chunk]) -> None:
        """Insert chunks and persist. On write failure the insert is undone."""
        batch = list(chunks)
        replaced = {c.id: self._chunks[c.id] for c in batch if c.id in self._chunks}
        for chunk in batch:
            self._chunks[chunk.id] = chunk
        try:
            self.save()
        except IndexIOError:
            for chunk in batch:
                self._chunks.pop(chunk.id, None)
            self._chunks.update(replaced)
            raise

    def clear(self) -> None:
        """Drop every chunk and persist the empty snapshot."""
        previous = self._chunks
        self._chunks = {}
        try:
            self.save()
        except IndexIOError:
            self._chunks = previous
            raise

    def save(self) -> None:
        """Write the entire map to the snapshot file."""
        payload = {cid: chunk.to_dict() for cid, chunk in self._chunks.items()}
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False)
        except OSError as e:
            raise IndexIOError(f"cannot write snapshot {self.path}: {e}") from e
        logger.debug("Wrote snapshot with %d chunks", len(payload))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def index_dir(self) -> Path:
        return self._index_dir

    @property
    def path(self) -> Path:
        return self._index_dir / SNAPSHOT_NAME

    def get(self, chunk_id: str) -> Chunk | None:
        return self._chunks.get(chunk_id)

    def values(self) -> list[Chunk]:
        return list(self._chunks.values())

    def __len__(self) -> int:
        return len(self._chunks)

    def __contains__(self, chunk_id: object) -> bool:
        return chunk_id in self._chunks

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._chunks))


def _load_snapshot(path: Path, dimension: int | None = None) -> dict[str, Chunk]:
    if not path.exists():
        return {}
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise IndexIOError(f"cannot read snapshot {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise SerializationError(f"snapshot {path} is not UTF-8: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SerializationError(f"snapshot {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SerializationError(f"snapshot {path} must be a JSON object")

    chunks: dict[str, Chunk] = {}
    for key, entry in data.items():
        try:
            chunk = Chunk.from_dict(entry)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SerializationError(f"snapshot entry {key!r} is malformed: {e}") from e
        if chunk.id != key:
            raise SerializationError(f"snapshot entry {key!r} carries id {chunk.id!r}")
        if dimension is not None and len(chunk.embedding) != dimension:
            raise SerializationError(
                f"snapshot entry {key!r} has {len(chunk.embedding)} dimensions, expected {dimension}"
            )
        chunks[key] = chunk
    return chunks
