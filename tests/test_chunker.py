"""Tests for chunking and the reference embedder."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import math

import numpy as np
import pytest

from privacy_rag import CharacterFoldEmbedder, Chunker, chunk_text, cosine_similarity
from privacy_rag.embeddings import cosine_scores


def _words(n):
    return [f"w{i}" for i in range(n)]


# ── Chunker ──────────────────────────────────────────────────────────

def test_empty_text_is_one_empty_chunk():
    assert chunk_text("") == [""]


def test_short_text_returned_verbatim():
    text = "  alpha   beta\ngamma "
    assert chunk_text(text) == [text]


def test_exactly_one_window():
    text = " ".join(_words(512))
    assert chunk_text(text) == [text]


def test_600_words_two_windows():
    words = _words(600)
    chunks = chunk_text(" ".join(words), 512, 50)
    assert len(chunks) == 2
    assert chunks[0] == " ".join(words[0:512])
    assert chunks[1] == " ".join(words[462:600])


def test_no_redundant_tail_window():
    words = _words(930)
    chunks = chunk_text(" ".join(words))
    assert chunks == [" ".join(words[0:512]), " ".join(words[462:930])]


def test_three_windows():
    words = _words(1000)
    chunks = chunk_text(" ".join(words))
    assert chunks[2] == " ".join(words[924:1000])
    assert len(chunks) == 3


def test_overlap_larger_than_size_still_terminates():
    words = _words(10)
    chunks = chunk_text(" ".join(words), chunk_size=3, overlap=5)
    assert len(chunks) == 8
    assert chunks[-1] == "w7 w8 w9"


def test_chunker_config():
    chunker = Chunker(chunk_size=5, overlap=1)
    assert chunker.stride == 4
    assert len(chunker.chunk(" ".join(_words(12)))) == 3


@pytest.mark.parametrize("size, overlap", [(0, 0), (5, -1)])
def test_invalid_chunk_settings(size, overlap):
    with pytest.raises(ValueError):
        chunk_text("a b c", size, overlap)
    with pytest.raises(ValueError):
        Chunker(size, overlap)


# ── Embeddings ───────────────────────────────────────────────────────

def test_embedding_deterministic_and_normalized():
    e = CharacterFoldEmbedder()
    v1 = e.embed("privileged and confidential")
    v2 = CharacterFoldEmbedder().embed("privileged and confidential")
    assert v1 == v2
    assert len(v1) == 384
    assert math.isclose(float(np.linalg.norm(v1)), 1.0, rel_tol=1e-9)


def test_empty_text_gives_zero_vector():
    assert CharacterFoldEmbedder().embed("") == [0.0] * 384


def test_characters_fold_modulo_dimension():
    vec = CharacterFoldEmbedder(dimension=2).embed("abc")
    raw = np.array([(97 + 99) / 1000, 98 / 1000])
    assert vec == pytest.approx((raw / np.linalg.norm(raw)).tolist())


def test_cosine_similarity():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([0, 0], [1, 0]) == 0.0


def test_cosine_scores_handles_zero_rows():
    matrix = np.array([[1.0, 0.0], [0.0, 0.0], [3.0, 4.0]])
    scores = cosine_scores(matrix, np.array([1.0, 0.0]))
    assert scores.tolist() == pytest.approx([1.0, 0.0, 0.6])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
