"""Chunking boundary and termination tests.

Budgets here use ``target_tokens=20`` at 4 chars/token, i.e. 80 characters.
"""

import dataclasses

import pytest

from studygen.constants import CHUNKING_BY_DOCUMENT, CHUNKING_BY_TOKENS
from studygen.core.policy import DEFAULT_TIER_POLICIES
from studygen.core.types import Document
from studygen.pipeline.chunking import (
    chunk_by_document,
    chunk_by_tokens,
    chunk_content,
    find_split_point,
)

BUDGET_TOKENS = 20
BUDGET_CHARS = 80


def _squash(text: str) -> str:
    return "".join(text.split())


@pytest.mark.unit
class TestChunkByTokens:
    def test_empty_and_whitespace_text_yield_no_chunks(self):
        assert chunk_by_tokens("", BUDGET_TOKENS) == []
        assert chunk_by_tokens("   \n\n  ", BUDGET_TOKENS) == []

    def test_short_text_is_single_trimmed_chunk(self):
        assert chunk_by_tokens("  hello world  ", BUDGET_TOKENS) == ["hello world"]

    def test_prefers_paragraph_break(self):
        text = "a" * 60 + "\n\n" + "b" * 30
        assert chunk_by_tokens(text, BUDGET_TOKENS) == ["a" * 60, "b" * 30]

    def test_falls_back_to_sentence_break(self):
        text = "a" * 60 + ". " + "b" * 40
        assert chunk_by_tokens(text, BUDGET_TOKENS) == ["a" * 60 + ".", "b" * 40]

    def test_falls_back_to_word_break(self):
        text = "a" * 50 + " " + "b" * 50
        assert chunk_by_tokens(text, BUDGET_TOKENS) == ["a" * 50, "b" * 50]

    def test_ignores_breaks_in_first_half_of_window(self):
        text = "a" * 10 + "\n\n" + "b" * 100
        chunks = chunk_by_tokens(text, BUDGET_TOKENS)
        assert len(chunks[0]) == BUDGET_CHARS

    def test_hard_cut_without_any_boundary(self):
        chunks = chunk_by_tokens("x" * 200, BUDGET_TOKENS)
        assert chunks == ["x" * 80, "x" * 80, "x" * 40]

    @pytest.mark.parametrize(
        "text",
        [
            "word " * 300,
            "Sentence one. Sentence two! Question? " * 40,
            "para\n\n" * 100 + "tail",
            "x" * 1000,
        ],
    )
    def test_terminates_within_budget_and_reconstructs(self, text):
        chunks = chunk_by_tokens(text, BUDGET_TOKENS)
        assert chunks
        assert all(0 < len(c) <= BUDGET_CHARS for c in chunks)
        assert _squash("".join(chunks)) == _squash(text)

    def test_non_positive_budget_rejected(self):
        with pytest.raises(ValueError, match="at least one character"):
            chunk_by_tokens("abc", 0)


@pytest.mark.unit
@pytest.mark.parametrize("target", [1, 2, 3, 10, 80])
def test_split_point_always_advances(target):
    for text in ("\n\n" * 50, ". " * 50, " " * 100, "z" * 100):
        cut = find_split_point(text, target)
        assert 1 <= cut <= target


@pytest.mark.unit
class TestChunkByDocument:
    def _doc(self, name: str, text: str) -> Document:
        return Document(id=name.lower(), name=name, text=text)

    def test_packs_whole_documents_until_budget(self):
        # Each rendered document is 12 header chars + 10 text chars = 22
        docs = [self._doc(n, "t" * 10) for n in "ABCD"]
        chunks = chunk_by_document(docs, BUDGET_TOKENS)
        assert len(chunks) == 2
        assert chunks[0].startswith("=== A ===")
        assert "=== C ===" in chunks[0]
        assert chunks[1] == "=== D ===\n" + "t" * 10

    def test_oversized_document_is_subdivided_alone(self):
        docs = [
            self._doc("A", "small"),
            self._doc("B", "x" * 200),
            self._doc("C", "tiny"),
        ]
        chunks = chunk_by_document(docs, BUDGET_TOKENS)
        assert chunks[0] == "=== A ===\nsmall"
        assert chunks[-1] == "=== C ===\ntiny"
        middle = chunks[1:-1]
        assert len(middle) >= 3
        assert all("=== A ===" not in c and "=== C ===" not in c for c in middle)
        assert all(len(c) <= BUDGET_CHARS for c in middle)

    def test_empty_document_set(self):
        assert chunk_by_document([], BUDGET_TOKENS) == []


@pytest.mark.unit
class TestChunkContent:
    policy = dataclasses.replace(DEFAULT_TIER_POLICIES["FREE"], chunk_size=BUDGET_TOKENS)

    def test_by_document_mode_on_plain_text_uses_token_chunking(self):
        text = "a" * 50 + " " + "b" * 50
        assert chunk_content(text, CHUNKING_BY_DOCUMENT, self.policy) == [
            "a" * 50,
            "b" * 50,
        ]

    def test_by_tokens_mode_flattens_documents(self):
        docs = (Document(id="a", name="A", text="one"), Document(id="b", name="B", text="two"))
        assert chunk_content(docs, CHUNKING_BY_TOKENS, self.policy) == [
            "=== A ===\none\n\n=== B ===\ntwo"
        ]
