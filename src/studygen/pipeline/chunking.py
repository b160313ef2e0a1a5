"""Content chunking.

Two strategies:

- ``chunk_by_tokens`` cuts a text at the best boundary before the target
  size: paragraph, then sentence, then word, then a hard cut.
- ``chunk_by_document`` packs whole rendered documents greedily and only
  subdivides a document that alone exceeds the budget.

Every cut consumes at least one character, so both loops terminate for any
positive budget.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging

from studygen.constants import (
    CHARS_PER_TOKEN,
    CHUNKING_BY_DOCUMENT,
    MIN_SPLIT_RATIO,
    SENTENCE_ENDINGS,
    SENTENCE_WINDOW_START,
)
from studygen.core.policy import TierPolicy
from studygen.core.types import Content, Document
from studygen.estimation import flatten_content, render_document

logger = logging.getLogger(__name__)


def _char_budget(target_tokens: int, chars_per_token: int) -> int:
    budget = target_tokens * chars_per_token
    if budget < 1:
        raise ValueError(
            f"Chunk budget must be at least one character, got {target_tokens} tokens "
            f"x {chars_per_token} chars/token"
        )
    return budget


def _sentence_break(text: str, target: int) -> int:
    """Return the cut position after the last sentence ending in the window, or -1."""
    start = int(target * SENTENCE_WINDOW_START)
    window = text[start:target]
    best = max(window.rfind(ending) for ending in SENTENCE_ENDINGS)
    if best < 0:
        return -1
    return start + best + 2


def find_split_point(text: str, target: int) -> int:
    """Return where to cut ``text`` so the head stays within ``target`` chars.

    The result is always in ``[1, target]``.
    """
    floor = target * MIN_SPLIT_RATIO

    paragraph = text.rfind("\n\n", 0, target)
    if paragraph > floor:
        return paragraph + 2

    sentence = _sentence_break(text, target)
    if sentence > floor:
        return sentence

    word = text.rfind(" ", 0, target)
    if word > floor:
        return word + 1

    return target


def chunk_by_tokens(
    text: str, target_tokens: int, chars_per_token: int = CHARS_PER_TOKEN
) -> list[str]:
    """Split text into trimmed pieces of at most ``target_tokens`` tokens."""
    target = _char_budget(target_tokens, chars_per_token)
    remaining = text.strip()
    chunks: list[str] = []

    while remaining:
        if len(remaining) <= target:
            chunks.append(remaining)
            break
        cut = find_split_point(remaining, target)
        piece = remaining[:cut].strip()
        if piece:
            chunks.append(piece)
        remaining = remaining[cut:].strip()

    return chunks


def chunk_by_document(
    documents: Sequence[Document],
    target_tokens: int,
    chars_per_token: int = CHARS_PER_TOKEN,
) -> list[str]:
    """Pack rendered documents into chunks, preserving document boundaries.

    A document that alone exceeds the budget flushes the buffer and is split
    with `chunk_by_tokens`; its pieces are never packed with other documents.
    """
    target = _char_budget(target_tokens, chars_per_token)
    chunks: list[str] = []
    buffer = ""

    for doc in documents:
        rendered = render_document(doc)

        if len(rendered) > target:
            if buffer.strip():
                chunks.append(buffer.strip())
            buffer = ""
            logger.debug(
                "Document %r exceeds chunk budget (%d > %d chars); subdividing",
                doc.name,
                len(rendered),
                target,
            )
            chunks.extend(chunk_by_tokens(rendered, target_tokens, chars_per_token))
            continue

        if buffer and len(buffer) + len(rendered) > target:
            chunks.append(buffer.strip())
            buffer = rendered
        else:
            buffer += rendered

    if buffer.strip():
        chunks.append(buffer.strip())
    return chunks


def chunk_content(content: Content, mode: str, policy: TierPolicy) -> list[str]:
    """Chunk content using the given mode and the policy's chunk budget."""
    chars_per_token = policy.token_estimation.chars_per_token
    if mode == CHUNKING_BY_DOCUMENT and not isinstance(content, str):
        return chunk_by_document(content, policy.chunk_size, chars_per_token)
    return chunk_by_tokens(flatten_content(content), policy.chunk_size, chars_per_token)
