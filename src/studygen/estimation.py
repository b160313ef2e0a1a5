"""Size estimation for content and tier ceilings.

Estimates are character based and intentionally conservative: they decide
routing and rejection before any provider call, so they must be cheap and
deterministic.
"""

from __future__ import annotations

import math

from studygen.constants import DOCUMENT_HEADER
from studygen.core.policy import TierPolicy, TokenEstimation
from studygen.core.types import Content, Document

_DEFAULT_ESTIMATION = TokenEstimation()


def content_length(content: Content) -> int:
    """Return the character count of content, summed across documents."""
    if isinstance(content, str):
        return len(content)
    return sum(len(doc.text) for doc in content)


def estimate_tokens(
    content: Content, estimation: TokenEstimation = _DEFAULT_ESTIMATION
) -> int:
    """Estimate tokens for content.

    ``ceil(chars / chars_per_token * overhead_multiplier)``; empty content is 0.
    """
    chars = content_length(content)
    if chars == 0:
        return 0
    return math.ceil(
        chars / estimation.chars_per_token * estimation.overhead_multiplier
    )


def max_processable_tokens(policy: TierPolicy) -> int:
    """Return the planning ceiling for a tier.

    ``chunk_size * max_chunks``, multiplied by the summarization compression
    once per depth level: each round of summarization lets proportionally
    larger raw input fit.
    """
    return (
        policy.chunk_size
        * policy.max_chunks
        * policy.summarization_compression**policy.max_depth
    )


def render_document(doc: Document) -> str:
    """Render one document with its ``=== name ===`` header."""
    return DOCUMENT_HEADER.format(name=doc.name, text=doc.text)


def flatten_content(content: Content) -> str:
    """Flatten content into a single display string with per-document headers."""
    if isinstance(content, str):
        return content
    return "".join(render_document(doc) for doc in content).strip()
