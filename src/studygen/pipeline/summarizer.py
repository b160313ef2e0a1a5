"""Recursive, depth-bounded summarization of oversized inputs.

An input that exceeds the policy's chunk size is split, each piece is
summarized, and the joined summaries are checked again. Each round is one
level deeper; past ``max_depth`` the text is truncated instead. A piece whose
summarization fails is replaced by a short verbatim excerpt so one bad call
never loses the whole input.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from studygen.constants import FAILED_PIECE_EXCERPT_RATIO
from studygen.core.policy import Phase, resolve_fallback_model, resolve_model
from studygen.core.types import SummaryOutcome
from studygen.estimation import estimate_tokens
from studygen.pipeline.chunking import chunk_by_tokens

if TYPE_CHECKING:
    from studygen.core.policy import TierPolicy
    from studygen.pipeline.map_executor import BoundedMapExecutor

logger = logging.getLogger(__name__)


def build_summarization_prompt(content: str, focus_hint: str) -> str:
    """Prompt asking for a compact summary that keeps what the task needs."""
    return f"""Summarize the following content concisely while preserving the information needed later.

{focus_hint}

Keep the summary well under a tenth of the original length. Do not add information that is not in the content.

Content:
{content}

Summary:"""


def _excerpt(piece: str) -> str:
    return piece[: max(1, int(len(piece) * FAILED_PIECE_EXCERPT_RATIO))].strip()


class RecursiveSummarizer:
    """Collapses oversized text below the policy's chunk size."""

    def __init__(self, executor: BoundedMapExecutor) -> None:
        self._executor = executor

    async def summarize(
        self, content: str, focus_hint: str, depth: int, policy: TierPolicy
    ) -> SummaryOutcome:
        """Summarize ``content`` starting at ``depth``.

        Returns the text unchanged (at zero cost) when it already fits.
        """
        estimation = policy.token_estimation
        text = content
        tokens_used = 0
        failed_pieces = 0
        dropped_pieces = 0

        while estimate_tokens(text, estimation) > policy.chunk_size:
            if depth > policy.max_depth:
                logger.warning(
                    "Summarization depth %d exceeds max depth %d; truncating to %d chars",
                    depth,
                    policy.max_depth,
                    policy.chunk_chars,
                )
                return SummaryOutcome(
                    text=text[: policy.chunk_chars],
                    tokens_used=tokens_used,
                    truncated=True,
                    failed_pieces=failed_pieces,
                    dropped_pieces=dropped_pieces,
                )

            pieces = chunk_by_tokens(
                text, policy.chunk_size, estimation.chars_per_token
            )
            if len(pieces) > policy.max_chunks:
                logger.warning(
                    "Summarization at depth %d dropped %d of %d pieces (max_chunks=%d)",
                    depth,
                    len(pieces) - policy.max_chunks,
                    len(pieces),
                    policy.max_chunks,
                )
                dropped_pieces += len(pieces) - policy.max_chunks
                pieces = pieces[: policy.max_chunks]

            model = resolve_model(policy, depth, Phase.MAP)
            logger.info(
                "Summarizing %d pieces at depth %d on %s", len(pieces), depth, model
            )
            outcomes = await self._executor.run_prompts(
                [build_summarization_prompt(p, focus_hint) for p in pieces],
                model=model,
                fallback_model=resolve_fallback_model(policy, model),
                parallel_limit=policy.parallel_limit,
                parse=str.strip,
            )

            summaries: list[str] = []
            for piece, outcome in zip(pieces, outcomes, strict=True):
                tokens_used += outcome.tokens_used
                if outcome.ok and outcome.value:
                    summaries.append(outcome.value)
                else:
                    failed_pieces += 1
                    summaries.append(_excerpt(piece))

            text = "\n\n".join(summaries)
            depth += 1

        return SummaryOutcome(
            text=text,
            tokens_used=tokens_used,
            failed_pieces=failed_pieces,
            dropped_pieces=dropped_pieces,
        )
