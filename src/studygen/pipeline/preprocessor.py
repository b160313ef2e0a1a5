"""Pre-processing stage: recursive summarization of oversized inputs.

For a document set, each document above the chunk size is summarized on its
own; for single text, the whole text is. Summarization starts at depth 1.
"""

from __future__ import annotations

import dataclasses
import logging

from studygen.constants import SINGLE_TEXT_INPUT_ID
from studygen.core.exceptions import StudygenError
from studygen.core.types import (
    Document,
    PreparedRequest,
    Result,
    SizedRequest,
    Success,
    SummaryOutcome,
)
from studygen.estimation import estimate_tokens
from studygen.pipeline.base import BaseAsyncHandler
from studygen.pipeline.summarizer import RecursiveSummarizer

logger = logging.getLogger(__name__)

SUMMARIZATION_START_DEPTH = 1


def _outcome_warnings(label: str, outcome: SummaryOutcome) -> list[str]:
    warnings: list[str] = []
    if outcome.failed_pieces:
        warnings.append(
            f"{outcome.failed_pieces} summarization piece(s) failed for {label}; "
            "excerpts used instead"
        )
    if outcome.dropped_pieces:
        warnings.append(
            f"{outcome.dropped_pieces} piece(s) of {label} dropped during summarization"
        )
    if outcome.truncated:
        warnings.append(f"{label} truncated after reaching maximum summarization depth")
    return warnings


class Preprocessor(BaseAsyncHandler[SizedRequest, PreparedRequest, StudygenError]):
    """Summarizes inputs that exceed the policy's chunk size."""

    def __init__(self, summarizer: RecursiveSummarizer) -> None:
        self._summarizer = summarizer

    async def handle(
        self, command: SizedRequest
    ) -> Result[PreparedRequest, StudygenError]:
        resolved = command.resolved
        policy = resolved.policy
        focus = resolved.task.summarization_focus()
        content = resolved.initial.content

        if isinstance(content, str):
            if estimate_tokens(content, policy.token_estimation) <= policy.chunk_size:
                return Success(PreparedRequest(sized=command, content=content))
            outcome = await self._summarizer.summarize(
                content, focus, SUMMARIZATION_START_DEPTH, policy
            )
            logger.info("Content summarized before processing")
            return Success(
                PreparedRequest(
                    sized=command,
                    content=outcome.text,
                    tokens_used=outcome.tokens_used,
                    warnings=(
                        "Content summarized before processing",
                        *_outcome_warnings("content", outcome),
                    ),
                    summarized_inputs=(SINGLE_TEXT_INPUT_ID,),
                )
            )

        documents: list[Document] = []
        summarized: list[Document] = []
        warnings: list[str] = []
        tokens_used = 0
        # One document at a time so the executor's concurrency bound holds.
        for doc in content:
            if estimate_tokens(doc.text, policy.token_estimation) <= policy.chunk_size:
                documents.append(doc)
                continue
            outcome = await self._summarizer.summarize(
                doc.text, focus, SUMMARIZATION_START_DEPTH, policy
            )
            tokens_used += outcome.tokens_used
            warnings.extend(_outcome_warnings(f"document '{doc.name}'", outcome))
            summarized.append(doc)
            documents.append(dataclasses.replace(doc, text=outcome.text))

        if summarized:
            names = ", ".join(doc.name for doc in summarized)
            logger.info("%d document(s) summarized before processing: %s", len(summarized), names)
            warnings.insert(
                0, f"{len(summarized)} document(s) summarized before processing: {names}"
            )
        return Success(
            PreparedRequest(
                sized=command,
                content=tuple(documents),
                tokens_used=tokens_used,
                warnings=tuple(warnings),
                summarized_inputs=tuple(doc.id for doc in summarized),
            )
        )
