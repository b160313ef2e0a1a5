"""Terminal stage: validate the task output and assemble `PipelineOutcome`."""

from __future__ import annotations

import logging

from studygen.core.exceptions import ValidationError
from studygen.core.types import (
    Failure,
    GeneratedRequest,
    PipelineOutcome,
    Result,
    Success,
)
from studygen.pipeline.base import BaseAsyncHandler

logger = logging.getLogger(__name__)


class ResultBuilder(BaseAsyncHandler[GeneratedRequest, PipelineOutcome, ValidationError]):
    """Runs the task's final validation and collects accounting.

    Token usage and warnings are cumulative: pre-processing first, then the
    generation stage.
    """

    async def handle(
        self, command: GeneratedRequest
    ) -> Result[PipelineOutcome, ValidationError]:
        prepared = command.prepared
        sized = prepared.sized
        resolved = sized.resolved
        try:
            result = resolved.task.validate_result(
                command.raw_result, resolved.initial.params
            )
        except ValidationError as e:
            return Failure(e)

        tokens_used = prepared.tokens_used + command.tokens_used
        warnings = (*prepared.warnings, *command.warnings)
        logger.info(
            "%s request finished via %s: %d tokens, %d warning(s)",
            resolved.task.name,
            command.path,
            tokens_used,
            len(warnings),
        )
        return Success(
            PipelineOutcome(
                result=result,
                tokens_used=tokens_used,
                warnings=warnings,
                summarized_inputs=prepared.summarized_inputs,
                path=command.path,
                estimated_tokens=sized.estimated_tokens,
            )
        )
