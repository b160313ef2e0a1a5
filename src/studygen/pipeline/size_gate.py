"""Pre-flight size check.

Rejects content whose estimate exceeds the tier ceiling before any
generation call is made.
"""

from __future__ import annotations

import logging

from studygen.core.exceptions import ContentTooLargeError
from studygen.core.types import Failure, ResolvedRequest, Result, SizedRequest, Success
from studygen.estimation import estimate_tokens, max_processable_tokens
from studygen.pipeline.base import BaseAsyncHandler

logger = logging.getLogger(__name__)


class SizeGate(BaseAsyncHandler[ResolvedRequest, SizedRequest, ContentTooLargeError]):
    """Compares the content estimate to `max_processable_tokens`."""

    async def handle(
        self, command: ResolvedRequest
    ) -> Result[SizedRequest, ContentTooLargeError]:
        policy = command.policy
        estimated = estimate_tokens(command.initial.content, policy.token_estimation)
        ceiling = max_processable_tokens(policy)
        if estimated > ceiling:
            logger.info(
                "Rejecting %s request: %d estimated tokens > %d ceiling (%s tier)",
                command.task.name,
                estimated,
                ceiling,
                policy.name,
            )
            return Failure(ContentTooLargeError(estimated, ceiling))
        return Success(
            SizedRequest(resolved=command, estimated_tokens=estimated, max_tokens=ceiling)
        )
