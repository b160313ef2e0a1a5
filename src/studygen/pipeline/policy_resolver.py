"""Policy resolution stage: task contract, tier policy and chunking mode."""

from __future__ import annotations

from collections.abc import Mapping
import logging

from studygen.constants import CHUNKING_BY_DOCUMENT, CHUNKING_BY_TOKENS, DEFAULT_TIER
from studygen.core.exceptions import (
    ConfigurationError,
    StudygenError,
    UnknownTaskError,
    ValidationError,
)
from studygen.core.policy import PolicySource, StaticPolicySource
from studygen.core.types import (
    Failure,
    GenerationRequest,
    ResolvedRequest,
    Result,
    Success,
)
from studygen.pipeline.base import BaseAsyncHandler
from studygen.tasks import TASK_REGISTRY, TaskFactory, get_task

logger = logging.getLogger(__name__)


class PolicyResolver(BaseAsyncHandler[GenerationRequest, ResolvedRequest, StudygenError]):
    """Resolves the task contract and the effective tier policy for a request.

    Per-request overrides and configuration limits are applied here, once;
    later stages treat the policy as fixed.
    """

    def __init__(
        self,
        policy_source: PolicySource | None = None,
        task_registry: Mapping[str, TaskFactory] = TASK_REGISTRY,
        *,
        default_tier: str = DEFAULT_TIER,
        parallel_limit_cap: int | None = None,
        fallback_model: str | None = None,
    ) -> None:
        self._policies = policy_source or StaticPolicySource()
        self._registry = task_registry
        self._default_tier = default_tier
        self._parallel_limit_cap = parallel_limit_cap
        self._fallback_model = fallback_model

    async def handle(
        self, command: GenerationRequest
    ) -> Result[ResolvedRequest, StudygenError]:
        try:
            task = get_task(command.task_name, self._registry)
            task.check_params(command.params)
        except (UnknownTaskError, ValidationError) as e:
            return Failure(e)

        options = command.options
        policy = self._policies.get(options.tier or self._default_tier)

        parallel_limit = None
        if self._parallel_limit_cap is not None:
            parallel_limit = min(policy.parallel_limit, self._parallel_limit_cap)
        try:
            policy = policy.with_overrides(
                chunk_size=options.chunk_size_override,
                parallel_limit=parallel_limit,
                fallback_model=None if policy.fallback_model else self._fallback_model,
            )
        except ValueError as e:
            return Failure(ConfigurationError(f"Invalid policy override: {e}"))

        mode = options.chunking_mode_override or (
            CHUNKING_BY_DOCUMENT if task.needs_document_context() else CHUNKING_BY_TOKENS
        )
        logger.debug(
            "Resolved task=%s tier=%s chunk_size=%d mode=%s",
            task.name,
            policy.name,
            policy.chunk_size,
            mode,
        )
        return Success(
            ResolvedRequest(initial=command, task=task, policy=policy, chunking_mode=mode)
        )
