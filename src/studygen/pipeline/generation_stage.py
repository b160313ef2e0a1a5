"""Generation stage: direct call or map-reduce.

Content at or below the tier threshold gets one depth-0 call over the whole
flattened text. Larger content is chunked, mapped with bounded concurrency,
combined, and optionally curated by one reduce call.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from studygen.core.exceptions import (
    MalformedResponseError,
    ProviderError,
    StudygenError,
)
from studygen.core.policy import Phase, resolve_fallback_model, resolve_model
from studygen.core.types import (
    Failure,
    GeneratedRequest,
    PreparedRequest,
    Result,
    Success,
)
from studygen.estimation import estimate_tokens, flatten_content
from studygen.pipeline.base import BaseAsyncHandler
from studygen.pipeline.chunking import chunk_content
from studygen.telemetry import TelemetryContext

if TYPE_CHECKING:
    from studygen.pipeline.generation import GenerationClient
    from studygen.pipeline.map_executor import BoundedMapExecutor
    from studygen.telemetry import TelemetryContextProtocol

logger = logging.getLogger(__name__)

FINAL_DEPTH = 0


class GenerationStage(BaseAsyncHandler[PreparedRequest, GeneratedRequest, StudygenError]):
    """Chooses between the DIRECT and MAP_REDUCE paths and runs it."""

    def __init__(
        self,
        client: GenerationClient,
        executor: BoundedMapExecutor,
        *,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self._client = client
        self._executor = executor
        self._telemetry: TelemetryContextProtocol = telemetry or TelemetryContext()

    async def handle(
        self, command: PreparedRequest
    ) -> Result[GeneratedRequest, StudygenError]:
        policy = command.sized.resolved.policy
        estimated = estimate_tokens(command.content, policy.token_estimation)
        if estimated <= policy.threshold:
            logger.info(
                "DIRECT path: %d estimated tokens <= threshold %d",
                estimated,
                policy.threshold,
            )
            return await self._direct(command)
        logger.info(
            "MAP_REDUCE path: %d estimated tokens > threshold %d",
            estimated,
            policy.threshold,
        )
        return await self._map_reduce(command)

    async def _direct(
        self, command: PreparedRequest
    ) -> Result[GeneratedRequest, StudygenError]:
        resolved = command.sized.resolved
        task, policy = resolved.task, resolved.policy
        params = resolved.initial.params

        prompt = task.build_map_prompt(flatten_content(command.content), params, FINAL_DEPTH)
        model = resolve_model(policy, FINAL_DEPTH, Phase.REDUCE)
        try:
            with self._telemetry("generation.direct", model=model):
                generated = await self._client.generate_with_fallback(
                    prompt,
                    model=model,
                    fallback_model=resolve_fallback_model(policy, model),
                )
            parsed = task.parse_response(generated.text, FINAL_DEPTH)
        except (ProviderError, MalformedResponseError) as e:
            return Failure(e)

        return Success(
            GeneratedRequest(
                prepared=command,
                raw_result=parsed,
                path="direct",
                tokens_used=generated.tokens_used,
            )
        )

    async def _map_reduce(
        self, command: PreparedRequest
    ) -> Result[GeneratedRequest, StudygenError]:
        resolved = command.sized.resolved
        task, policy = resolved.task, resolved.policy
        params = resolved.initial.params
        warnings: list[str] = []

        chunks = chunk_content(command.content, resolved.chunking_mode, policy)
        if len(chunks) > policy.max_chunks:
            logger.warning(
                "Chunk count %d exceeds max_chunks %d; dropping the excess",
                len(chunks),
                policy.max_chunks,
            )
            warnings.append(f"chunks truncated from {len(chunks)} to {policy.max_chunks}")
            chunks = chunks[: policy.max_chunks]
        self._telemetry.gauge("generation.chunks", len(chunks), mode=resolved.chunking_mode)

        with self._telemetry("generation.map", chunks=len(chunks)):
            mapped = await self._executor.map_all(
                chunks, params, FINAL_DEPTH, policy, task
            )
        if mapped.failed_count:
            warnings.append(f"{mapped.failed_count} of {len(chunks)} chunks failed")

        partials = list(mapped.results)
        combined = task.combine_results(partials, params)
        reduce_prompt = task.build_reduce_prompt(partials, params, FINAL_DEPTH)
        if reduce_prompt is None:
            logger.info("No reduce step needed; using combined map results")
            return Success(self._generated(command, combined, mapped.tokens_used, warnings))

        model = resolve_model(policy, FINAL_DEPTH, Phase.REDUCE)
        tokens_used = mapped.tokens_used
        try:
            with self._telemetry("generation.reduce", model=model):
                generated = await self._client.generate_with_fallback(
                    reduce_prompt,
                    model=model,
                    fallback_model=resolve_fallback_model(policy, model),
                )
            tokens_used += generated.tokens_used
            final: Any = task.parse_response(generated.text, FINAL_DEPTH)
        except (ProviderError, MalformedResponseError) as e:
            logger.warning("Reduce step failed (%s); using uncurated combined results", e)
            warnings.append("curation step failed; returning uncurated results")
            final = combined

        return Success(self._generated(command, final, tokens_used, warnings))

    @staticmethod
    def _generated(
        command: PreparedRequest, result: Any, tokens_used: int, warnings: list[str]
    ) -> GeneratedRequest:
        return GeneratedRequest(
            prepared=command,
            raw_result=result,
            path="map_reduce",
            tokens_used=tokens_used,
            warnings=tuple(warnings),
        )
