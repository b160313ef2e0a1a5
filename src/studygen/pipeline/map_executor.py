"""Bounded concurrent execution of per-chunk generation calls.

Chunks run in sequential batches of ``parallel_limit``. Calls within a batch
run concurrently and the whole batch is awaited before the next one starts,
which caps outstanding provider calls at ``parallel_limit``. This module is
the only place in the pipeline where several generation calls are in flight.

A failed call never aborts its batch: it retries once on the fallback model
and, if that also fails or the response is malformed, is recorded as a
failure and skipped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
import logging
import math
from typing import TYPE_CHECKING, Any

from studygen.core.exceptions import MalformedResponseError, ProviderError
from studygen.core.policy import Phase, resolve_fallback_model, resolve_model
from studygen.core.types import CallOutcome, MapOutcome
from studygen.telemetry import TelemetryContext

if TYPE_CHECKING:
    from studygen.core.policy import TierPolicy
    from studygen.pipeline.generation import GenerationClient
    from studygen.tasks.base import TaskContract
    from studygen.telemetry import TelemetryContextProtocol

logger = logging.getLogger(__name__)

T_BATCH = "map.batch"
T_CALL_FAILED = "map.call_failed"

type Parser = Callable[[str], Any]


class BoundedMapExecutor:
    """Runs generation calls in bounded, sequential batches."""

    def __init__(
        self,
        client: GenerationClient,
        *,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self._client = client
        self._telemetry: TelemetryContextProtocol = telemetry or TelemetryContext()

    async def map_all(
        self,
        chunks: Sequence[str],
        params: Mapping[str, Any],
        depth: int,
        policy: TierPolicy,
        task: TaskContract,
    ) -> MapOutcome:
        """Run the task's map prompt over every chunk.

        Returns the parsed partial results of the chunks that succeeded, in
        chunk order, plus total tokens and the number of failed chunks.
        """
        prompts = [task.build_map_prompt(chunk, params, depth) for chunk in chunks]
        model = resolve_model(policy, depth, Phase.MAP)
        outcomes = await self.run_prompts(
            prompts,
            model=model,
            fallback_model=resolve_fallback_model(policy, model),
            parallel_limit=policy.parallel_limit,
            parse=lambda text: task.parse_response(text, depth),
        )
        failed = sum(1 for o in outcomes if not o.ok)
        if failed:
            logger.warning("%d of %d chunks failed in map phase", failed, len(outcomes))
        return MapOutcome(
            results=tuple(o.value for o in outcomes if o.ok),
            tokens_used=sum(o.tokens_used for o in outcomes),
            failed_count=failed,
        )

    async def run_prompts(
        self,
        prompts: Sequence[str],
        *,
        model: str,
        fallback_model: str | None,
        parallel_limit: int,
        parse: Parser | None = None,
    ) -> list[CallOutcome[Any]]:
        """Run prompts in batches and return one outcome per prompt, in order."""
        if parallel_limit < 1:
            raise ValueError("parallel_limit must be >= 1")

        outcomes: list[CallOutcome[Any]] = []
        total_batches = math.ceil(len(prompts) / parallel_limit)
        for batch_index, start in enumerate(range(0, len(prompts), parallel_limit)):
            batch = prompts[start : start + parallel_limit]
            logger.info(
                "Processing batch %d/%d (%d calls) on %s",
                batch_index + 1,
                total_batches,
                len(batch),
                model,
            )
            with self._telemetry(T_BATCH, size=len(batch)):
                outcomes.extend(
                    await asyncio.gather(
                        *(
                            self._run_one(start + i, prompt, model, fallback_model, parse)
                            for i, prompt in enumerate(batch)
                        )
                    )
                )
        return outcomes

    async def _run_one(
        self,
        index: int,
        prompt: str,
        model: str,
        fallback_model: str | None,
        parse: Parser | None,
    ) -> CallOutcome[Any]:
        try:
            result = await self._client.generate_with_fallback(
                prompt, model=model, fallback_model=fallback_model
            )
        except ProviderError as e:
            logger.warning("Call %d failed after fallback: %s", index, e)
            self._telemetry.count(T_CALL_FAILED, reason="provider")
            return CallOutcome(index=index, value=None, tokens_used=0, error=e)

        if parse is None:
            return CallOutcome(index=index, value=result.text, tokens_used=result.tokens_used)
        try:
            value = parse(result.text)
        except MalformedResponseError as e:
            logger.warning("Call %d returned a malformed response: %s", index, e)
            self._telemetry.count(T_CALL_FAILED, reason="malformed")
            return CallOutcome(
                index=index, value=None, tokens_used=result.tokens_used, error=e
            )
        return CallOutcome(index=index, value=value, tokens_used=result.tokens_used)
