"""Generation client and bounded map executor tests."""

import asyncio
import json

import pytest

from studygen.core.exceptions import ProviderError
from studygen.core.policy import DEFAULT_TIER_POLICIES, DepthModels, TierPolicy
from studygen.core.types import GenerationResult
from studygen.pipeline.adapters import MockAdapter
from studygen.pipeline.generation import GenerationClient
from studygen.pipeline.map_executor import BoundedMapExecutor
from studygen.tasks import Flashcard, FlashcardTask
from studygen.telemetry import InMemoryReporter, TelemetryContext

FREE = DEFAULT_TIER_POLICIES["FREE"]


class SlowAdapter:
    async def generate(self, *, model_name: str, prompt: str) -> GenerationResult:
        await asyncio.sleep(10)
        return GenerationResult(text="late")


@pytest.mark.unit
class TestGenerationClient:
    @pytest.mark.asyncio
    async def test_timeout_becomes_provider_error(self):
        client = GenerationClient(SlowAdapter(), timeout_seconds=0.01)
        with pytest.raises(ProviderError, match="timed out"):
            await client.generate("p", model="m")

    @pytest.mark.asyncio
    async def test_adapter_exceptions_are_normalized(self, scripted_adapter):
        def script(model, prompt):
            raise RuntimeError("503 unavailable")

        client = GenerationClient(scripted_adapter(script))
        with pytest.raises(ProviderError) as ei:
            await client.generate("p", model="m")
        assert ei.value.model_name == "m"
        assert isinstance(ei.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_fallback_retries_once_on_fallback_model(self, scripted_adapter):
        def script(model, prompt):
            if model == "primary":
                raise RuntimeError("boom")
            return "ok"

        adapter = scripted_adapter(script)
        result = await GenerationClient(adapter).generate_with_fallback(
            "p", model="primary", fallback_model="backup"
        )
        assert result.text == "ok"
        assert [m for m, _ in adapter.calls] == ["primary", "backup"]

    @pytest.mark.asyncio
    async def test_fallback_failure_propagates(self, scripted_adapter):
        def script(model, prompt):
            raise RuntimeError("down")

        adapter = scripted_adapter(script)
        with pytest.raises(ProviderError):
            await GenerationClient(adapter).generate_with_fallback("p", model="m")
        assert len(adapter.calls) == 2

    @pytest.mark.asyncio
    async def test_fallback_is_counted(self, scripted_adapter):
        calls = {"n": 0}

        def script(model, prompt):
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("first call fails")
            return "ok"

        reporter = InMemoryReporter()
        client = GenerationClient(
            scripted_adapter(script),
            telemetry=TelemetryContext(reporter, enabled=True),
        )
        await client.generate_with_fallback("p", model="m")
        assert reporter.metric_total("generation.fallback") == 1

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError, match="timeout"):
            GenerationClient(MockAdapter(), timeout_seconds=0)


@pytest.mark.unit
class TestBoundedMapExecutor:
    @pytest.mark.asyncio
    async def test_concurrency_never_exceeds_parallel_limit(self, scripted_adapter):
        adapter = scripted_adapter(lambda model, prompt: prompt)
        executor = BoundedMapExecutor(GenerationClient(adapter))
        outcomes = await executor.run_prompts(
            [f"p{i}" for i in range(7)],
            model="m",
            fallback_model=None,
            parallel_limit=3,
        )
        assert [o.value for o in outcomes] == [f"p{i}" for i in range(7)]
        assert [o.index for o in outcomes] == list(range(7))
        assert adapter.max_in_flight == 3

    @pytest.mark.asyncio
    async def test_invalid_parallel_limit_rejected(self):
        executor = BoundedMapExecutor(GenerationClient(MockAdapter()))
        with pytest.raises(ValueError, match="parallel_limit"):
            await executor.run_prompts(["p"], model="m", fallback_model=None, parallel_limit=0)

    @pytest.mark.asyncio
    async def test_partial_failures_are_skipped_and_counted(self, scripted_adapter):
        def script(model, prompt):
            if "CHUNK-1" in prompt:
                raise RuntimeError("provider down")
            if "CHUNK-2" in prompt:
                return "not json"
            return json.dumps([{"front": prompt[-20:], "back": "A"}])

        adapter = scripted_adapter(script, tokens_per_call=10)
        executor = BoundedMapExecutor(GenerationClient(adapter))
        outcome = await executor.map_all(
            ["CHUNK-0", "CHUNK-1", "CHUNK-2", "CHUNK-3"],
            {"count": 5},
            0,
            FREE,
            FlashcardTask(),
        )
        assert outcome.failed_count == 2
        assert len(outcome.results) == 2
        assert all(isinstance(card, Flashcard) for r in outcome.results for card in r)
        # CHUNK-1: two failed attempts, no tokens. CHUNK-2: malformed, tokens kept.
        assert outcome.tokens_used == 30
        assert len(adapter.calls) == 5

    @pytest.mark.asyncio
    async def test_map_uses_depth_map_model(self, scripted_adapter):
        policy = TierPolicy(
            name="T",
            threshold=1,
            chunk_size=1,
            max_depth=1,
            max_chunks=1,
            models_by_depth=(DepthModels("map-zero", "reduce-zero"),),
        )
        adapter = scripted_adapter(lambda model, prompt: "[]")
        await BoundedMapExecutor(GenerationClient(adapter)).map_all(
            ["c"], {}, 0, policy, FlashcardTask()
        )
        assert adapter.calls[0][0] == "map-zero"
