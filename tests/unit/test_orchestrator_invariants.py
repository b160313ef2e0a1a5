from typing import Any

import pytest

from studygen.config import FrozenConfig
from studygen.core.exceptions import (
    ContentTooLargeError,
    InvariantViolationError,
    PipelineError,
    StudygenError,
    UnknownTaskError,
    ValidationError,
)
from studygen.core.types import Failure, GenerationRequest, Result, RunOptions, Success
from studygen.orchestrator import Orchestrator
from studygen.pipeline.adapters import MockAdapter
from studygen.pipeline.base import BaseAsyncHandler


class FailingStage(BaseAsyncHandler[Any, Any, StudygenError]):
    """A minimal stage that always fails to exercise the PipelineError path."""

    async def handle(self, _command: Any) -> Result[Any, StudygenError]:
        return Failure(StudygenError("boom"))


class PassThroughStage(BaseAsyncHandler[Any, Any, StudygenError]):
    """Returns its input unchanged, so no PipelineOutcome is ever produced."""

    async def handle(self, command: Any) -> Result[Any, StudygenError]:
        return Success(command)


class NonResultStage:
    async def handle(self, command: Any) -> Any:
        return command


class TooLargeStage:
    async def handle(self, _command: Any) -> Result[Any, ContentTooLargeError]:
        return Failure(ContentTooLargeError(10, 5))


def _request() -> GenerationRequest:
    return GenerationRequest(task_name="quiz", content="Hello", params={})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_pipeline_error_uses_true_stage_name() -> None:
    orchestrator = Orchestrator(FrozenConfig(), stages=[FailingStage()])

    with pytest.raises(PipelineError) as ei:
        await orchestrator.execute(_request())

    err = ei.value
    assert err.handler_name == "FailingStage"
    assert isinstance(err.underlying_error, StudygenError)
    assert orchestrator.stage_names == ("FailingStage",)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invariant_violation_when_no_outcome_produced() -> None:
    orchestrator = Orchestrator(FrozenConfig(), stages=[PassThroughStage()])

    with pytest.raises(InvariantViolationError) as ei:
        await orchestrator.execute(_request())

    assert "PipelineOutcome" in str(ei.value)
    assert ei.value.stage_name == "PassThroughStage"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invariant_violation_for_non_result_value() -> None:
    orchestrator = Orchestrator(FrozenConfig(), stages=[NonResultStage()])

    with pytest.raises(InvariantViolationError) as ei:
        await orchestrator.execute(_request())

    assert ei.value.stage_name == "NonResultStage"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_content_too_large_is_raised_unwrapped() -> None:
    orchestrator = Orchestrator(FrozenConfig(), stages=[TooLargeStage(), FailingStage()])

    with pytest.raises(ContentTooLargeError) as ei:
        await orchestrator.execute(_request())

    assert (ei.value.estimated_tokens, ei.value.max_tokens) == (10, 5)


@pytest.mark.unit
def test_empty_pipeline_rejected() -> None:
    with pytest.raises(ValueError, match="empty"):
        Orchestrator(FrozenConfig(), stages=[])


@pytest.mark.unit
def test_default_pipeline_stage_order() -> None:
    assert Orchestrator().stage_names == (
        "PolicyResolver",
        "SizeGate",
        "Preprocessor",
        "GenerationStage",
        "ResultBuilder",
    )


@pytest.mark.unit
def test_mock_adapter_is_default() -> None:
    assert isinstance(Orchestrator(FrozenConfig(use_real_api=False)).adapter, MockAdapter)


@pytest.mark.unit
def test_real_api_without_key_rejected() -> None:
    with pytest.raises(ValueError, match="api_key"):
        Orchestrator(FrozenConfig(use_real_api=True, api_key=None))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_task_fails_in_policy_resolution() -> None:
    with pytest.raises(PipelineError) as ei:
        await Orchestrator().run("essay", "Some text")

    assert ei.value.handler_name == "PolicyResolver"
    assert isinstance(ei.value.underlying_error, UnknownTaskError)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invalid_params_fail_in_policy_resolution() -> None:
    with pytest.raises(PipelineError) as ei:
        await Orchestrator().run("quiz", "Some text", {"count": 0})

    assert isinstance(ei.value.underlying_error, ValidationError)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unhashable_summary_length_fails_in_policy_resolution() -> None:
    with pytest.raises(PipelineError) as ei:
        await Orchestrator().run("summary", "Some text", {"length": ["short"]})

    assert ei.value.handler_name == "PolicyResolver"
    assert isinstance(ei.value.underlying_error, ValidationError)


@pytest.mark.unit
def test_run_options_validation() -> None:
    with pytest.raises(ValueError, match="chunking_mode_override"):
        RunOptions(chunking_mode_override="by-paragraph")
    with pytest.raises(ValueError, match="chunk_size_override"):
        RunOptions(chunk_size_override=0)
    assert RunOptions.from_mapping({"tier": "PREMIUM", "ignored": 1}).tier == "PREMIUM"
