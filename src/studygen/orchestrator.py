"""The primary entry point for the content-generation pipeline.

A request moves through a fixed sequence of stages:

    PolicyResolver -> SizeGate -> Preprocessor -> GenerationStage -> ResultBuilder

Each stage returns `Success` or `Failure`. The orchestrator is the only place
where failures become exceptions: `ContentTooLargeError` is raised as is, so
callers can report the estimate and ceiling directly; every other failure is
raised as `PipelineError` carrying the failing stage's name.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
from typing import TYPE_CHECKING, Any

from studygen.config import FrozenConfig, resolve_config
from studygen.core.exceptions import (
    ConfigurationError,
    ContentTooLargeError,
    InvariantViolationError,
    PipelineError,
    StudygenError,
)
from studygen.core.types import (
    Content,
    Document,
    Failure,
    GenerationRequest,
    PipelineOutcome,
    Result,
    RunOptions,
    Success,
    coerce_content,
)
from studygen.pipeline.adapters import MockAdapter
from studygen.pipeline.generation import GenerationClient
from studygen.pipeline.generation_stage import GenerationStage
from studygen.pipeline.map_executor import BoundedMapExecutor
from studygen.pipeline.policy_resolver import PolicyResolver
from studygen.pipeline.preprocessor import Preprocessor
from studygen.pipeline.result_builder import ResultBuilder
from studygen.pipeline.size_gate import SizeGate
from studygen.pipeline.summarizer import RecursiveSummarizer
from studygen.tasks import TASK_REGISTRY
from studygen.telemetry import TelemetryContext

if TYPE_CHECKING:
    from studygen.core.policy import PolicySource
    from studygen.pipeline.adapters import GenerationAdapter
    from studygen.pipeline.base import BaseAsyncHandler
    from studygen.tasks import TaskFactory
    from studygen.telemetry import TelemetryContextProtocol, TelemetryReporter

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs generation requests through the pipeline stages.

    Collaborators are injected; nothing is cached at module level. With no
    adapter given, the configuration decides: ``use_real_api`` selects the
    google-genai adapter, otherwise the offline `MockAdapter` is used.
    """

    def __init__(
        self,
        config: FrozenConfig | None = None,
        *,
        adapter: GenerationAdapter | None = None,
        policy_source: PolicySource | None = None,
        task_registry: Mapping[str, TaskFactory] | None = None,
        reporters: Iterable[TelemetryReporter] = (),
        stages: Iterable[BaseAsyncHandler[Any, Any, StudygenError]] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Frozen configuration. Defaults to `FrozenConfig()`.
            adapter: Generation adapter; overrides ``config.use_real_api``.
            policy_source: Tier policy source. Defaults to the built-in tiers.
            task_registry: Task registry. Defaults to the built-in tasks.
            reporters: Telemetry reporters, active when telemetry is enabled.
            stages: Replacement stage sequence, for tests and introspection.
        """
        self.config = config if config is not None else FrozenConfig()
        self._telemetry: TelemetryContextProtocol = TelemetryContext(
            *reporters, enabled=self.config.telemetry_enabled or None
        )
        self._adapter = adapter if adapter is not None else self._build_adapter()
        handlers = list(
            stages
            if stages is not None
            else self._build_default_pipeline(policy_source, task_registry)
        )
        if not handlers:
            raise ValueError("Pipeline may not be empty; provide at least one stage.")
        self._stages: tuple[BaseAsyncHandler[Any, Any, StudygenError], ...] = tuple(
            handlers
        )

    def _build_adapter(self) -> GenerationAdapter:
        if self.config.use_real_api:
            if not self.config.api_key:
                raise ValueError("api_key is required when use_real_api=True")
            # Deferred so the SDK is only imported when actually used
            from studygen.pipeline.adapters.gemini import GoogleGenAIAdapter

            logger.info("Using google-genai adapter")
            return GoogleGenAIAdapter(self.config.api_key)
        logger.info("Using offline mock adapter (use_real_api=False)")
        return MockAdapter()

    def _build_default_pipeline(
        self,
        policy_source: PolicySource | None,
        task_registry: Mapping[str, TaskFactory] | None,
    ) -> list[BaseAsyncHandler[Any, Any, StudygenError]]:
        client = GenerationClient(
            self._adapter,
            timeout_seconds=self.config.call_timeout_seconds,
            telemetry=self._telemetry,
        )
        executor = BoundedMapExecutor(client, telemetry=self._telemetry)
        return [
            PolicyResolver(
                policy_source,
                task_registry if task_registry is not None else TASK_REGISTRY,
                default_tier=self.config.default_tier,
                parallel_limit_cap=self.config.parallel_limit_cap,
                fallback_model=self.config.fallback_model,
            ),
            SizeGate(),
            Preprocessor(RecursiveSummarizer(executor)),
            GenerationStage(client, executor, telemetry=self._telemetry),
            ResultBuilder(),
        ]

    @property
    def adapter(self) -> GenerationAdapter:
        """The generation adapter in use."""
        return self._adapter

    @property
    def stage_names(self) -> tuple[str, ...]:
        """Stage names in execution order."""
        return tuple(type(stage).__name__ for stage in self._stages)

    async def run(
        self,
        task_name: str,
        content: str | Iterable[Document | Mapping[str, Any]],
        params: Mapping[str, Any] | None = None,
        options: RunOptions | Mapping[str, Any] | None = None,
    ) -> PipelineOutcome:
        """Generate ``task_name`` output for ``content``.

        Args:
            task_name: Registered task name (case-insensitive).
            content: Text, or a sequence of documents (`Document` or
                ``{"id", "name", "text"}`` mappings).
            params: Task parameters, e.g. ``{"count": 10}``.
            options: `RunOptions` or an equivalent mapping.

        Raises:
            ConfigurationError: ``options`` is not a valid set of run options.
            ContentTooLargeError: Content exceeds the tier ceiling.
            PipelineError: Any other stage failure.
        """
        if isinstance(options, RunOptions):
            run_options = options
        else:
            try:
                run_options = RunOptions.from_mapping(options)
            except ValueError as e:
                raise ConfigurationError(f"Invalid run options: {e}") from e
        coerced: Content = coerce_content(content)
        request = GenerationRequest(
            task_name=task_name,
            content=coerced,
            params=params or {},
            options=run_options,
        )
        return await self.execute(request)

    async def execute(self, request: GenerationRequest) -> PipelineOutcome:
        """Run a prepared request through every stage."""
        current: Any = request
        ctx = self._telemetry
        stage_name = None

        with ctx("pipeline.run", task=request.task_name):
            for stage in self._stages:
                stage_name = type(stage).__name__
                with ctx("pipeline.stage", stage=stage_name):
                    result: Result[Any, StudygenError] = await stage.handle(current)

                if not isinstance(result, Success | Failure):
                    ctx.count("pipeline.invariant_violation", stage=stage_name)
                    raise InvariantViolationError(
                        "Stage returned a non-Result value; expected Success|Failure.",
                        stage_name=stage_name,
                    )

                if isinstance(result, Failure):
                    ctx.count("pipeline.error", stage=stage_name)
                    if isinstance(result.error, ContentTooLargeError):
                        raise result.error
                    logger.warning("Stage %s failed: %s", stage_name, result.error)
                    raise PipelineError(str(result.error), stage_name, result.error)
                current = result.value

        if not isinstance(current, PipelineOutcome):
            ctx.count("pipeline.invariant_violation", stage=stage_name or "unknown_stage")
            raise InvariantViolationError(
                "Pipeline ended without a PipelineOutcome; the final stage must "
                "produce one (e.g. ResultBuilder).",
                stage_name=stage_name,
            )
        ctx.count("pipeline.tokens", current.tokens_used)
        return current


def create_orchestrator(
    config: FrozenConfig | None = None,
    *,
    adapter: GenerationAdapter | None = None,
    reporters: Iterable[TelemetryReporter] = (),
) -> Orchestrator:
    """Create an orchestrator, resolving configuration when none is given.

    This is the only place where ambient configuration is resolved.
    """
    final_config = config if config is not None else resolve_config().to_frozen()
    return Orchestrator(final_config, adapter=adapter, reporters=reporters)
