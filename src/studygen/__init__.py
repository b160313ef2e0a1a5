"""Adaptive study-material generation: quizzes, flashcards and summaries."""

import importlib.metadata
import logging

from studygen.config import FrozenConfig, ResolvedConfig, resolve_config
from studygen.core.exceptions import (
    ConfigurationError,
    ContentTooLargeError,
    InvariantViolationError,
    MalformedResponseError,
    PipelineError,
    ProviderError,
    StudygenError,
    UnknownTaskError,
    ValidationError,
)
from studygen.core.policy import (
    DEFAULT_TIER_POLICIES,
    DepthModels,
    Phase,
    PolicySource,
    StaticPolicySource,
    TierPolicy,
    TokenEstimation,
    resolve_model,
)
from studygen.core.types import (
    Document,
    Failure,
    GenerationResult,
    PipelineOutcome,
    Result,
    RunOptions,
    Success,
)
from studygen.estimation import estimate_tokens, max_processable_tokens
from studygen.frontdoor import run, run_flashcards, run_quiz, run_summary
from studygen.orchestrator import Orchestrator, create_orchestrator
from studygen.pipeline.adapters import GenerationAdapter, MockAdapter
from studygen.tasks import (
    Flashcard,
    QuizQuestion,
    TaskContract,
    available_tasks,
    get_task,
)
from studygen.telemetry import InMemoryReporter, TelemetryContext, TelemetryReporter

# Version handling
try:
    __version__ = importlib.metadata.version("studygen")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Library logging stays silent unless the application configures handlers.
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API
__all__ = [  # noqa: RUF022
    # Entry points
    "Orchestrator",
    "create_orchestrator",
    "run",
    "run_quiz",
    "run_flashcards",
    "run_summary",
    # Configuration
    "resolve_config",
    "ResolvedConfig",
    "FrozenConfig",
    # Core types
    "Document",
    "RunOptions",
    "PipelineOutcome",
    "GenerationResult",
    "Result",
    "Success",
    "Failure",
    # Policies
    "TierPolicy",
    "DepthModels",
    "TokenEstimation",
    "Phase",
    "PolicySource",
    "StaticPolicySource",
    "DEFAULT_TIER_POLICIES",
    "resolve_model",
    "estimate_tokens",
    "max_processable_tokens",
    # Tasks
    "TaskContract",
    "QuizQuestion",
    "Flashcard",
    "available_tasks",
    "get_task",
    # Adapters
    "GenerationAdapter",
    "MockAdapter",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
    "InMemoryReporter",
    # Exceptions
    "StudygenError",
    "ConfigurationError",
    "UnknownTaskError",
    "ContentTooLargeError",
    "ProviderError",
    "MalformedResponseError",
    "ValidationError",
    "PipelineError",
    "InvariantViolationError",
]
