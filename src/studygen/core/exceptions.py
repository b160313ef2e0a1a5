"""Exception hierarchy for the studygen pipeline.

Every error raised by the library derives from `StudygenError`. Stage
failures travel as `Failure(error)` values between handlers; the orchestrator
turns them into exceptions at the boundary.
"""

from __future__ import annotations


class StudygenError(Exception):
    """Base exception for all studygen errors."""


class ConfigurationError(StudygenError):
    """Raised when configuration or request options are invalid."""


class UnknownTaskError(ConfigurationError):
    """Raised when a task name is not present in the task registry."""

    def __init__(self, task_name: str, available: tuple[str, ...]) -> None:
        self.task_name = task_name
        self.available = available
        super().__init__(
            f"Unknown task {task_name!r}. Available tasks: {', '.join(available)}"
        )


class ContentTooLargeError(StudygenError):
    """Raised before any generation call when content exceeds the tier ceiling.

    Carries both numbers so callers can tell users how much to cut.
    """

    def __init__(self, estimated_tokens: int, max_tokens: int) -> None:
        self.estimated_tokens = estimated_tokens
        self.max_tokens = max_tokens
        super().__init__(
            f"Content is too large to process: estimated {estimated_tokens} tokens, "
            f"maximum for this tier is {max_tokens} tokens."
        )


class ProviderError(StudygenError):
    """A generation call failed (transport error, provider error, or timeout)."""

    def __init__(self, message: str, *, model_name: str | None = None) -> None:
        self.model_name = model_name
        super().__init__(message)


class MalformedResponseError(StudygenError):
    """Generation output could not be parsed into the expected shape."""


class ValidationError(StudygenError):
    """A task contract received a result of the wrong shape, or bad params."""


class PipelineError(StudygenError):
    """Raised when a pipeline stage fails.

    Attributes:
        handler_name: Name of the stage that produced the failure.
        underlying_error: The original error carried by the stage's `Failure`.
    """

    def __init__(
        self, message: str, handler_name: str, underlying_error: Exception
    ) -> None:
        self.handler_name = handler_name
        self.underlying_error = underlying_error
        super().__init__(f"Error in stage '{handler_name}': {message}")


class InvariantViolationError(StudygenError):
    """Raised when a stage breaks the pipeline's structural contract."""

    def __init__(self, message: str, *, stage_name: str | None = None) -> None:
        self.stage_name = stage_name
        super().__init__(message)
