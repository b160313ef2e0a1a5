"""Core data types that flow through the pipeline.

This module defines the immutable data structures that represent the state
of a generation request as it moves through the pipeline stages. Each stage
transforms the request into a new state; no stage mutates the one it was
given.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import dataclasses
from types import MappingProxyType
import typing

from studygen.constants import CHUNKING_BY_DOCUMENT, CHUNKING_BY_TOKENS

if typing.TYPE_CHECKING:
    from studygen.core.policy import TierPolicy
    from studygen.tasks.base import TaskContract

# --- Minimal guard helpers (clarity > boilerplate) ---

T = typing.TypeVar("T")


def _freeze_mapping(m: Mapping[str, T] | None) -> Mapping[str, T]:
    """Return an immutable mapping view (empty when None)."""
    if isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m or {}))


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Result Monad ---
# Stages return Success or Failure instead of raising, so the orchestrator
# is the single place where failures become exceptions.

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure", bound=Exception)


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful result in the pipeline."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failure in the pipeline, containing the error."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]

# --- Content ---


@dataclasses.dataclass(frozen=True, slots=True)
class Document:
    """A single named document inside a document set."""

    id: str
    name: str
    text: str

    def __post_init__(self) -> None:
        """Validate field types."""
        for field_name in ("id", "name", "text"):
            _require(
                condition=isinstance(getattr(self, field_name), str),
                message="must be str",
                field_name=field_name,
                exc=TypeError,
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, typing.Any]) -> Document:
        """Build a document from a ``{id, name, text}`` mapping.

        ``content`` is accepted as an alias for ``text``.
        """
        text = data.get("text", data.get("content", ""))
        doc_id = str(data.get("id", data.get("name", "")))
        return cls(id=doc_id, name=str(data.get("name", doc_id)), text=str(text or ""))


type Content = str | tuple[Document, ...]


def coerce_content(
    content: str | Iterable[Document | Mapping[str, typing.Any]],
) -> Content:
    """Normalize caller input into a `Content` value."""
    if isinstance(content, str):
        return content
    docs: list[Document] = []
    for item in content:
        if isinstance(item, Document):
            docs.append(item)
        elif isinstance(item, Mapping):
            docs.append(Document.from_mapping(item))
        else:
            raise TypeError(
                f"Content items must be Document or mapping, got {type(item).__name__}"
            )
    return tuple(docs)


# --- Generation ---


@dataclasses.dataclass(frozen=True, slots=True)
class GenerationResult:
    """Provider-neutral output of one generation call."""

    text: str
    tokens_used: int = 0
    model_name: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class CallOutcome[T]:
    """Positional outcome of one call inside a bounded batch run.

    Exactly one of ``value`` and ``error`` is meaningful: ``error`` is None on
    success. ``tokens_used`` counts every token spent on the call, including a
    failed primary attempt's tokens when the provider reported them.
    """

    index: int
    value: T | None
    tokens_used: int
    error: Exception | None = None

    @property
    def ok(self) -> bool:  # noqa: D102
        return self.error is None


@dataclasses.dataclass(frozen=True, slots=True)
class MapOutcome:
    """Aggregate result of a map phase."""

    results: tuple[typing.Any, ...]
    tokens_used: int
    failed_count: int


@dataclasses.dataclass(frozen=True, slots=True)
class SummaryOutcome:
    """Result of recursive summarization of one input."""

    text: str
    tokens_used: int = 0
    truncated: bool = False
    failed_pieces: int = 0
    dropped_pieces: int = 0


# --- Request options ---


@dataclasses.dataclass(frozen=True, slots=True)
class RunOptions:
    """Per-request options.

    Attributes:
        tier: Tier name used to look up the policy. None means the configured
            default tier.
        chunking_mode_override: Force ``"by-tokens"`` or ``"by-document"``
            instead of the task's preference.
        chunk_size_override: Replace the tier's chunk size for this request.
    """

    tier: str | None = None
    chunking_mode_override: str | None = None
    chunk_size_override: int | None = None

    def __post_init__(self) -> None:
        """Validate option values."""
        _require(
            condition=self.chunking_mode_override
            in (None, CHUNKING_BY_TOKENS, CHUNKING_BY_DOCUMENT),
            message=(
                f"must be one of {CHUNKING_BY_TOKENS!r}, {CHUNKING_BY_DOCUMENT!r}, "
                f"got {self.chunking_mode_override!r}"
            ),
            field_name="chunking_mode_override",
        )
        if self.chunk_size_override is not None:
            _require(
                condition=isinstance(self.chunk_size_override, int)
                and not isinstance(self.chunk_size_override, bool)
                and self.chunk_size_override > 0,
                message="must be a positive int",
                field_name="chunk_size_override",
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, typing.Any] | None) -> RunOptions:
        """Build options from a plain mapping; unknown keys are ignored."""
        data = data or {}
        return cls(
            tier=data.get("tier"),
            chunking_mode_override=data.get("chunking_mode_override"),
            chunk_size_override=data.get("chunk_size_override"),
        )


# --- Request states ---


@dataclasses.dataclass(frozen=True, slots=True)
class GenerationRequest:
    """The initial state of a request as given by the caller."""

    task_name: str
    content: Content
    params: Mapping[str, typing.Any]
    options: RunOptions = dataclasses.field(default_factory=RunOptions)

    def __post_init__(self) -> None:
        """Freeze params and validate content shape."""
        _require(
            condition=isinstance(self.task_name, str) and self.task_name.strip() != "",
            message="must be a non-empty str",
            field_name="task_name",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.content, str)
            or (
                isinstance(self.content, tuple)
                and all(isinstance(d, Document) for d in self.content)
            ),
            message="must be str or tuple[Document, ...]",
            field_name="content",
            exc=TypeError,
        )
        object.__setattr__(self, "params", _freeze_mapping(self.params))


@dataclasses.dataclass(frozen=True, slots=True)
class ResolvedRequest:
    """The state after the task contract and tier policy have been resolved."""

    initial: GenerationRequest
    task: TaskContract
    policy: TierPolicy
    chunking_mode: str


@dataclasses.dataclass(frozen=True, slots=True)
class SizedRequest:
    """The state after the pre-flight size check passed."""

    resolved: ResolvedRequest
    estimated_tokens: int
    max_tokens: int


@dataclasses.dataclass(frozen=True, slots=True)
class PreparedRequest:
    """The state after oversized inputs were pre-summarized."""

    sized: SizedRequest
    content: Content
    tokens_used: int = 0
    warnings: tuple[str, ...] = ()
    summarized_inputs: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class GeneratedRequest:
    """The state after the direct call or the map-reduce phases ran."""

    prepared: PreparedRequest
    raw_result: typing.Any
    path: typing.Literal["direct", "map_reduce"]
    tokens_used: int = 0
    warnings: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class PipelineOutcome:
    """The only value returned to callers.

    ``tokens_used`` is cumulative across pre-processing, map and reduce.
    """

    result: typing.Any
    tokens_used: int
    warnings: tuple[str, ...] = ()
    summarized_inputs: tuple[str, ...] = ()
    path: str | None = None
    estimated_tokens: int | None = None
