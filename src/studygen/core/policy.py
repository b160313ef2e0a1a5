"""Tier policies: thresholds, chunk budgets, concurrency and model selection.

A `TierPolicy` is resolved once per request and never mutated. Per-request
overrides produce a new instance. Model lookup goes through `resolve_model`,
the single place that decides which model serves a given depth and phase.
"""

from __future__ import annotations

from collections.abc import Mapping
import dataclasses
from enum import Enum
import logging
from types import MappingProxyType
from typing import Protocol

from studygen.constants import (
    CHARS_PER_TOKEN,
    DEFAULT_MODEL,
    DEFAULT_PARALLEL_LIMIT,
    DEFAULT_TIER,
    OVERHEAD_MULTIPLIER,
    SUMMARIZATION_COMPRESSION,
)
from studygen.core.types import _require

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Generation phase a model is selected for."""

    MAP = "map"
    REDUCE = "reduce"


@dataclasses.dataclass(frozen=True, slots=True)
class TokenEstimation:
    """Character-based token estimation parameters."""

    chars_per_token: int = CHARS_PER_TOKEN
    overhead_multiplier: float = OVERHEAD_MULTIPLIER

    def __post_init__(self) -> None:
        """Validate estimation parameters."""
        _require(
            condition=self.chars_per_token > 0,
            message="must be > 0",
            field_name="chars_per_token",
        )
        _require(
            condition=self.overhead_multiplier >= 1.0,
            message="must be >= 1.0",
            field_name="overhead_multiplier",
        )


@dataclasses.dataclass(frozen=True, slots=True)
class DepthModels:
    """Models used at one depth. A missing reduce model means the map model."""

    map_model: str
    reduce_model: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class TierPolicy:
    """Immutable policy bundle for one tier.

    Attributes:
        name: Tier name, for logging.
        threshold: Estimated tokens above which map-reduce replaces a direct call.
        chunk_size: Target tokens per chunk; also the pre-summarization trigger.
        max_depth: Deepest recursive summarization level.
        max_chunks: Maximum chunks processed at any level.
        parallel_limit: Maximum generation calls in flight at once.
        models_by_depth: Map/reduce models, indexed by depth.
        token_estimation: Estimation parameters.
        summarization_compression: Assumed shrink factor per summarization round.
        fallback_model: Model for the single retry. None retries on the primary.
    """

    name: str
    threshold: int
    chunk_size: int
    max_depth: int
    max_chunks: int
    parallel_limit: int = DEFAULT_PARALLEL_LIMIT
    models_by_depth: tuple[DepthModels, ...] = (DepthModels(DEFAULT_MODEL),)
    token_estimation: TokenEstimation = TokenEstimation()
    summarization_compression: int = SUMMARIZATION_COMPRESSION
    fallback_model: str | None = None

    def __post_init__(self) -> None:
        """Validate policy invariants."""
        for field_name in ("threshold", "chunk_size", "max_chunks", "parallel_limit"):
            value = getattr(self, field_name)
            _require(
                condition=isinstance(value, int) and value > 0,
                message=f"must be a positive int, got {value!r}",
                field_name=field_name,
            )
        _require(
            condition=isinstance(self.max_depth, int) and self.max_depth >= 0,
            message=f"must be an int >= 0, got {self.max_depth!r}",
            field_name="max_depth",
        )
        # The processable ceiling must grow with depth.
        _require(
            condition=self.summarization_compression > 1,
            message="must be > 1",
            field_name="summarization_compression",
        )
        _require(
            condition=len(self.models_by_depth) > 0
            and all(isinstance(m, DepthModels) for m in self.models_by_depth),
            message="must be a non-empty tuple of DepthModels",
            field_name="models_by_depth",
            exc=TypeError,
        )

    @property
    def chunk_chars(self) -> int:
        """Character budget corresponding to `chunk_size`."""
        return self.chunk_size * self.token_estimation.chars_per_token

    def with_overrides(
        self,
        *,
        chunk_size: int | None = None,
        parallel_limit: int | None = None,
        fallback_model: str | None = None,
    ) -> TierPolicy:
        """Return a copy with the given non-None fields replaced."""
        changes: dict[str, int | str] = {}
        if chunk_size is not None:
            changes["chunk_size"] = chunk_size
        if parallel_limit is not None:
            changes["parallel_limit"] = parallel_limit
        if fallback_model is not None:
            changes["fallback_model"] = fallback_model
        if not changes:
            return self
        return dataclasses.replace(self, **changes)


def resolve_model(policy: TierPolicy, depth: int, phase: Phase | str) -> str:
    """Return the model serving ``phase`` at ``depth``.

    Precedence: the depth's entry (depths beyond the table use the last
    entry), then the requested phase's model, then that entry's map model.
    """
    _require(condition=depth >= 0, message="must be >= 0", field_name="depth")
    entry = policy.models_by_depth[min(depth, len(policy.models_by_depth) - 1)]
    if Phase(phase) is Phase.REDUCE and entry.reduce_model:
        return entry.reduce_model
    return entry.map_model


def resolve_fallback_model(policy: TierPolicy, primary: str) -> str:
    """Return the model for the single retry after ``primary`` failed."""
    return policy.fallback_model or primary


# --- Built-in tiers ---

_DEPTH_MODELS = (
    DepthModels(DEFAULT_MODEL, DEFAULT_MODEL),  # depth 0: task
    DepthModels(DEFAULT_MODEL, DEFAULT_MODEL),  # depth 1: summarization
)

DEFAULT_TIER_POLICIES: Mapping[str, TierPolicy] = MappingProxyType(
    {
        "FREE": TierPolicy(
            name="FREE",
            threshold=25000,
            chunk_size=8000,
            max_depth=1,
            max_chunks=50,
            parallel_limit=10,
            models_by_depth=_DEPTH_MODELS,
        ),
        "PREMIUM": TierPolicy(
            name="PREMIUM",
            threshold=10000,
            chunk_size=4000,
            max_depth=1,
            max_chunks=50,
            parallel_limit=10,
            models_by_depth=_DEPTH_MODELS,
        ),
    }
)


class PolicySource(Protocol):
    """Supplies a `TierPolicy` for a tier name."""

    def get(self, tier: str | None) -> TierPolicy:  # noqa: D102
        ...


class StaticPolicySource:
    """Policy source backed by an immutable tier table.

    Unknown or missing tier names resolve to the baseline tier, with a logged
    warning for unknown names.
    """

    def __init__(
        self,
        policies: Mapping[str, TierPolicy] | None = None,
        *,
        baseline: str = DEFAULT_TIER,
    ) -> None:
        table = policies if policies is not None else DEFAULT_TIER_POLICIES
        self._policies: Mapping[str, TierPolicy] = MappingProxyType(
            {k.upper(): v for k, v in table.items()}
        )
        self._baseline = baseline.upper()
        if self._baseline not in self._policies:
            raise ValueError(f"Baseline tier {baseline!r} is not in the policy table")

    @property
    def tiers(self) -> tuple[str, ...]:
        """Known tier names."""
        return tuple(self._policies)

    def get(self, tier: str | None) -> TierPolicy:
        """Return the policy for ``tier``, falling back to the baseline tier."""
        if tier is None:
            return self._policies[self._baseline]
        policy = self._policies.get(tier.upper())
        if policy is None:
            logger.warning(
                "Unknown tier %r, falling back to %s policy", tier, self._baseline
            )
            return self._policies[self._baseline]
        return policy
