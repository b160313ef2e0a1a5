"""Core configuration data types.

Configuration follows a resolve-once, freeze-then-flow pattern: sources are
merged into a `ResolvedConfig` (with per-field origins for auditing), which is
then frozen into the `FrozenConfig` handed to the orchestrator.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, NamedTuple

from studygen.constants import DEFAULT_CALL_TIMEOUT_SECONDS, DEFAULT_TIER

from .schema import ENV_PREFIX

# --- Source Tracking Types ---

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

_FIELD_ORDER = (
    "api_key",
    "use_real_api",
    "default_tier",
    "call_timeout_seconds",
    "parallel_limit_cap",
    "fallback_model",
    "telemetry_enabled",
)


def _redacted(api_key: str | None) -> str | None:
    return "[REDACTED]" if api_key else None


# --- Core Configuration Data ---


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing.

    The merged and validated result of programmatic overrides, environment
    variables, files and defaults, plus the origin of every field.
    """

    api_key: str | None
    use_real_api: bool
    default_tier: str
    call_timeout_seconds: float
    parallel_limit_cap: int | None
    fallback_model: str | None
    telemetry_enabled: bool

    # Audit metadata - where each field value came from
    origin: SourceMap

    def __repr__(self) -> str:
        """Repr with redacted API key for safe logging."""
        fields = ", ".join(
            f"{name}={_redacted(self.api_key) if name == 'api_key' else getattr(self, name)!r}"
            for name in _FIELD_ORDER
        )
        return f"ResolvedConfig({fields}, origin={dict(self.origin)!r})"

    __str__ = __repr__

    def to_frozen(self) -> "FrozenConfig":
        """Convert to the immutable configuration used by the pipeline."""
        return FrozenConfig(**{name: getattr(self, name) for name in _FIELD_ORDER})

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Return a copy with programmatic overrides applied.

        Unknown fields are ignored. Overridden fields are marked
        ``programmatic`` in the origin map.
        """
        new_values = self._asdict()
        new_origin = dict(self.origin)
        for field, value in overrides.items():
            if field in _FIELD_ORDER:
                new_values[field] = value
                new_origin[field] = "programmatic"
        new_values["origin"] = new_origin
        return ResolvedConfig(**new_values)

    def audit(self) -> str:
        """Return a redacted, one-line-per-field report of value origins."""
        lines = []
        for field in _FIELD_ORDER:
            if field not in self.origin:
                continue
            origin = self.origin[field]
            value = getattr(self, field)
            if field == "api_key":
                display = f"{origin}:None" if value is None else f"{origin}:[REDACTED]"
            elif origin == "env":
                display = f"env:{ENV_PREFIX}{field.upper()}={value}"
            else:
                display = f"{origin}:{value}"
            lines.append(f"{field}: {display}")
        return "\n".join(lines)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration passed to the orchestrator.

    Holds field values only, without audit metadata.
    """

    api_key: str | None = None
    use_real_api: bool = False
    default_tier: str = DEFAULT_TIER
    call_timeout_seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS
    parallel_limit_cap: int | None = None
    fallback_model: str | None = None
    telemetry_enabled: bool = False

    def __repr__(self) -> str:
        """Repr with redacted API key for safe logging."""
        return (
            f"FrozenConfig(api_key={_redacted(self.api_key)!r}, "
            f"use_real_api={self.use_real_api!r}, default_tier={self.default_tier!r}, "
            f"call_timeout_seconds={self.call_timeout_seconds!r}, "
            f"parallel_limit_cap={self.parallel_limit_cap!r}, "
            f"fallback_model={self.fallback_model!r}, "
            f"telemetry_enabled={self.telemetry_enabled!r})"
        )

    __str__ = __repr__
