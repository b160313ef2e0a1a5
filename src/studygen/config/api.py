"""Public API for the configuration system."""

from pathlib import Path
from typing import Any

from .resolver import ConfigResolver
from .types import ResolvedConfig

# Stateless; shared across calls
_resolver = ConfigResolver()


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    use_env_file: str | Path | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Precedence: Programmatic > Environment > Project file > Home file > Defaults

    Args:
        programmatic: Overrides with the highest precedence. Only known
            configuration fields are used.
        profile: Profile to load from configuration files. Defaults to the
            ``STUDYGEN_PROFILE`` environment variable.
        use_env_file: Optional .env file consulted for ``STUDYGEN_*`` variables
            not set in the process environment.
        project_root: Directory to search for pyproject.toml. Defaults to the
            current directory and its parents.

    Returns:
        ResolvedConfig with merged values and source tracking for audit.

    Raises:
        ConfigurationError: If validation fails or required values are missing.
        ConfigFileError: If the project configuration file is malformed.

    Example:
        config = resolve_config({"default_tier": "PREMIUM"})
        orchestrator = Orchestrator(config.to_frozen())
    """
    return _resolver.resolve(
        programmatic=programmatic,
        profile=profile,
        use_env_file=use_env_file,
        project_root=project_root,
    )


def list_available_profiles(project_root: Path | None = None) -> dict[str, list[str]]:
    """List configuration profiles, keyed by ``project`` and ``home``."""
    return _resolver.list_available_profiles(project_root)


def get_effective_profile() -> str | None:
    """Profile name from ``STUDYGEN_PROFILE``, or None."""
    return _resolver.get_effective_profile()


def check_environment() -> dict[str, str]:
    """Currently set ``STUDYGEN_*`` configuration variables, API key redacted."""
    return _resolver.env_loader.get_env_summary()
