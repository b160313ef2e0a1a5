"""Configuration management for studygen.

Resolve-once, freeze-then-flow:
- ResolvedConfig: post-resolution configuration with audit metadata
- FrozenConfig: immutable configuration used by the orchestrator
- SourceMap: origin of every configuration value
"""

from .api import (
    check_environment,
    get_effective_profile,
    list_available_profiles,
    resolve_config,
)
from .env_loader import EnvironmentConfigLoader
from .file_loader import ConfigFileError, FileConfigLoader
from .resolver import ConfigResolver
from .schema import StudygenSettings
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

__all__ = [  # noqa: RUF022
    # Main API
    "resolve_config",
    "list_available_profiles",
    "get_effective_profile",
    "check_environment",
    # Core types
    "ResolvedConfig",
    "FrozenConfig",
    "SourceMap",
    "ConfigOrigin",
    # Advanced usage
    "StudygenSettings",
    "ConfigResolver",
    "FileConfigLoader",
    "EnvironmentConfigLoader",
    "ConfigFileError",
]
