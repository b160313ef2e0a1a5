"""Configuration resolution with precedence handling.

Sources are merged in this order, later ones winning:
Defaults < Home file < Project file < Environment < Programmatic
"""

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from studygen.core.exceptions import ConfigurationError

from .env_loader import EnvironmentConfigLoader
from .file_loader import ConfigFileError, FileConfigLoader
from .schema import StudygenSettings
from .types import ConfigOrigin, ResolvedConfig

log = logging.getLogger(__name__)

PROFILE_ENV = "STUDYGEN_PROFILE"


class ConfigResolver:
    """Merges configuration sources and validates the result once."""

    def __init__(self) -> None:
        """Initialize the configuration resolver."""
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        use_env_file: str | Path | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources with proper precedence.

        Args:
            programmatic: Programmatic overrides (highest precedence).
            profile: Profile name to load from files. Defaults to
                ``STUDYGEN_PROFILE``.
            use_env_file: Optional .env file consulted for ``STUDYGEN_*``
                variables.
            project_root: Directory to search for pyproject.toml.

        Returns:
            ResolvedConfig with merged values and source tracking.

        Raises:
            ConfigurationError: If validation fails or the env file is missing.
            ConfigFileError: If the project file is malformed.
        """
        origins: dict[str, ConfigOrigin] = {}
        merged: dict[str, Any] = {}

        if profile is None:
            profile = self.get_effective_profile()

        def apply(values: dict[str, Any], origin: ConfigOrigin) -> None:
            for field, value in values.items():
                if field in merged:  # Only override known fields
                    merged[field] = value
                    origins[field] = origin

        # Step 1: schema defaults
        for field, value in StudygenSettings.field_defaults().items():
            merged[field] = value
            origins[field] = "default"

        # Step 2: home file; errors here are non-fatal
        try:
            apply(self.file_loader.load_home_config(profile=profile), "file")
        except ConfigFileError as e:
            log.warning("Ignoring home configuration: %s", e)

        # Step 3: project file; a malformed base section is fatal, a missing
        # profile is not
        try:
            apply(
                self.file_loader.load_project_config(
                    project_root=project_root, profile=profile
                ),
                "file",
            )
        except ConfigFileError as e:
            if profile is None:
                raise
            log.warning("Ignoring project configuration: %s", e)

        # Step 4: environment
        try:
            apply(self.env_loader.load_env_config(env_file=use_env_file), "env")
        except FileNotFoundError as e:
            raise ConfigurationError(f"Environment configuration error: {e}") from e

        # Step 5: programmatic overrides
        if programmatic:
            apply(programmatic, "programmatic")

        # Step 6: validate once. Init kwargs take priority over every
        # pydantic-settings source, so the merged values are what gets checked.
        try:
            settings = StudygenSettings(**merged)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        resolved = ResolvedConfig(**settings.to_dict(), origin=origins)
        log.debug("Resolved configuration: %r", resolved)
        return resolved

    def get_effective_profile(self) -> str | None:
        """Profile name from ``STUDYGEN_PROFILE``, or None."""
        return os.getenv(PROFILE_ENV) or None

    def list_available_profiles(
        self, project_root: Path | None = None
    ) -> dict[str, list[str]]:
        """List profile names from the project and home files."""
        return self.file_loader.list_available_profiles(project_root)
