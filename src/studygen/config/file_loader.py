"""File-based configuration loading with profile support.

Two TOML sources are read: the project's ``pyproject.toml`` (section
``[tool.studygen]``) and a home file, ``~/.config/studygen.toml`` by default.
Both may define named profiles under ``profiles.<name>``.
"""

import logging
import os
from pathlib import Path
import tomllib
from typing import Any

from studygen.core.exceptions import ConfigurationError

log = logging.getLogger(__name__)

HOME_CONFIG_ENV = "STUDYGEN_CONFIG_HOME"
PROJECT_SECTION = "studygen"


class ConfigFileError(ConfigurationError):
    """Raised when a configuration file cannot be loaded."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        """Initialize with file path, message, and optional cause."""
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open(mode="rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigFileError(path, f"Failed to parse TOML: {e}", cause=e) from e


def _select_profile(
    path: Path, section: dict[str, Any], profile: str | None
) -> dict[str, Any]:
    """Return the base section, or the named profile within it."""
    if profile:
        profiles = section.get("profiles", {})
        if profile not in profiles:
            raise ConfigFileError(
                path,
                f"Profile '{profile}' not found. Available profiles: {list(profiles)}",
            )
        return dict(profiles[profile])
    config = dict(section)
    config.pop("profiles", None)
    return config


class FileConfigLoader:
    """Loads configuration from the project and home TOML files."""

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Load ``[tool.studygen]`` (or one of its profiles) from pyproject.toml.

        Args:
            project_root: Directory to start the upward search for
                pyproject.toml. Defaults to the current directory.
            profile: Profile under ``[tool.studygen.profiles.<name>]``.

        Returns:
            The configuration values; empty when there is no file or section.

        Raises:
            ConfigFileError: If the file is malformed or the profile is missing.
        """
        pyproject_path = self._find_pyproject_toml(project_root)
        if pyproject_path is None:
            return {}
        section = _read_toml(pyproject_path).get("tool", {}).get(PROJECT_SECTION, {})
        if not section:
            return {}
        log.debug("Loading project configuration from %s", pyproject_path)
        return _select_profile(pyproject_path, section, profile)

    def load_home_config(self, profile: str | None = None) -> dict[str, Any]:
        """Load the home configuration file, or one of its profiles.

        Returns:
            The configuration values; empty when the file doesn't exist.

        Raises:
            ConfigFileError: If the file is malformed or the profile is missing.
        """
        path = self.home_config_path()
        if not path.exists():
            return {}
        log.debug("Loading home configuration from %s", path)
        return _select_profile(path, _read_toml(path), profile)

    def list_available_profiles(
        self, project_root: Path | None = None
    ) -> dict[str, list[str]]:
        """List profile names found in the project and home files.

        Unreadable files contribute no profiles.
        """
        profiles: dict[str, list[str]] = {"project": [], "home": []}

        pyproject_path = self._find_pyproject_toml(project_root)
        if pyproject_path is not None:
            try:
                section = (
                    _read_toml(pyproject_path).get("tool", {}).get(PROJECT_SECTION, {})
                )
                profiles["project"] = list(section.get("profiles", {}))
            except ConfigFileError:
                log.debug("Skipping unreadable %s", pyproject_path)

        home_path = self.home_config_path()
        if home_path.exists():
            try:
                profiles["home"] = list(_read_toml(home_path).get("profiles", {}))
            except ConfigFileError:
                log.debug("Skipping unreadable %s", home_path)

        return profiles

    @staticmethod
    def home_config_path() -> Path:
        """Path of the home configuration file.

        ``STUDYGEN_CONFIG_HOME`` replaces the default ``~/.config/studygen.toml``.
        """
        override = os.getenv(HOME_CONFIG_ENV)
        if override:
            return Path(override)
        return Path.home() / ".config" / "studygen.toml"

    @staticmethod
    def _find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
        """Find pyproject.toml by searching up the directory tree."""
        current = Path(start_dir if start_dir is not None else Path.cwd()).resolve()
        while True:
            candidate = current / "pyproject.toml"
            if candidate.exists():
                return candidate
            if current == current.parent:
                return None
            current = current.parent
