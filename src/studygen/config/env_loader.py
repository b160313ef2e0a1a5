"""Environment variable configuration loading.

Reads ``STUDYGEN_<FIELD>`` variables, optionally backed by a ``.env`` file
parsed with python-dotenv. Variables already present in the process
environment win over the file. Values stay raw strings here; the schema
coerces them during final validation.
"""

import os
from pathlib import Path

from dotenv import dotenv_values

from .schema import ENV_PREFIX, StudygenSettings


class EnvironmentConfigLoader:
    """Loads configuration fields from ``STUDYGEN_*`` variables."""

    @staticmethod
    def env_var_names() -> dict[str, str]:
        """Map of environment variable name to settings field name."""
        return {
            f"{ENV_PREFIX}{field.upper()}": field
            for field in StudygenSettings.model_fields
        }

    def load_env_config(self, env_file: str | Path | None = None) -> dict[str, str]:
        """Return the fields that are set in the environment.

        Args:
            env_file: Optional ``.env`` file consulted for variables the
                process environment does not define. The process environment
                is not modified.

        Raises:
            FileNotFoundError: If ``env_file`` is given but doesn't exist.
        """
        file_values: dict[str, str | None] = {}
        if env_file is not None:
            env_path = Path(env_file)
            if not env_path.exists():
                raise FileNotFoundError(f"Environment file not found: {env_path}")
            file_values = dotenv_values(env_path)

        values: dict[str, str] = {}
        for env_var, field in self.env_var_names().items():
            if env_var in os.environ:
                values[field] = os.environ[env_var]
            elif file_values.get(env_var) is not None:
                values[field] = file_values[env_var]
        return values

    def get_env_summary(self) -> dict[str, str]:
        """Currently set ``STUDYGEN_*`` configuration variables, API key redacted."""
        return {
            env_var: "<redacted>" if field == "api_key" else os.environ[env_var]
            for env_var, field in self.env_var_names().items()
            if env_var in os.environ
        }
