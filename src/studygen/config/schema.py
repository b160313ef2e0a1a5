"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces configuration
values from the various sources (environment, files, programmatic) into the
correct types with proper defaults.
"""

from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from studygen.constants import DEFAULT_CALL_TIMEOUT_SECONDS, DEFAULT_TIER

ENV_PREFIX = "STUDYGEN_"


class StudygenSettings(BaseSettings):
    """Pydantic settings schema for studygen configuration.

    Handles validation, type coercion and defaults for every configuration
    field. Environment variables use the ``STUDYGEN_`` prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Core Configuration Fields ---

    api_key: str | None = Field(
        default=None,
        description="Google Gemini API key",
    )

    use_real_api: bool = Field(
        default=False,
        description="Call the real provider instead of the offline mock adapter",
    )

    default_tier: str = Field(
        default=DEFAULT_TIER,
        description="Tier used when a request does not name one",
        min_length=1,
    )

    call_timeout_seconds: float = Field(
        default=DEFAULT_CALL_TIMEOUT_SECONDS,
        description="Upper bound for a single generation call, in seconds",
        gt=0,
    )

    parallel_limit_cap: int | None = Field(
        default=None,
        description="Global ceiling on any tier's parallel_limit",
        ge=1,
    )

    fallback_model: str | None = Field(
        default=None,
        description="Model for the single retry when a tier names none",
    )

    telemetry_enabled: bool = Field(
        default=False,
        description="Enable telemetry reporters passed to the orchestrator",
    )

    # --- Validation Rules ---

    @field_validator("default_tier", mode="before")
    @classmethod
    def normalize_tier(cls, v: Any) -> Any:
        """Tier names are case-insensitive; store them uppercased."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("api_key", "fallback_model", mode="before")
    @classmethod
    def blank_as_none(cls, v: Any) -> Any:
        """Treat empty strings (e.g. ``STUDYGEN_API_KEY=``) as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_api_key_requirement(self) -> "StudygenSettings":
        """Ensure api_key is provided when use_real_api is True."""
        if self.use_real_api and not self.api_key:
            raise ValueError(
                "api_key is required when use_real_api=True. "
                "Set STUDYGEN_API_KEY, provide it in a config file, "
                "or pass it programmatically."
            )
        return self

    @classmethod
    def field_defaults(cls) -> dict[str, Any]:
        """Schema defaults, without reading any source."""
        return {name: info.default for name, info in cls.model_fields.items()}

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary keyed by field name."""
        return {name: getattr(self, name) for name in type(self).model_fields}
