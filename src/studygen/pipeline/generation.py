"""Single-call generation with timeout and one fallback attempt.

Every provider failure, including a timeout, surfaces as `ProviderError`,
so callers handle one error type regardless of the adapter in use.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from studygen.constants import DEFAULT_CALL_TIMEOUT_SECONDS
from studygen.core.exceptions import ProviderError
from studygen.telemetry import TelemetryContext

if TYPE_CHECKING:
    from studygen.core.types import GenerationResult
    from studygen.pipeline.adapters.base import GenerationAdapter
    from studygen.telemetry import TelemetryContextProtocol

logger = logging.getLogger(__name__)

# --- Telemetry scopes/keys ---
T_GENERATE = "generation.call"
T_FALLBACK = "generation.fallback"
T_FAILURE = "generation.failure"


class GenerationClient:
    """Wraps an adapter with a per-call timeout and error normalization."""

    def __init__(
        self,
        adapter: GenerationAdapter,
        *,
        timeout_seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._adapter = adapter
        self._timeout = timeout_seconds
        self._telemetry: TelemetryContextProtocol = telemetry or TelemetryContext()

    @property
    def adapter(self) -> GenerationAdapter:
        """The underlying provider adapter."""
        return self._adapter

    async def generate(self, prompt: str, *, model: str) -> GenerationResult:
        """Run one generation call on ``model``.

        Raises:
            ProviderError: If the call fails or exceeds the timeout.
        """
        try:
            with self._telemetry(T_GENERATE, model=model):
                async with asyncio.timeout(self._timeout):
                    return await self._adapter.generate(model_name=model, prompt=prompt)
        except TimeoutError as e:
            self._telemetry.count(T_FAILURE, model=model, reason="timeout")
            raise ProviderError(
                f"Generation on {model} timed out after {self._timeout}s",
                model_name=model,
            ) from e
        except ProviderError:
            self._telemetry.count(T_FAILURE, model=model, reason="provider")
            raise
        except Exception as e:  # Normalize provider SDK errors
            self._telemetry.count(T_FAILURE, model=model, reason="provider")
            raise ProviderError(
                f"Generation on {model} failed: {e}", model_name=model
            ) from e

    async def generate_with_fallback(
        self, prompt: str, *, model: str, fallback_model: str | None = None
    ) -> GenerationResult:
        """Run one call, retrying once on ``fallback_model`` (or ``model``).

        Raises:
            ProviderError: If both attempts fail; carries the retry's error.
        """
        try:
            return await self.generate(prompt, model=model)
        except ProviderError as primary_error:
            retry_model = fallback_model or model
            logger.warning(
                "Generation on %s failed (%s); retrying once on %s",
                model,
                primary_error,
                retry_model,
            )
            self._telemetry.count(T_FALLBACK, model=retry_model)
            return await self.generate(prompt, model=retry_model)
