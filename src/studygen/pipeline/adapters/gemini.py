"""Google GenAI adapter.

Uses the async surface of the ``google-genai`` SDK. Importing this module
imports the SDK, so the orchestrator only loads it when the real API is
enabled.
"""

from __future__ import annotations

import logging

from google import genai

from studygen.core.types import GenerationResult

logger = logging.getLogger(__name__)


class GoogleGenAIAdapter:
    """Adapter over ``genai.Client(...).aio.models.generate_content``."""

    def __init__(self, api_key: str) -> None:
        self._client = genai.Client(api_key=api_key)

    async def generate(self, *, model_name: str, prompt: str) -> GenerationResult:
        response = await self._client.aio.models.generate_content(
            model=model_name,
            contents=prompt,
        )
        usage = getattr(response, "usage_metadata", None)
        tokens = int(getattr(usage, "total_token_count", 0) or 0)
        logger.debug("gemini generation on %s: %d tokens", model_name, tokens)
        return GenerationResult(
            text=response.text or "",
            tokens_used=tokens,
            model_name=model_name,
        )
