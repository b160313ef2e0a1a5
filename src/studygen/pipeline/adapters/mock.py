"""Deterministic mock adapter used when no real provider is configured.

Responses depend only on the prompt, so runs are reproducible without
network access. Prompts that ask for JSON get an empty structure of the
requested kind; anything else gets a short echo.
"""

from __future__ import annotations

from collections.abc import Callable
import logging

from studygen.core.types import GenerationResult

logger = logging.getLogger(__name__)

_ECHO_CHARS = 200

type Responder = Callable[[str, str], str]


class MockAdapter:
    """Offline adapter with deterministic output and usage.

    Args:
        responder: Optional ``(model_name, prompt) -> text`` override.
    """

    def __init__(self, responder: Responder | None = None) -> None:
        self._responder = responder

    async def generate(self, *, model_name: str, prompt: str) -> GenerationResult:
        if self._responder is not None:
            text = self._responder(model_name, prompt)
        else:
            text = self._default_response(prompt)
        tokens = len(prompt) // 4 + 10 + len(text) // 4
        logger.debug("mock generation on %s: %d tokens", model_name, tokens)
        return GenerationResult(text=text, tokens_used=tokens, model_name=model_name)

    @staticmethod
    def _default_response(prompt: str) -> str:
        if "JSON array" in prompt:
            return "[]"
        if "valid JSON" in prompt:
            return '{"keyPoints": [], "mainTopics": []}'
        return f"echo: {prompt.strip()[:_ECHO_CHARS]}"
