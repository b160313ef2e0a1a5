"""Provider adapter protocol.

Adapters hide provider SDK details behind one coroutine: prompt in, text and
token count out. The pipeline never inspects provider identity.
"""

from typing import Protocol, runtime_checkable

from studygen.core.types import GenerationResult


@runtime_checkable
class GenerationAdapter(Protocol):
    """Minimal generation capability consumed by `GenerationClient`."""

    async def generate(self, *, model_name: str, prompt: str) -> GenerationResult:
        """Generate text for a single prompt on the given model."""
        ...
