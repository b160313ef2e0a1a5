"""Provider adapters.

``GoogleGenAIAdapter`` is not imported here so the Google SDK is only loaded
when a real provider is requested.
"""

from studygen.pipeline.adapters.base import GenerationAdapter
from studygen.pipeline.adapters.mock import MockAdapter

__all__ = ["GenerationAdapter", "MockAdapter"]
