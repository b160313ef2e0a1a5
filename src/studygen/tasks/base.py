"""Task contract protocol and shared helpers.

A task contract supplies everything task-specific about a generation run:
prompts, response parsing, merging of partial results, curation and final
validation. Contracts are stateless and have no dependency on the pipeline.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
import json
import logging
import math
import re
from typing import Any, Protocol, runtime_checkable

from studygen.constants import EXTRACTION_HEADROOM
from studygen.core.exceptions import MalformedResponseError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_ITEM_COUNT = 10

_FENCE_RE = re.compile(r"^\s*```[\w-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


@runtime_checkable
class TaskContract(Protocol):
    """Per-artifact policy object used by the pipeline."""

    name: str

    def needs_document_context(self) -> bool:
        """Return True when chunks should keep whole documents together."""
        ...

    def summarization_focus(self) -> str:
        """Describe what pre-summarization must preserve for this task."""
        ...

    def check_params(self, params: Mapping[str, Any]) -> None:
        """Raise `ValidationError` for params the task cannot honor."""
        ...

    def build_map_prompt(
        self, content: str, params: Mapping[str, Any], depth: int
    ) -> str:
        """Build the per-chunk prompt. Depth 0 is final quality."""
        ...

    def parse_response(self, text: str, depth: int) -> Any:
        """Parse one generation response into a partial result."""
        ...

    def combine_results(self, results: list[Any], params: Mapping[str, Any]) -> Any:
        """Merge partial results into one combined result."""
        ...

    def build_reduce_prompt(
        self, partials: list[Any], params: Mapping[str, Any], depth: int
    ) -> str | None:
        """Build the curation prompt, or None when no curation is needed."""
        ...

    def validate_result(self, result: Any, params: Mapping[str, Any]) -> Any:
        """Shape the final artifact. Empty results are valid."""
        ...


# --- Shared helpers ---


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if present."""
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def load_json(text: str, *, task_name: str) -> Any:
    """Parse JSON from a model response, tolerating code fences."""
    try:
        return json.loads(strip_code_fences(text))
    # ValueError also covers oversized integer literals; RecursionError deep nesting
    except (ValueError, RecursionError) as e:
        logger.error("%s: failed to parse JSON response: %s", task_name, e)
        raise MalformedResponseError(
            f"Failed to parse {task_name} response as JSON: {e}"
        ) from e


def load_json_array(text: str, *, task_name: str) -> list[Any]:
    """Parse a JSON array from a model response."""
    parsed = load_json(text, task_name=task_name)
    if not isinstance(parsed, list):
        logger.error("%s: response is not a JSON array", task_name)
        raise MalformedResponseError(
            f"Invalid {task_name} response: expected a JSON array, "
            f"got {type(parsed).__name__}"
        )
    return parsed


def normalize_key(text: str) -> str:
    """Dedup key: case-insensitive and whitespace-trimmed."""
    return text.strip().casefold()


def dedupe_by[T](items: Iterable[T], key: Callable[[T], str]) -> list[T]:
    """Keep the first item for each normalized key, preserving order."""
    seen: set[str] = set()
    unique: list[T] = []
    for item in items:
        k = normalize_key(key(item))
        if k in seen:
            continue
        seen.add(k)
        unique.append(item)
    return unique


def extraction_target(count: int, depth: int) -> int:
    """Return the item count a prompt at ``depth`` should ask for."""
    if depth == 0:
        return count
    return math.ceil(count * EXTRACTION_HEADROOM)


def item_count(params: Mapping[str, Any]) -> int:
    """Read the requested item count from params."""
    return int(params.get("count", DEFAULT_ITEM_COUNT))


def check_item_count(params: Mapping[str, Any]) -> None:
    """Validate an optional ``count`` param."""
    if "count" not in params:
        return
    count = params["count"]
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ValidationError(f"count must be a positive integer, got {count!r}")


def focus_topic(params: Mapping[str, Any]) -> str | None:
    """Return the stripped focus topic, or None when absent or blank."""
    topic = params.get("focus_topic")
    if isinstance(topic, str) and topic.strip():
        return topic.strip()
    return None


def require_list(result: Any, *, task_name: str) -> list[Any]:
    """Validate that a combined result is a list."""
    if not isinstance(result, list):
        raise ValidationError(
            f"Invalid {task_name} result: expected a list, got {type(result).__name__}"
        )
    return result
