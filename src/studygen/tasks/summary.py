"""Prose summary generation.

Depth 0 produces prose. Deeper levels extract key points and topics as JSON,
which the reduce step later synthesizes back into prose.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import dataclasses
import json
import logging
from types import MappingProxyType
from typing import Any, NamedTuple

from studygen.core.exceptions import MalformedResponseError, ValidationError
from studygen.tasks.base import focus_topic, load_json

logger = logging.getLogger(__name__)


class LengthSpec(NamedTuple):
    words: str
    key_points: int
    description: str


LENGTHS: Mapping[str, LengthSpec] = MappingProxyType(
    {
        "short": LengthSpec("150-250", 5, "brief overview"),
        "medium": LengthSpec("400-600", 10, "detailed summary"),
        "long": LengthSpec("800-1200", 15, "comprehensive summary"),
    }
)
DEFAULT_LENGTH = "medium"

_KEY_POINTS_SHAPE = '{"keyPoints": ["point 1", "point 2", ...], "mainTopics": ["topic 1", "topic 2", ...]}'


@dataclasses.dataclass(frozen=True, slots=True)
class SummaryPartial:
    """Partial summary: prose, extracted key points, or both."""

    summary: str = ""
    key_points: tuple[str, ...] = ()
    main_topics: tuple[str, ...] = ()


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _strings(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(v for v in value if isinstance(v, str))


class SummaryTask:
    """Task contract for prose summaries."""

    name = "summary"

    def needs_document_context(self) -> bool:
        return True

    def summarization_focus(self) -> str:
        return (
            "Preserve the main ideas, key arguments, and important conclusions. "
            "Maintain the logical structure and flow of the content."
        )

    def check_params(self, params: Mapping[str, Any]) -> None:
        length = params.get("length", DEFAULT_LENGTH)
        if not isinstance(length, str) or length not in LENGTHS:
            raise ValidationError(
                f"length must be one of {', '.join(LENGTHS)}, got {length!r}"
            )

    def _length(self, params: Mapping[str, Any]) -> LengthSpec:
        return LENGTHS.get(params.get("length", DEFAULT_LENGTH), LENGTHS[DEFAULT_LENGTH])

    def build_map_prompt(
        self, content: str, params: Mapping[str, Any], depth: int
    ) -> str:
        spec = self._length(params)
        topic = focus_topic(params)
        topic_instruction = (
            f'Focus specifically on aspects related to: "{topic}".'
            if topic
            else "Cover the most important concepts from all the material."
        )

        if depth > 0:
            return f"""Extract the key points and main topics from this content.

{topic_instruction}

Content:
{content}

Extract up to {spec.key_points} key points as a JSON object:
{_KEY_POINTS_SHAPE}

Respond with ONLY valid JSON:"""

        return f"""You are an expert at creating clear, educational summaries.

Based on the following study material, create a {spec.description} (approximately {spec.words} words).
{topic_instruction}

Guidelines:
- Capture the main ideas and key concepts
- Maintain accuracy to the source material
- Use clear, accessible language
- Organize information logically
- Include important details, examples, or definitions when relevant

Study Material:
{content}

Write the summary in a flowing, readable format. Generate the summary:"""

    def parse_response(self, text: str, depth: int) -> SummaryPartial:
        if depth == 0:
            return SummaryPartial(summary=text.strip())

        try:
            parsed = load_json(text, task_name=self.name)
        except MalformedResponseError:
            logger.warning("summary: failed to parse JSON, keeping raw text as a key point")
            return SummaryPartial(key_points=(text.strip(),))
        if not isinstance(parsed, dict):
            logger.warning("summary: JSON response is not an object, keeping raw text")
            return SummaryPartial(key_points=(text.strip(),))
        return SummaryPartial(
            key_points=_strings(parsed.get("keyPoints")),
            main_topics=_strings(parsed.get("mainTopics")),
        )

    def combine_results(
        self, results: list[Any], params: Mapping[str, Any]
    ) -> SummaryPartial:
        partials = [r for r in results if isinstance(r, SummaryPartial)]
        return SummaryPartial(
            summary="\n\n".join(p.summary for p in partials if p.summary),
            key_points=_unique(k for p in partials for k in p.key_points),
            main_topics=_unique(t for p in partials for t in p.main_topics),
        )

    def build_reduce_prompt(
        self, partials: list[Any], params: Mapping[str, Any], depth: int
    ) -> str | None:
        combined = self.combine_results(partials, params)
        # Prose-only partials are already final.
        if not combined.key_points and not combined.main_topics:
            return None

        spec = self._length(params)
        topic = focus_topic(params)
        topic_instruction = (
            f'Focus specifically on aspects related to: "{topic}".' if topic else ""
        )
        key_points = json.dumps(list(combined.key_points), indent=2)
        topics = json.dumps(list(combined.main_topics), indent=2)

        if depth > 0:
            return f"""Consolidate these key points into the most important {spec.key_points} points.

{topic_instruction}

Key Points:
{key_points}

Main Topics:
{topics}

Respond with ONLY valid JSON:
{_KEY_POINTS_SHAPE}"""

        return f"""You are an expert at creating clear, educational summaries.

Synthesize these key points into a {spec.description} (approximately {spec.words} words).

{topic_instruction}

Key Points:
{key_points}

Main Topics:
{topics}

Guidelines:
- Create a coherent, flowing narrative
- Organize by main topics logically
- Use clear, accessible language
- Include all important concepts

Write the summary as flowing prose (not bullet points):"""

    def validate_result(self, result: Any, params: Mapping[str, Any]) -> str:
        if isinstance(result, str):
            return result
        if not isinstance(result, SummaryPartial):
            raise ValidationError(
                f"Invalid summary result: expected SummaryPartial, got {type(result).__name__}"
            )
        if result.summary:
            logger.info("summary: returning prose summary")
            return result.summary
        if result.key_points:
            logger.info("summary: converting key points to summary")
            return "\n\n".join(result.key_points)
        logger.info(
            "summary: no summary generated (content may not have summarizable information)"
        )
        return ""
