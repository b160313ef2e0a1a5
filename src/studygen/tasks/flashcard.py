"""Flashcard (front/back pair) generation."""

from __future__ import annotations

from collections.abc import Mapping
import dataclasses
import json
import logging
from typing import Any

from studygen.core.exceptions import ValidationError
from studygen.tasks.base import (
    check_item_count,
    dedupe_by,
    extraction_target,
    focus_topic,
    item_count,
    load_json_array,
    require_list,
)

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class Flashcard:
    """A single front/back study card."""

    front: str
    back: str

    def to_dict(self) -> dict[str, str]:  # noqa: D102
        return {"front": self.front, "back": self.back}


class FlashcardTask:
    """Task contract for flashcards."""

    name = "flashcard"

    def needs_document_context(self) -> bool:
        return False

    def summarization_focus(self) -> str:
        return (
            "Focus on key concepts, definitions, terms, and their explanations. "
            "Preserve vocabulary, formulas, and factual information that can be "
            "turned into question-answer pairs."
        )

    def check_params(self, params: Mapping[str, Any]) -> None:
        check_item_count(params)

    def build_map_prompt(
        self, content: str, params: Mapping[str, Any], depth: int
    ) -> str:
        target = extraction_target(item_count(params), depth)
        topic = focus_topic(params)

        if not content.strip() and topic:
            return f"""You are a study assistant that creates effective flashcards for learning.

Create up to {target} flashcards about: "{topic}"

Guidelines for good flashcards:
- Each card should test ONE concept
- Questions should be clear and specific
- Answers should be concise but complete
- Cover different aspects of the topic

Respond with ONLY a valid JSON array of flashcards in this exact format, no other text:
[{{"front": "Question 1?", "back": "Answer 1"}}]"""

        topic_instruction = (
            f'Focus specifically on: "{topic}". Only create flashcards related to this topic.'
            if topic
            else "Cover the most important concepts from the material."
        )

        if depth > 0:
            return f"""Extract key concept pairs from this content and generate up to {target} flashcards.

{topic_instruction}

Content:
{content}

Requirements:
- Each card should test ONE concept
- Front should be a clear question or prompt
- Back should be a concise but complete answer
- If the content has no suitable concepts, return an empty array []

Respond with ONLY a valid JSON array (can be empty if no flashcards possible):
[{{"front": "Question?", "back": "Answer"}}]"""

        return f"""You are a study assistant that creates effective flashcards for learning.

Based on the following study material, create up to {target} flashcards.
{topic_instruction}

Guidelines for good flashcards:
- Each card should test ONE concept
- Questions should be clear and specific
- Answers should be concise but complete
- Avoid yes/no questions
- Include a mix of definitions, concepts, and applications
- If the content has no suitable concepts, return an empty array []

Study Material:
{content}

Respond with ONLY a valid JSON array of flashcards in this exact format, no other text:
[{{"front": "Question 1?", "back": "Answer 1"}}, {{"front": "Question 2?", "back": "Answer 2"}}]"""

    def parse_response(self, text: str, depth: int) -> list[Flashcard]:
        cards: list[Flashcard] = []
        for index, item in enumerate(load_json_array(text, task_name=self.name)):
            if (
                not isinstance(item, dict)
                or not isinstance(item.get("front"), str)
                or not isinstance(item.get("back"), str)
            ):
                logger.warning("flashcard: skipping invalid card at index %d", index)
                continue
            cards.append(Flashcard(front=item["front"].strip(), back=item["back"].strip()))
        return cards

    def combine_results(
        self, results: list[Any], params: Mapping[str, Any]
    ) -> list[Flashcard]:
        flat = [card for partial in results for card in partial]
        return dedupe_by(flat, lambda c: c.front)

    def build_reduce_prompt(
        self, partials: list[Any], params: Mapping[str, Any], depth: int
    ) -> str | None:
        candidates = self.combine_results(partials, params)
        if not candidates:
            return None

        topic = focus_topic(params)
        topic_instruction = f'All cards should relate to: "{topic}".' if topic else ""
        target = min(item_count(params), len(candidates))
        serialized = json.dumps([c.to_dict() for c in candidates], indent=2)

        return f"""You are curating flashcards for quality and variety.

From these {len(candidates)} candidate flashcards, select the best {target} cards.

{topic_instruction}

Selection criteria:
- Remove duplicate or very similar cards
- Ensure topic variety
- Prefer clearer, more educational cards
- Each card should test a distinct concept

Candidate flashcards:
{serialized}

Respond with ONLY a valid JSON array of up to {target} flashcards:
[{{"front": "...", "back": "..."}}]"""

    def validate_result(self, result: Any, params: Mapping[str, Any]) -> list[Flashcard]:
        cards = require_list(result, task_name=self.name)
        if not all(isinstance(c, Flashcard) for c in cards):
            raise ValidationError("Invalid flashcard result: items must be Flashcard")
        if not cards:
            logger.info(
                "flashcard: no cards generated (content may not have suitable concepts)"
            )
            return []
        count = item_count(params)
        final = cards[:count]
        logger.info("flashcard: validated %d/%d cards", len(final), count)
        return final
