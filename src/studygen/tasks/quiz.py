"""Multiple-choice quiz generation."""

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

_WRONG_ANSWERS = 3
_RESPONSE_SHAPE = (
    '[{"question": "...", "correctAnswer": "...", '
    '"wrongAnswers": ["...", "...", "..."]}]'
)


@dataclasses.dataclass(frozen=True, slots=True)
class QuizQuestion:
    """One question with its correct answer and three distractors."""

    question: str
    correct_answer: str
    wrong_answers: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        """Wire shape, as the prompts describe it."""
        return {
            "question": self.question,
            "correctAnswer": self.correct_answer,
            "wrongAnswers": list(self.wrong_answers),
        }

    @classmethod
    def from_dict(cls, data: Any) -> QuizQuestion | None:
        """Build a question from model output; None when the item is unusable."""
        if not isinstance(data, dict):
            return None
        question = data.get("question")
        correct = data.get("correctAnswer")
        wrong = data.get("wrongAnswers")
        if (
            not isinstance(question, str)
            or not isinstance(correct, str)
            or not isinstance(wrong, list)
            or len(wrong) < _WRONG_ANSWERS
            or not all(isinstance(w, str) for w in wrong[:_WRONG_ANSWERS])
        ):
            return None
        return cls(
            question=question.strip(),
            correct_answer=correct.strip(),
            wrong_answers=tuple(w.strip() for w in wrong[:_WRONG_ANSWERS]),
        )


class QuizTask:
    """Task contract for multiple-choice quizzes."""

    name = "quiz"

    def needs_document_context(self) -> bool:
        return False

    def summarization_focus(self) -> str:
        return (
            "Focus on facts, definitions, concepts, and any information that "
            "could be tested in a quiz. Preserve specific details, names, dates, "
            "and relationships between concepts."
        )

    def check_params(self, params: Mapping[str, Any]) -> None:
        check_item_count(params)

    def build_map_prompt(
        self, content: str, params: Mapping[str, Any], depth: int
    ) -> str:
        target = extraction_target(item_count(params), depth)
        topic = focus_topic(params)

        if not content.strip() and topic:
            return self._general_knowledge_prompt(topic, target)

        topic_instruction = (
            f'Focus specifically on: "{topic}". Only create questions related to this topic.'
            if topic
            else "Cover the most important concepts from the material."
        )

        if depth > 0:
            return f"""Extract key testable facts from this content and generate up to {target} multiple-choice questions.

{topic_instruction}

Content:
{content}

Requirements:
- Each question should test understanding of the material
- Include one correct answer and three plausible wrong answers
- Questions should be clear and unambiguous
- If the content has no testable information, return an empty array []

Respond with ONLY a valid JSON array (can be empty if no questions possible):
{_RESPONSE_SHAPE}"""

        return f"""You are a quiz creator that makes effective multiple-choice questions for learning.

Based on the following study material, create up to {target} multiple-choice quiz questions.
{topic_instruction}

Guidelines:
- Each question should test understanding of the material
- Questions should be clear and unambiguous
- The correct answer should be based on the provided content
- Wrong answers (distractors) should be plausible but clearly incorrect
- Vary the difficulty from easy to challenging
- If the content has no testable information, return an empty array []

Study Material:
{content}

Respond with ONLY a valid JSON array in this exact format, no other text:
{_RESPONSE_SHAPE}"""

    def _general_knowledge_prompt(self, topic: str, count: int) -> str:
        return f"""You are a quiz creator that makes effective multiple-choice questions for learning.

Create up to {count} multiple-choice quiz questions about: "{topic}"

Guidelines:
- Each question should test understanding, not just memorization
- Questions should be clear and unambiguous
- The correct answer should be definitively correct
- Wrong answers (distractors) should be plausible but clearly incorrect
- Vary the difficulty from easy to challenging
- Cover different aspects of the topic

Respond with ONLY a valid JSON array in this exact format, no other text:
{_RESPONSE_SHAPE}"""

    def parse_response(self, text: str, depth: int) -> list[QuizQuestion]:
        questions: list[QuizQuestion] = []
        for index, item in enumerate(load_json_array(text, task_name=self.name)):
            question = QuizQuestion.from_dict(item)
            if question is None:
                logger.warning("quiz: skipping invalid question at index %d", index)
                continue
            questions.append(question)
        return questions

    def combine_results(
        self, results: list[Any], params: Mapping[str, Any]
    ) -> list[QuizQuestion]:
        flat = [q for partial in results for q in partial]
        return dedupe_by(flat, lambda q: q.question)

    def build_reduce_prompt(
        self, partials: list[Any], params: Mapping[str, Any], depth: int
    ) -> str | None:
        candidates = self.combine_results(partials, params)
        if not candidates:
            return None

        topic = focus_topic(params)
        topic_instruction = (
            f'All questions should relate to: "{topic}".' if topic else ""
        )
        target = min(item_count(params), len(candidates))
        serialized = json.dumps([q.to_dict() for q in candidates], indent=2)

        return f"""You are curating quiz questions for quality and variety.

From these {len(candidates)} candidate questions, select the best {target} questions.

{topic_instruction}

Selection criteria:
- Remove duplicate or very similar questions
- Ensure topic variety
- Prefer clearer, more educational questions
- Ensure answers are accurate

Candidate questions:
{serialized}

Respond with ONLY a valid JSON array of up to {target} questions:
{_RESPONSE_SHAPE}"""

    def validate_result(
        self, result: Any, params: Mapping[str, Any]
    ) -> list[QuizQuestion]:
        questions = require_list(result, task_name=self.name)
        if not all(isinstance(q, QuizQuestion) for q in questions):
            raise ValidationError("Invalid quiz result: items must be QuizQuestion")
        if not questions:
            logger.info(
                "quiz: no questions generated (content may not have testable information)"
            )
            return []
        count = item_count(params)
        final = questions[:count]
        logger.info("quiz: validated %d/%d questions", len(final), count)
        return final
