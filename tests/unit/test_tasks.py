"""Task contract tests: prompts, parsing, merging, curation and validation."""

import json

import pytest

from studygen.core.exceptions import (
    MalformedResponseError,
    UnknownTaskError,
    ValidationError,
)
from studygen.tasks import (
    TASK_REGISTRY,
    Flashcard,
    FlashcardTask,
    QuizQuestion,
    QuizTask,
    SummaryPartial,
    SummaryTask,
    TaskContract,
    available_tasks,
    get_task,
)
from studygen.tasks.base import extraction_target, load_json, strip_code_fences


def _question(text: str) -> dict:
    return {
        "question": text,
        "correctAnswer": "right",
        "wrongAnswers": ["w1", "w2", "w3"],
    }


@pytest.mark.unit
class TestRegistry:
    def test_builtin_tasks_registered(self):
        assert available_tasks() == ("quiz", "flashcard", "summary")

    def test_lookup_is_case_insensitive(self):
        assert isinstance(get_task(" Quiz "), QuizTask)

    def test_unknown_task_lists_available(self):
        with pytest.raises(UnknownTaskError) as ei:
            get_task("essay")
        assert ei.value.task_name == "essay"
        assert "flashcard" in str(ei.value)

    def test_registry_is_immutable(self):
        with pytest.raises(TypeError):
            TASK_REGISTRY["essay"] = QuizTask  # type: ignore[index]

    @pytest.mark.parametrize("name", ["quiz", "flashcard", "summary"])
    def test_tasks_satisfy_contract(self, name):
        assert isinstance(get_task(name), TaskContract)


@pytest.mark.unit
class TestSharedHelpers:
    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n[1, 2]\n```') == "[1, 2]"
        assert strip_code_fences("  [1]  ") == "[1]"

    def test_extraction_target_adds_headroom_below_depth_zero(self):
        assert extraction_target(10, 0) == 10
        assert extraction_target(10, 1) == 15

    @pytest.mark.parametrize(
        "text",
        [
            "[" + "1" * 5000 + "]",  # beyond the int string conversion limit
            "[" * 100_000 + "]" * 100_000,
        ],
        ids=["huge-integer", "deep-nesting"],
    )
    def test_load_json_reports_any_decode_failure_as_malformed(self, text):
        with pytest.raises(MalformedResponseError):
            load_json(text, task_name="quiz")


@pytest.mark.unit
class TestFlashcardTask:
    task = FlashcardTask()

    def test_parse_skips_invalid_cards(self):
        text = json.dumps([{"front": " Q ", "back": " A "}, {"front": "no back"}, "junk"])
        assert self.task.parse_response(text, 0) == [Flashcard("Q", "A")]

    def test_parse_accepts_fenced_json(self):
        text = '```json\n[{"front": "Q", "back": "A"}]\n```'
        assert self.task.parse_response(text, 0) == [Flashcard("Q", "A")]

    def test_parse_rejects_non_array(self):
        with pytest.raises(MalformedResponseError):
            self.task.parse_response('{"front": "Q"}', 0)
        with pytest.raises(MalformedResponseError):
            self.task.parse_response("not json", 0)

    def test_combine_dedupes_case_and_whitespace_insensitively(self):
        partials = [
            [Flashcard("Define X", "first")],
            [Flashcard("  define x ", "second"), Flashcard("Define Y", "third")],
        ]
        combined = self.task.combine_results(partials, {})
        assert [c.back for c in combined] == ["first", "third"]

    def test_reduce_prompt_none_without_candidates(self):
        assert self.task.build_reduce_prompt([[], []], {"count": 5}, 0) is None

    def test_reduce_prompt_targets_min_of_count_and_candidates(self):
        partials = [[Flashcard("A?", "a"), Flashcard("B?", "b")]]
        prompt = self.task.build_reduce_prompt(partials, {"count": 5}, 0)
        assert "From these 2 candidate flashcards, select the best 2 cards." in prompt

    def test_general_knowledge_prompt_for_blank_content_with_topic(self):
        prompt = self.task.build_map_prompt("  ", {"focus_topic": "Photosynthesis"}, 0)
        assert 'flashcards about: "Photosynthesis"' in prompt
        assert "Study Material" not in prompt

    def test_deeper_prompts_ask_for_headroom(self):
        prompt = self.task.build_map_prompt("notes", {"count": 10}, 1)
        assert "up to 15 flashcards" in prompt

    def test_validate_caps_at_count(self):
        cards = [Flashcard(f"Q{i}", "A") for i in range(5)]
        assert len(self.task.validate_result(cards, {"count": 3})) == 3

    def test_validate_empty_is_valid(self):
        assert self.task.validate_result([], {}) == []

    def test_validate_rejects_wrong_shape(self):
        with pytest.raises(ValidationError):
            self.task.validate_result("cards", {})
        with pytest.raises(ValidationError):
            self.task.validate_result([{"front": "Q", "back": "A"}], {})

    @pytest.mark.parametrize("count", [0, -1, "5", True, 2.5])
    def test_check_params_rejects_bad_count(self, count):
        with pytest.raises(ValidationError, match="count"):
            self.task.check_params({"count": count})

    def test_check_params_accepts_missing_count(self):
        self.task.check_params({})


@pytest.mark.unit
class TestQuizTask:
    task = QuizTask()

    def test_parse_requires_three_wrong_answers(self):
        short = {"question": "Q?", "correctAnswer": "A", "wrongAnswers": ["x", "y"]}
        long = _question("Long?") | {"wrongAnswers": ["a", "b", "c", "d"]}
        parsed = self.task.parse_response(json.dumps([short, long]), 0)
        assert parsed == [QuizQuestion("Long?", "right", ("a", "b", "c"))]

    def test_combine_dedupes_by_question(self):
        first = self.task.parse_response(json.dumps([_question("What is X?")]), 0)
        second = self.task.parse_response(
            json.dumps([_question("what is x?"), _question("What is Y?")]), 0
        )
        combined = self.task.combine_results([first, second], {})
        assert [q.question for q in combined] == ["What is X?", "What is Y?"]

    def test_reduce_prompt_serializes_wire_shape(self):
        partials = [[QuizQuestion("Q?", "A", ("b", "c", "d"))]]
        prompt = self.task.build_reduce_prompt(partials, {"count": 10}, 0)
        assert '"correctAnswer": "A"' in prompt
        assert "select the best 1 questions" in prompt

    def test_general_knowledge_prompt(self):
        prompt = self.task.build_map_prompt("", {"focus_topic": "Rome"}, 0)
        assert 'quiz questions about: "Rome"' in prompt

    def test_focus_topic_in_content_prompt(self):
        prompt = self.task.build_map_prompt("notes", {"focus_topic": "Rome"}, 0)
        assert 'Focus specifically on: "Rome"' in prompt
        assert "notes" in prompt

    def test_to_dict_round_trip(self):
        question = QuizQuestion("Q?", "A", ("b", "c", "d"))
        assert QuizQuestion.from_dict(question.to_dict()) == question

    def test_validate_defaults_to_ten(self):
        questions = [QuizQuestion(f"Q{i}?", "A", ("b", "c", "d")) for i in range(12)]
        assert len(self.task.validate_result(questions, {})) == 10


@pytest.mark.unit
class TestSummaryTask:
    task = SummaryTask()

    def test_needs_document_context(self):
        assert self.task.needs_document_context() is True

    def test_depth_zero_response_is_prose(self):
        assert self.task.parse_response("  Prose.  ", 0) == SummaryPartial(summary="Prose.")

    def test_deeper_response_is_key_points(self):
        text = json.dumps({"keyPoints": ["a", "b"], "mainTopics": ["t"]})
        assert self.task.parse_response(text, 1) == SummaryPartial(
            key_points=("a", "b"), main_topics=("t",)
        )

    def test_unparseable_deeper_response_kept_as_key_point(self):
        assert self.task.parse_response("just text", 1) == SummaryPartial(
            key_points=("just text",)
        )

    def test_combine_joins_prose_and_dedupes_points(self):
        combined = self.task.combine_results(
            [
                SummaryPartial(summary="One.", key_points=("a",)),
                SummaryPartial(summary="Two.", key_points=("a", "b")),
            ],
            {},
        )
        assert combined.summary == "One.\n\nTwo."
        assert combined.key_points == ("a", "b")

    def test_prose_only_partials_need_no_reduce(self):
        partials = [SummaryPartial(summary="One."), SummaryPartial(summary="Two.")]
        assert self.task.build_reduce_prompt(partials, {}, 0) is None

    def test_key_points_are_synthesized_at_depth_zero(self):
        partials = [SummaryPartial(key_points=("a",), main_topics=("t",))]
        prompt = self.task.build_reduce_prompt(partials, {"length": "short"}, 0)
        assert "brief overview" in prompt
        assert "flowing prose" in prompt

    def test_validate_prefers_prose_then_key_points(self):
        assert self.task.validate_result(SummaryPartial(summary="S"), {}) == "S"
        assert (
            self.task.validate_result(SummaryPartial(key_points=("a", "b")), {})
            == "a\n\nb"
        )
        assert self.task.validate_result(SummaryPartial(), {}) == ""

    def test_validate_rejects_wrong_type(self):
        with pytest.raises(ValidationError):
            self.task.validate_result(["not", "a", "summary"], {})

    def test_check_params_rejects_unknown_length(self):
        with pytest.raises(ValidationError, match="length"):
            self.task.check_params({"length": "epic"})

    def test_check_params_rejects_non_string_length(self):
        with pytest.raises(ValidationError, match="length"):
            self.task.check_params({"length": ["short"]})
