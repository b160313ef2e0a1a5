"""Scenario-first convenience helpers.

Each helper builds an orchestrator (resolving configuration when none is
given) and runs one request. For repeated requests, build an `Orchestrator`
once and call `Orchestrator.run` directly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from studygen.orchestrator import create_orchestrator

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from studygen.config import FrozenConfig
    from studygen.core.types import Document, PipelineOutcome, RunOptions
    from studygen.pipeline.adapters import GenerationAdapter

    type ContentInput = str | Iterable[Document | Mapping[str, Any]]


async def run(
    task_name: str,
    content: ContentInput,
    params: Mapping[str, Any] | None = None,
    options: RunOptions | Mapping[str, Any] | None = None,
    *,
    cfg: FrozenConfig | None = None,
    adapter: GenerationAdapter | None = None,
) -> PipelineOutcome:
    """Run one generation request.

    Args:
        task_name: ``"quiz"``, ``"flashcard"`` or ``"summary"``.
        content: Text or a sequence of documents.
        params: Task parameters.
        options: `RunOptions` or an equivalent mapping.
        cfg: Optional frozen configuration. If omitted, `resolve_config()` is used.
        adapter: Optional generation adapter overriding the configured one.

    Example:
        ```python
        outcome = await run("quiz", lecture_notes, {"count": 5})
        for question in outcome.result:
            print(question.question)
        ```
    """
    orchestrator = create_orchestrator(cfg, adapter=adapter)
    return await orchestrator.run(task_name, content, params, options)


async def run_quiz(
    content: ContentInput,
    *,
    count: int = 10,
    focus_topic: str | None = None,
    options: RunOptions | Mapping[str, Any] | None = None,
    cfg: FrozenConfig | None = None,
) -> PipelineOutcome:
    """Generate up to ``count`` multiple-choice questions."""
    params: dict[str, Any] = {"count": count}
    if focus_topic:
        params["focus_topic"] = focus_topic
    return await run("quiz", content, params, options, cfg=cfg)


async def run_flashcards(
    content: ContentInput,
    *,
    count: int = 10,
    focus_topic: str | None = None,
    options: RunOptions | Mapping[str, Any] | None = None,
    cfg: FrozenConfig | None = None,
) -> PipelineOutcome:
    """Generate up to ``count`` flashcards."""
    params: dict[str, Any] = {"count": count}
    if focus_topic:
        params["focus_topic"] = focus_topic
    return await run("flashcard", content, params, options, cfg=cfg)


async def run_summary(
    content: ContentInput,
    *,
    length: str = "medium",
    options: RunOptions | Mapping[str, Any] | None = None,
    cfg: FrozenConfig | None = None,
) -> PipelineOutcome:
    """Summarize ``content`` at the given length (short, medium or long)."""
    return await run("summary", content, {"length": length}, options, cfg=cfg)
