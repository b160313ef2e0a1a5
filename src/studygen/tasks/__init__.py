"""Task contracts and the task registry.

The registry is an immutable mapping from lowercase task name to a factory,
built once at import. Contracts are stateless, so a fresh instance per lookup
is cheap and never shares state between requests.
"""

from collections.abc import Callable, Mapping
from types import MappingProxyType

from studygen.core.exceptions import UnknownTaskError
from studygen.tasks.base import TaskContract
from studygen.tasks.flashcard import Flashcard, FlashcardTask
from studygen.tasks.quiz import QuizQuestion, QuizTask
from studygen.tasks.summary import SummaryPartial, SummaryTask

type TaskFactory = Callable[[], TaskContract]

TASK_REGISTRY: Mapping[str, TaskFactory] = MappingProxyType(
    {
        QuizTask.name: QuizTask,
        FlashcardTask.name: FlashcardTask,
        SummaryTask.name: SummaryTask,
    }
)


def available_tasks(registry: Mapping[str, TaskFactory] = TASK_REGISTRY) -> tuple[str, ...]:
    """Return registered task names in registration order."""
    return tuple(registry)


def get_task(
    name: str, registry: Mapping[str, TaskFactory] = TASK_REGISTRY
) -> TaskContract:
    """Return a task contract by case-insensitive name.

    Raises:
        UnknownTaskError: If no task is registered under ``name``.
    """
    factory = registry.get(name.strip().lower())
    if factory is None:
        raise UnknownTaskError(name, available_tasks(registry))
    return factory()


__all__ = [
    "TASK_REGISTRY",
    "Flashcard",
    "FlashcardTask",
    "QuizQuestion",
    "QuizTask",
    "SummaryPartial",
    "SummaryTask",
    "TaskContract",
    "TaskFactory",
    "available_tasks",
    "get_task",
]
