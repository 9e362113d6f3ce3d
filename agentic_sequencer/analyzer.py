"""
Static analysis of task sequences.

Flags sequences that will fail or behave unexpectedly before they run.
Suggestions are advisory; a run is never blocked by them.
"""

from dataclasses import dataclass, field
from typing import Sequence

from .task_schemas import TaskType, parse_task_config
from .types import Task
from .errors import TaskConfigError


@dataclass
class SequenceAnalysis:
    """Result of analyzing a sequence."""
    is_optimal: bool = True
    suggestions: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.is_optimal = False
        self.suggestions.append(message)


def analyze_task_sequence(tasks: Sequence[Task]) -> SequenceAnalysis:
    """Analyze a sequence for missing config and impossible chains.

    Args:
        tasks: Tasks in execution order

    Returns:
        SequenceAnalysis with one suggestion per problem found
    """
    analysis = SequenceAnalysis()
    if not tasks:
        return analysis

    loop_positions = [i for i, t in enumerate(tasks) if t.type == TaskType.LOOP]
    if len(loop_positions) > 1:
        analysis.warn("Only one Loop task is supported; extra Loop tasks are ignored")
    for i in loop_positions:
        if i != len(tasks) - 1:
            analysis.warn(
                f"Loop at position {i + 1} is ignored; only a trailing Loop repeats the sequence"
            )
    if len(tasks) == 1 and tasks[0].type == TaskType.LOOP:
        analysis.warn("Sequence contains only a Loop task; nothing will run")

    seen_search = seen_find = seen_type = False
    for i, task in enumerate(tasks, start=1):
        try:
            cfg = parse_task_config(task.type, task.config)
        except TaskConfigError as e:
            analysis.warn(f"Task {i} ({task.type.value}): {e}")
            continue

        if task.type == TaskType.SEARCH:
            if not cfg.search_query:
                analysis.warn(f"Search at position {i} has no query")
            seen_search = True
        elif task.type == TaskType.FIND:
            if not (cfg.text or cfg.selector) and not seen_find:
                analysis.warn(f"Find at position {i} has no text and no earlier Find to reuse")
            seen_find = True
        elif task.type == TaskType.CLICK:
            if not cfg.click_selector and not (seen_find or seen_search):
                analysis.warn(
                    f"Click at position {i} has no selector and no preceding Find or Search"
                )
        elif task.type == TaskType.TYPE:
            if not cfg.type_text:
                analysis.warn(f"Type at position {i} has no text")
            seen_type = True
        elif task.type == TaskType.ENTER:
            if not seen_type:
                analysis.warn(f"Enter at position {i} has no preceding Type task")

    return analysis
