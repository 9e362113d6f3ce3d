"""
Tests for static sequence analysis.
"""

from agentic_sequencer.analyzer import analyze_task_sequence
from agentic_sequencer.task_schemas import TaskType
from agentic_sequencer.types import Task


def seq(*specs):
    return [Task(type=TaskType(t), config=c) for t, c in specs]


class TestAnalyzeTaskSequence:

    def test_empty_is_optimal(self):
        analysis = analyze_task_sequence([])
        assert analysis.is_optimal is True
        assert analysis.suggestions == []

    def test_well_formed_sequence(self):
        tasks = seq(
            ("search", {"searchQuery": "python"}),
            ("click", {}),
            ("find", {"text": "Install"}),
            ("click", {}),
            ("type", {"typeText": "pip"}),
            ("enter", {}),
            ("loop", {"loopCount": 2}),
        )
        assert analyze_task_sequence(tasks).is_optimal is True

    def test_lone_click(self):
        analysis = analyze_task_sequence(seq(("click", {})))
        assert analysis.suggestions == [
            "Click at position 1 has no selector and no preceding Find or Search"
        ]

    def test_click_with_selector_is_fine(self):
        assert analyze_task_sequence(seq(("click", {"clickSelector": "#go"}))).is_optimal

    def test_search_without_query(self):
        analysis = analyze_task_sequence(seq(("search", {"searchQuery": ""})))
        assert analysis.suggestions == ["Search at position 1 has no query"]

    def test_find_without_text(self):
        analysis = analyze_task_sequence(seq(("find", {})))
        assert "Find at position 1 has no text and no earlier Find to reuse" in analysis.suggestions

    def test_second_find_may_reuse_text(self):
        tasks = seq(("find", {"text": "a"}), ("find", {}))
        assert analyze_task_sequence(tasks).is_optimal

    def test_type_without_text_and_enter_without_type(self):
        analysis = analyze_task_sequence(seq(("enter", {}), ("type", {})))
        assert analysis.suggestions == [
            "Enter at position 1 has no preceding Type task",
            "Type at position 2 has no text",
        ]

    def test_loop_not_last(self):
        analysis = analyze_task_sequence(seq(("loop", {"loopCount": 2}), ("wait", {})))
        assert analysis.is_optimal is False
        assert any("position 1 is ignored" in s for s in analysis.suggestions)

    def test_multiple_loops(self):
        analysis = analyze_task_sequence(seq(("wait", {}), ("loop", {}), ("loop", {})))
        assert "Only one Loop task is supported; extra Loop tasks are ignored" in analysis.suggestions

    def test_loop_only(self):
        analysis = analyze_task_sequence(seq(("loop", {"loopCount": 3})))
        assert "Sequence contains only a Loop task; nothing will run" in analysis.suggestions

    def test_invalid_config_reported(self):
        analysis = analyze_task_sequence(seq(("wait", {"waitTime": "soon"})))
        assert analysis.suggestions == ["Task 1 (wait): Invalid wait config (waitTime)"]
