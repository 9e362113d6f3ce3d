"""
Tests for the run logger.
"""

import json

from agentic_sequencer.logger import RunLogger, redact_task_config
from agentic_sequencer.task_schemas import ExtractedItem, TaskStatus, TaskType
from agentic_sequencer.types import Task


def read_steps(run_logger):
    lines = run_logger.steps_file.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines]


class TestRedaction:

    def test_password_text_hidden(self):
        task = Task(type=TaskType.TYPE, config={"typeText": "hunter2", "targetField": "password"})
        assert redact_task_config(task)["typeText"] == "[REDACTED]"
        # The task itself is untouched
        assert task.config["typeText"] == "hunter2"

    def test_other_fields_kept(self):
        task = Task(type=TaskType.TYPE, config={"typeText": "alice", "targetField": "username"})
        assert redact_task_config(task)["typeText"] == "alice"


class TestRunLogger:

    def test_creates_run_directory(self, tmp_path):
        run_logger = RunLogger("Morning News!", enable_console=False, runs_dir=tmp_path)

        assert run_logger.run_dir.parent == tmp_path
        assert run_logger.run_dir.name.endswith("_morning_news")
        assert run_logger.steps_file.exists()

    def test_log_task_writes_jsonl(self, tmp_path):
        run_logger = RunLogger("seq", enable_console=False, runs_dir=tmp_path)
        task = Task(type=TaskType.SEARCH, config={"searchQuery": "x"})
        task.status = TaskStatus.COMPLETED
        task.result = {"last_search_query": "x"}

        run_logger.log_task(task, index=0, loop=1, duration_ms=12.345)

        [record] = read_steps(run_logger)
        assert record["step"] == 1
        assert record["task_id"] == task.id
        assert record["type"] == "search"
        assert record["status"] == "completed"
        assert record["result"] == {"last_search_query": "x"}
        assert record["duration_ms"] == 12.3

    def test_failures_counted(self, tmp_path):
        run_logger = RunLogger("seq", enable_console=False, runs_dir=tmp_path)
        task = Task(type=TaskType.CLICK, status=TaskStatus.FAILED, error="no target")

        run_logger.log_task(task, index=0, loop=1, duration_ms=1)

        assert run_logger.failures == 1
        assert read_steps(run_logger)[0]["error"] == "no target"

    def test_password_redacted_in_file(self, tmp_path):
        run_logger = RunLogger("seq", enable_console=False, runs_dir=tmp_path)
        task = Task(
            type=TaskType.TYPE,
            config={"typeText": "hunter2", "targetField": "password"},
            status=TaskStatus.COMPLETED,
            result={"typed_text": "hunter2"},
        )

        run_logger.log_task(task, index=0, loop=1, duration_ms=1)

        assert "hunter2" not in run_logger.steps_file.read_text(encoding="utf-8")

    def test_no_files_mode(self, tmp_path):
        run_logger = RunLogger("seq", enable_console=False, write_files=False, runs_dir=tmp_path)

        run_logger.log_task(Task(type=TaskType.WAIT), index=0, loop=1, duration_ms=1)

        assert run_logger.steps_file is None
        assert run_logger.step_count == 1
        assert list(tmp_path.iterdir()) == []

    def test_console_output(self, tmp_path, capsys):
        run_logger = RunLogger("seq", enable_console=True, write_files=False)
        tasks = [Task(type=TaskType.WAIT, status=TaskStatus.COMPLETED)]

        run_logger.print_header(task_count=1, loops=2)
        run_logger.print_log_line("✅ Task 1 completed")
        run_logger.print_extracted([ExtractedItem(title="Example", url="https://example.com/", type="link")])
        run_logger.print_summary(True, tasks)

        out = capsys.readouterr().out
        assert "seq" in out
        assert "Task 1 completed" in out
        assert "Example" in out
        assert "Success" in out
