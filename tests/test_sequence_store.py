"""
Tests for sequence persistence.
"""

import json

import pytest

from agentic_sequencer.sequence_store import JsonSequenceStore, dump_tasks_file, load_tasks_file
from agentic_sequencer.task_schemas import TaskStatus, TaskType
from agentic_sequencer.types import Task


@pytest.fixture
def seq_store(tmp_path):
    return JsonSequenceStore(tmp_path / "sequences.json")


def sample_tasks():
    return [
        Task(type=TaskType.SEARCH, config={"searchQuery": "python"}),
        Task(type=TaskType.CLICK),
        Task(type=TaskType.LOOP, config={"loopCount": 2}),
    ]


class TestJsonSequenceStore:

    def test_empty_store(self, seq_store):
        assert seq_store.get_all_sequences() == {"success": True, "sequences": []}

    def test_save_and_load(self, seq_store):
        tasks = sample_tasks()
        assert seq_store.save_sequence("daily", tasks) == {"success": True}

        result = seq_store.load_sequence("daily")

        assert result["success"] is True
        loaded = result["sequence"]
        assert [t.id for t in loaded] == [t.id for t in tasks]
        assert [t.type for t in loaded] == [t.type for t in tasks]
        assert loaded[0].config == {"searchQuery": "python"}

    def test_run_state_not_persisted(self, seq_store, tmp_path):
        tasks = sample_tasks()
        tasks[0].status = TaskStatus.FAILED
        tasks[0].error = "boom"
        tasks[1].result = {"clicked_element": {"element": "A"}}

        seq_store.save_sequence("daily", tasks)

        raw = json.loads((tmp_path / "sequences.json").read_text())
        saved = raw["sequences"]["daily"]["tasks"]
        assert all(set(t) == {"id", "type", "config"} for t in saved)
        loaded = seq_store.load_sequence("daily")["sequence"]
        assert loaded[0].status == TaskStatus.PENDING
        assert loaded[0].error is None

    def test_overwrite_keeps_created_at(self, seq_store):
        seq_store.save_sequence("daily", sample_tasks())
        first = seq_store.get_all_sequences()["sequences"][0]

        seq_store.save_sequence("daily", sample_tasks()[:1])
        second = seq_store.get_all_sequences()["sequences"][0]

        assert second["created_at"] == first["created_at"]
        assert len(second["tasks"]) == 1
        assert len(seq_store.get_all_sequences()["sequences"]) == 1

    def test_blank_name_rejected(self, seq_store):
        result = seq_store.save_sequence("  ", sample_tasks())
        assert result == {"success": False, "error": "Sequence name is required"}

    def test_load_missing(self, seq_store):
        result = seq_store.load_sequence("nope")
        assert result == {"success": False, "error": "Sequence not found: nope"}

    def test_delete(self, seq_store):
        seq_store.save_sequence("daily", sample_tasks())

        assert seq_store.delete_sequence("daily") == {"success": True}
        assert seq_store.delete_sequence("daily")["success"] is False
        assert seq_store.get_all_sequences()["sequences"] == []

    def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "sequences.json"
        path.write_text("{not json")
        store = JsonSequenceStore(path)

        assert store.get_all_sequences() == {"success": True, "sequences": []}

    @pytest.mark.parametrize("payload", [{"sequences": []}, {"sequences": "daily"}, []])
    def test_malformed_sequences_section_reads_empty(self, tmp_path, payload):
        path = tmp_path / "sequences.json"
        path.write_text(json.dumps(payload))
        store = JsonSequenceStore(path)

        assert store.get_all_sequences() == {"success": True, "sequences": []}
        assert store.load_sequence("daily") == {
            "success": False,
            "error": "Sequence not found: daily",
        }

    def test_non_dict_entry_skipped(self, tmp_path):
        good = {"tasks": [{"id": "t1", "type": "wait", "config": {"waitTime": 5}}]}
        path = tmp_path / "sequences.json"
        path.write_text(json.dumps({"sequences": {"x": "oops", "good": good}}))
        store = JsonSequenceStore(path)

        sequences = store.get_all_sequences()["sequences"]
        assert [s["name"] for s in sequences] == ["good"]
        assert store.load_sequence("x")["success"] is False
        assert store.load_sequence("good")["success"] is True

    def test_corrupt_entry_reported(self, tmp_path):
        path = tmp_path / "sequences.json"
        path.write_text(json.dumps({"sequences": {"bad": {"name": "bad", "tasks": [{"type": "fly"}]}}}))

        result = JsonSequenceStore(path).load_sequence("bad")

        assert result["success"] is False
        assert "Corrupt sequence bad" in result["error"]

    def test_sorted_by_update_time(self, tmp_path):
        path = tmp_path / "sequences.json"
        path.write_text(json.dumps({"sequences": {
            "old": {"name": "old", "tasks": [], "updated_at": "2024-01-01T00:00:00"},
            "new": {"name": "new", "tasks": [], "updated_at": "2025-01-01T00:00:00"},
        }}))

        names = [s["name"] for s in JsonSequenceStore(path).get_all_sequences()["sequences"]]

        assert names == ["new", "old"]


class TestTaskFiles:

    def test_dump_and_load(self, tmp_path):
        path = tmp_path / "seq.json"
        tasks = sample_tasks()

        dump_tasks_file(path, tasks)
        loaded = load_tasks_file(path)

        assert [t.id for t in loaded] == [t.id for t in tasks]

    def test_bare_list_accepted(self, tmp_path):
        path = tmp_path / "seq.json"
        path.write_text(json.dumps([{"type": "extract-dom"}, {"type": "wait", "config": {"waitTime": 50}}]))

        loaded = load_tasks_file(path)

        assert [t.type for t in loaded] == [TaskType.EXTRACT, TaskType.WAIT]
        assert loaded[0].id != loaded[1].id

    def test_not_a_task_list(self, tmp_path):
        path = tmp_path / "seq.json"
        path.write_text(json.dumps({"name": "x"}))

        with pytest.raises(ValueError):
            load_tasks_file(path)
