"""
Tests for task config and page result schemas.
"""

import pytest

from agentic_sequencer.errors import PageScriptError, TaskConfigError
from agentic_sequencer.task_schemas import (
    ClickResult,
    LoopConfig,
    TaskType,
    TypeResult,
    parse_task_config,
    validate_extracted_items,
    validate_page_result,
)


class TestTaskType:

    def test_parse_known(self):
        assert TaskType.parse("scroll") == TaskType.SCROLL

    def test_parse_legacy_extract(self):
        assert TaskType.parse("extract-dom") == TaskType.EXTRACT

    def test_parse_unknown(self):
        with pytest.raises(TaskConfigError):
            TaskType.parse("hover")


class TestParseTaskConfig:

    def test_camel_case_keys(self):
        cfg = parse_task_config(TaskType.TYPE, {"typeText": "hi", "targetField": "email"})
        assert cfg.type_text == "hi"
        assert cfg.target_field == "email"

    def test_blank_strings_mean_unset(self):
        cfg = parse_task_config(TaskType.CLICK, {"clickSelector": "  "})
        assert cfg.click_selector is None

    def test_unknown_keys_ignored(self):
        cfg = parse_task_config(TaskType.SEARCH, {"searchQuery": "x", "color": "red"})
        assert cfg.search_query == "x"

    def test_none_config(self):
        assert parse_task_config(TaskType.ENTER, None) is not None

    def test_invalid_value(self):
        with pytest.raises(TaskConfigError, match="Invalid scroll config"):
            parse_task_config(TaskType.SCROLL, {"scrollAmount": "far"})

    @pytest.mark.parametrize("raw,expected", [
        (None, 1),
        ("3", 3),
        (0, 1),
        (-2, 1),
        ("many", 1),
    ])
    def test_loop_count_is_lenient(self, raw, expected):
        assert LoopConfig.model_validate({"loopCount": raw}).loop_count == expected

    def test_loop_count_missing(self):
        assert parse_task_config(TaskType.LOOP, {}).loop_count == 1


class TestPageResults:

    def test_click_result(self):
        result = validate_page_result(ClickResult, {"success": True, "element": "A", "url": None})
        assert result.element == "A"

    def test_type_result_aliases(self):
        result = validate_page_result(TypeResult, {"inputType": "INPUT", "inputName": "q"})
        assert result.input_type == "INPUT"
        assert result.input_name == "q"

    def test_bad_shape(self):
        with pytest.raises(PageScriptError):
            validate_page_result(TypeResult, None)

    def test_extracted_items(self):
        items = validate_extracted_items([
            {"title": "Home", "url": "https://example.com/", "type": "link"},
            {"title": "Intro", "type": "heading"},
        ])
        assert [i.type for i in items] == ["link", "heading"]
        assert items[1].url is None

    def test_extracted_items_not_a_list(self):
        with pytest.raises(PageScriptError):
            validate_extracted_items({"title": "x"})

    def test_extracted_item_bad_type(self):
        with pytest.raises(PageScriptError):
            validate_extracted_items([{"title": "x", "type": "image"}])
