"""
Typed task schemas for Agentic Sequencer.

Provides Pydantic models for every task type's config and for the results
returned by injected page scripts. Task configs stay open camelCase dicts on
the Task itself (that is what the builder edits and what gets persisted);
they are parsed into the variant for their type only when the task runs.
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import PageScriptError, TaskConfigError


# =============================================================================
# Enums and Base Types
# =============================================================================

class TaskType(str, Enum):
    """Kind of automation step."""
    SEARCH = "search"
    FIND = "find"
    CLICK = "click"
    EXTRACT = "extract"
    TYPE = "type"
    ENTER = "enter"
    SCROLL = "scroll"
    WAIT = "wait"
    LOOP = "loop"

    @classmethod
    def parse(cls, value: str) -> "TaskType":
        """Parse a task type name, accepting the legacy 'extract-dom' name."""
        if isinstance(value, TaskType):
            return value
        if value == "extract-dom":
            return cls.EXTRACT
        try:
            return cls(value)
        except ValueError:
            raise TaskConfigError(f"Unknown task type: {value}") from None


class TaskStatus(str, Enum):
    """Lifecycle state of a task within a run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StopFindAction(str, Enum):
    """What to do with the current selection when stopping find-in-page."""
    CLEAR_SELECTION = "clearSelection"
    KEEP_SELECTION = "keepSelection"
    ACTIVATE_SELECTION = "activateSelection"


class _TaskConfig(BaseModel):
    """Base for per-type task configs."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        # The builder leaves cleared inputs as empty strings
        if isinstance(v, str) and not v.strip():
            return None
        return v


# =============================================================================
# Task Config Schemas
# =============================================================================

class SearchConfig(_TaskConfig):
    """Config for a search task."""

    search_query: Optional[str] = Field(default=None, alias="searchQuery")


class FindConfig(_TaskConfig):
    """Config for a find task. `selector` is accepted as a fallback for text."""

    text: Optional[str] = None
    selector: Optional[str] = None


class ClickConfig(_TaskConfig):
    """Config for a click task."""

    click_selector: Optional[str] = Field(default=None, alias="clickSelector")


class ExtractConfig(_TaskConfig):
    """Config for an extract task (no options)."""


class TypeConfig(_TaskConfig):
    """Config for a type task."""

    type_text: Optional[str] = Field(default=None, alias="typeText")
    target_field: Optional[str] = Field(
        default=None,
        alias="targetField",
        description="Field hint such as 'username', 'email' or 'password'",
    )


class EnterConfig(_TaskConfig):
    """Config for an enter task (no options)."""


class ScrollConfig(_TaskConfig):
    """Config for a scroll task. Positive scrolls down, negative up."""

    scroll_amount: Optional[int] = Field(default=None, alias="scrollAmount")


class WaitConfig(_TaskConfig):
    """Config for a wait task."""

    wait_time: Optional[int] = Field(default=None, ge=0, alias="waitTime")


class LoopConfig(_TaskConfig):
    """Config for a trailing loop task."""

    loop_count: int = Field(default=1, alias="loopCount")

    @field_validator("loop_count", mode="before")
    @classmethod
    def lenient_count(cls, v: Any) -> int:
        """Absent, non-numeric and non-positive counts all mean 1."""
        try:
            count = int(v)
        except (TypeError, ValueError):
            return 1
        return count if count >= 1 else 1


TASK_CONFIG_SCHEMAS: dict[TaskType, type[_TaskConfig]] = {
    TaskType.SEARCH: SearchConfig,
    TaskType.FIND: FindConfig,
    TaskType.CLICK: ClickConfig,
    TaskType.EXTRACT: ExtractConfig,
    TaskType.TYPE: TypeConfig,
    TaskType.ENTER: EnterConfig,
    TaskType.SCROLL: ScrollConfig,
    TaskType.WAIT: WaitConfig,
    TaskType.LOOP: LoopConfig,
}


def parse_task_config(task_type: TaskType, config: dict[str, Any]) -> _TaskConfig:
    """Parse a raw config dict into the typed variant for its task type.

    Args:
        task_type: Type of the task owning the config
        config: Raw camelCase config dict

    Returns:
        Validated config model

    Raises:
        TaskConfigError: If a field has an invalid value
    """
    schema = TASK_CONFIG_SCHEMAS[task_type]
    try:
        return schema.model_validate(config or {})
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise TaskConfigError(f"Invalid {task_type.value} config ({fields})") from e


# =============================================================================
# Page Result Schemas
# =============================================================================

class _PageResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class FindResult(_PageResult):
    """Result of locating and scrolling to a text match."""

    found: bool
    scrolled: bool = False


class ClickResult(_PageResult):
    """Result of clicking an element."""

    success: bool = True
    element: Optional[str] = None
    text: Optional[str] = None
    url: Optional[str] = None
    selector: Optional[str] = None


class TypeResult(_PageResult):
    """Result of typing into an input."""

    success: bool = True
    input_type: str = Field(alias="inputType")
    input_name: str = Field(default="unknown", alias="inputName")


class EnterResult(_PageResult):
    """Result of pressing Enter."""

    success: bool = True
    element: str


class ScrollResult(_PageResult):
    """Result of an animated scroll."""

    scrolled: float
    final_y: float = Field(default=0, alias="finalY")


class ExtractedItem(_PageResult):
    """A link or heading pulled from the page."""

    title: str
    url: Optional[str] = None
    type: Literal["link", "heading"]


def validate_page_result(schema: type[_PageResult], raw: Any) -> Any:
    """Validate a page script result against its schema.

    Raises:
        PageScriptError: If the result does not have the expected shape
    """
    try:
        return schema.model_validate(raw)
    except ValidationError as e:
        raise PageScriptError(
            f"Unexpected {schema.__name__} from page: {raw!r}"
        ) from e


def validate_extracted_items(raw: Any) -> list[ExtractedItem]:
    """Validate the list returned by the extraction script."""
    if not isinstance(raw, list):
        raise PageScriptError(f"Unexpected extraction result from page: {raw!r}")
    return [validate_page_result(ExtractedItem, item) for item in raw]
