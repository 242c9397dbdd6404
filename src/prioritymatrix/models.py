"""Pydantic models for the priority matrix: configuration, vault items and results."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from prioritymatrix.engine.fields import extract_property_value, extract_tag_label

SortMode = Literal["priority", "date", "name"]
FilterMode = Literal["all", "overdue", "today", "week", "completed", "pending"]
ItemType = Literal["all", "notes", "tasks"]


class CamelModel(BaseModel):
    """Base for models persisted in the camelCase configuration document."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Configuration ---


class Position(CamelModel):
    row: int = Field(default=0, ge=0)
    col: int = Field(default=0, ge=0)


class PropertyRule(CamelModel):
    """Matches notes whose frontmatter property equals a value."""

    enabled: bool = True
    property_name: str = ""
    property_value: str = ""


class TaskRule(CamelModel):
    """Matches tasks carrying a tag."""

    enabled: bool = True
    tag_name: str = ""


class Section(CamelModel):
    """A matrix category (quadrant) with its matching rules."""

    title: str
    subtitle: str = ""
    description: str = ""
    color: str = "#747d8c"
    position: Position = Field(default_factory=Position)
    property_rules: PropertyRule = Field(default_factory=PropertyRule)
    task_rules: TaskRule = Field(default_factory=TaskRule)


class DisplaySettings(CamelModel):
    show_tasks: bool = True
    show_notes: bool = True
    show_completed: bool = True
    sort_by: SortMode = "priority"
    filter_by: FilterMode = "all"
    max_items_per_section: int = Field(default=10, ge=0)
    search_query: str = ""


class SchedulingSettings(CamelModel):
    date_property_name: str = "due_date"
    recurring_property_name: str = "recurring"
    enable_scheduling: bool = True
    enable_recurring: bool = True


class MatrixConfig(CamelModel):
    """The persisted matrix configuration."""

    sections: dict[str, Section]
    display: DisplaySettings = Field(default_factory=DisplaySettings)
    scheduling: SchedulingSettings = Field(default_factory=SchedulingSettings)
    excluded_folders: list[str] = Field(default_factory=lambda: ["templates", "archive", ".obsidian"])

    @field_validator("sections")
    @classmethod
    def _require_a_section(cls, value: dict[str, Section]) -> dict[str, Section]:
        if not value:
            raise ValueError("at least one section is required")
        return value

    def known_tags(self) -> list[str]:
        """Tag names of every enabled task rule."""
        return [
            s.task_rules.tag_name
            for s in self.sections.values()
            if s.task_rules.enabled and s.task_rules.tag_name
        ]

    def rule_properties(self) -> list[str]:
        """Property names of every enabled property rule."""
        names: list[str] = []
        for s in self.sections.values():
            name = s.property_rules.property_name
            if s.property_rules.enabled and name and name not in names:
                names.append(name)
        return names


# --- Vault items ---


class Note(BaseModel):
    """A parsed note from the vault."""

    path: str
    title: str
    content: str = ""
    frontmatter: dict[str, Any] = Field(default_factory=dict)

    @field_validator("frontmatter", mode="before")
    @classmethod
    def _unwrap_values(cls, value: Any) -> dict[str, Any]:
        if not value:
            return {}
        return {str(k): extract_property_value(v) for k, v in dict(value).items()}


class Task(BaseModel):
    """A checkbox task line from a vault file."""

    file: str
    line: int  # 0-based line index in the file
    text: str
    tags: list[str] = Field(default_factory=list)
    completed: bool = False
    completed_date: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _unwrap_tags(cls, value: Any) -> list[str]:
        if not value:
            return []
        labels = [extract_tag_label(t) for t in value]
        return [label for label in labels if label]

    @property
    def key(self) -> str:
        return f"{self.file}-{self.line}"


# --- Engine results ---


class ClassifiedSection(BaseModel):
    """Notes and tasks matched into one section after filtering and capping."""

    key: str
    section: Section
    notes: list[Note] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)


class UnassignedItems(BaseModel):
    notes: list[Note] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)


class SectionStats(BaseModel):
    total: int = 0
    notes: int = 0
    tasks: int = 0
    completed: int = 0
    overdue: int = 0
    today: int = 0
    week: int = 0
    unscheduled: int = 0
    recurring: int = 0
    completion_rate: int = 0


class StatsSummary(BaseModel):
    """Matrix-wide productivity metrics."""

    total_items: int = 0
    total_notes: int = 0
    total_tasks: int = 0
    completed_tasks: int = 0
    overdue_tasks: int = 0
    today_tasks: int = 0
    week_tasks: int = 0
    unscheduled_items: int = 0
    recurring_items: int = 0
    completion_rate: int = 0
    productivity_score: int = 100
    completed_this_week: int = 0
    avg_daily_completions: float = 0.0
    workload_balance: float = 1.0
    tasks_by_date: list[tuple[str, int]] = Field(default_factory=list)
    quadrant_balance: dict[str, int] = Field(default_factory=dict)
    completed_last_month: int = 0
    momentum: float = 0.0
    urgency_index: int = 0
    focus_score: float = 0.0
    days_to_complete: int | None = None
    activity_heat_map: dict[str, int] = Field(default_factory=dict)
    weekly_pattern: list[int] = Field(default_factory=lambda: [0] * 7)
    quadrant_efficiency: dict[str, int] = Field(default_factory=dict)
    velocity_trend: float = 0.0


class MatrixStats(BaseModel):
    sections: dict[str, SectionStats] = Field(default_factory=dict)
    summary: StatsSummary = Field(default_factory=StatsSummary)


# --- Mutations ---


class MutationResult(BaseModel):
    """Outcome of a single file mutation."""

    ok: bool
    path: str
    error: str | None = None


class ItemRef(BaseModel):
    """Identifies a note (by path) or a task (by file and line)."""

    type: Literal["note", "task"]
    path: str
    line: int | None = None


# --- API request/response bodies ---


class NoteItem(BaseModel):
    path: str
    title: str
    due_date: str = ""
    recurring: str = ""
    overdue: bool = False


class TaskItem(BaseModel):
    key: str
    file: str
    line: int
    text: str
    title: str
    tags: list[str]
    completed: bool
    due_date: str = ""
    overdue: bool = False


class SectionResponse(BaseModel):
    key: str
    title: str
    subtitle: str
    color: str
    position: Position
    notes: list[NoteItem]
    tasks: list[TaskItem]


class UnassignedResponse(BaseModel):
    notes: list[NoteItem]
    tasks: list[TaskItem]


class MoveRequest(BaseModel):
    item: ItemRef
    section: str


class BulkMoveRequest(BaseModel):
    items: list[ItemRef]
    section: str


class BulkMoveResponse(BaseModel):
    moved: int
    failed: list[MutationResult]


class ToggleTaskRequest(BaseModel):
    file: str
    line: int
    completed: bool


class ClearNoteRequest(BaseModel):
    path: str
    property_names: list[str] | None = None  # None = rule, date and recurring properties


class NewSectionRequest(BaseModel):
    name: str
