from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum
from typing import Optional, List, Dict, Any, Iterator, Tuple
import json
import yaml

from .version import APP_SCHEMA_VERSION

class EntityKind(Enum):
    """Entity kinds; the value doubles as the identifier prefix tag."""
    PROJECT = "p"
    TASK = "t"
    SUBTASK = "s"

class LayoutMode(Enum):
    LIST = "list"
    GRID = "grid"

PLACEHOLDER_NAMES = {
    EntityKind.PROJECT: "Untitled project",
    EntityKind.TASK: "Untitled task",
    EntityKind.SUBTASK: "Untitled subtask",
}

def _require_id(v):
    if not isinstance(v, str) or not v:
        raise ValueError("Identifier must be a non-empty string")
    return v

def _require_label(v):
    if not isinstance(v, str) or not v.strip():
        raise ValueError("Name must not be blank")
    return v.strip()

class BaseDataModel(BaseModel):
    """Shared config and (de)serialization helpers for stored documents."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False, indent=2, allow_unicode=True)

    @classmethod
    def from_yaml(cls, text: str):
        return cls.model_validate(yaml.safe_load(text) or {})

class BoardState(BaseDataModel):
    """The full live board: every project, its tasks and their subtasks."""

    projects: List['BoardState.Project'] = Field(
        default_factory=list,
        description="Projects in user-controlled order"
    )
    layout_mode: LayoutMode = Field(
        default=LayoutMode.LIST,
        alias="layoutMode",
        description="How the board is displayed"
    )
    current_project_id: Optional[str] = Field(
        default=None,
        alias="currentProjectId",
        description="Identifier of the selected project, null when none is selected"
    )

    def find_project(self, project_id: str) -> Optional['BoardState.Project']:
        """Find a project by identifier."""
        return next((p for p in self.projects if p.id == project_id), None)

    def find_task(self, task_id: str) -> Optional[Tuple['BoardState.Project', 'BoardState.Task']]:
        """Find a task and its owning project by task identifier."""
        for project in self.projects:
            task = project.find_task(task_id)
            if task:
                return project, task
        return None

    def find_subtask(self, subtask_id: str) -> Optional[Tuple['BoardState.Task', 'BoardState.Subtask']]:
        """Find a subtask and its owning task by subtask identifier."""
        for project in self.projects:
            for task in project.tasks:
                subtask = task.find_subtask(subtask_id)
                if subtask:
                    return task, subtask
        return None

    def current_project(self) -> Optional['BoardState.Project']:
        if self.current_project_id is None:
            return None
        return self.find_project(self.current_project_id)

    def iter_tasks(self) -> Iterator['BoardState.Task']:
        for project in self.projects:
            yield from project.tasks

    def iter_subtasks(self) -> Iterator['BoardState.Subtask']:
        for task in self.iter_tasks():
            yield from task.subtasks

    def progress(self) -> Tuple[int, int]:
        """Return (done, total) subtask counts over all projects."""
        subtasks = list(self.iter_subtasks())
        return sum(1 for s in subtasks if s.done), len(subtasks)

    class Subtask(BaseDataModel):
        id: str = Field(description="Identifier, unique among subtasks of the whole board")
        title: str = Field(description="The human readable title of the subtask")
        done: bool = Field(default=False, description="Whether the subtask is completed")

        @field_validator('id')
        @classmethod
        def validate_id(cls, v):
            return _require_id(v)

        @field_validator('title')
        @classmethod
        def validate_title(cls, v):
            return _require_label(v)

        @property
        def label(self) -> str:
            return self.title

    class Task(BaseDataModel):
        id: str = Field(description="Identifier, unique among tasks of the whole board")
        title: str = Field(description="The human readable title of the task")
        subtasks: List['BoardState.Subtask'] = Field(
            default_factory=list,
            description="Ordered list of task sub-tasks"
        )

        @field_validator('id')
        @classmethod
        def validate_id(cls, v):
            return _require_id(v)

        @field_validator('title')
        @classmethod
        def validate_title(cls, v):
            return _require_label(v)

        @property
        def label(self) -> str:
            return self.title

        def find_subtask(self, subtask_id: str) -> Optional['BoardState.Subtask']:
            """Find a subtask by identifier."""
            return next((s for s in self.subtasks if s.id == subtask_id), None)

        def progress(self) -> Tuple[int, int]:
            return sum(1 for s in self.subtasks if s.done), len(self.subtasks)

    class Project(BaseDataModel):
        id: str = Field(description="Identifier, unique among projects")
        name: str = Field(description="The display name of the project")
        tasks: List['BoardState.Task'] = Field(
            default_factory=list,
            description="Ordered list of project tasks"
        )

        @field_validator('id')
        @classmethod
        def validate_id(cls, v):
            return _require_id(v)

        @field_validator('name')
        @classmethod
        def validate_name(cls, v):
            return _require_label(v)

        @property
        def label(self) -> str:
            return self.name

        def find_task(self, task_id: str) -> Optional['BoardState.Task']:
            """Find a task by identifier."""
            return next((t for t in self.tasks if t.id == task_id), None)

        def progress(self) -> Tuple[int, int]:
            """Return (done, total) subtask counts for this project."""
            done = total = 0
            for task in self.tasks:
                task_done, task_total = task.progress()
                done += task_done
                total += task_total
            return done, total

BoardState.model_rebuild()
BoardState.Project.model_rebuild()
BoardState.Task.model_rebuild()

class Snapshot(BaseDataModel):
    """A normalized import document, ready for reconciliation."""

    schema_version: int = Field(
        default=APP_SCHEMA_VERSION,
        alias="schemaVersion",
        description="Export format version"
    )
    exported_at: Optional[str] = Field(
        default=None,
        alias="exportedAt",
        description="When the snapshot was exported; informational only"
    )
    projects: List[BoardState.Project] = Field(
        default_factory=list,
        description="Projects carried by the snapshot"
    )
    layout_mode: LayoutMode = Field(
        default=LayoutMode.LIST,
        alias="layoutMode",
        description="Layout mode carried by the snapshot"
    )
