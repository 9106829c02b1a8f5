"""
Board - the owned aggregate handle for the live task board.

Every operation that changes the board goes through `_commit`, which persists the
state through the store (when there is one) and then hands it to each render
listener. Imports run the reconciliation engine against the same aggregate.
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from .models import BoardState, EntityKind, LayoutMode, Snapshot
from .ids import create_id
from .recovery import EntityNotFoundError, InvalidValueError
from .reconcile import ImportMode, MergeReport, MatchIndex, import_raw
from .data.io import atomic_write, read_bytes, DATA_JSON
from .version import APP_SCHEMA_VERSION
from .logs import get_logger

log = get_logger("board")

Listener = Callable[[BoardState], None]


def default_state() -> BoardState:
    """The demo board a first run starts from."""
    return BoardState(projects=[
        BoardState.Project(id="p1", name="Demo project", tasks=[
            BoardState.Task(id="t1", title="Prepare project plan", subtasks=[
                BoardState.Subtask(id="s1", title="Define scope"),
                BoardState.Subtask(id="s2", title="List main milestones"),
            ]),
            BoardState.Task(id="t2", title="Frontend work", subtasks=[
                BoardState.Subtask(id="s3", title="Design header"),
                BoardState.Subtask(id="s4", title="Implement task board UI"),
            ]),
        ]),
    ], current_project_id="p1")


def _clean_label(value: Optional[str], what: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise InvalidValueError(f"{what} must not be blank")
    return cleaned


class Board:
    def __init__(self, state: Optional[BoardState] = None, store=None,
                 listeners: Iterable[Listener] = ()):
        self._state = state if state is not None else BoardState()
        self.store = store
        self.listeners: List[Listener] = list(listeners)

    @classmethod
    def load(cls, store, listeners: Iterable[Listener] = ()) -> 'Board':
        """Open the stored board, seeding and saving the demo board when nothing is stored."""
        state = store.load()
        if state is not None:
            if state.current_project() is None and state.projects:
                state.current_project_id = state.projects[0].id
            return cls(state, store, listeners)

        board = cls(default_state(), store, listeners)
        store.save(board.state)
        return board

    @property
    def state(self) -> BoardState:
        return self._state

    def subscribe(self, listener: Listener) -> None:
        self.listeners.append(listener)

    def _commit(self) -> None:
        if self.store is not None:
            self.store.save(self._state)
        for listener in self.listeners:
            listener(self._state)

    # --- lookups ---

    def get_project(self, ref: str) -> BoardState.Project:
        """Find a project by identifier, falling back to its (case-insensitive) name."""
        project = self._state.find_project(ref)
        if project is None:
            project = MatchIndex(self._state.projects).find_by_name(ref)
        if project is None:
            raise EntityNotFoundError(f"No project {ref!r}")
        return project

    def get_task(self, task_id: str):
        found = self._state.find_task(task_id)
        if found is None:
            raise EntityNotFoundError(f"No task {task_id!r}")
        return found

    def get_subtask(self, subtask_id: str):
        found = self._state.find_subtask(subtask_id)
        if found is None:
            raise EntityNotFoundError(f"No subtask {subtask_id!r}")
        return found

    def current_project(self) -> Optional[BoardState.Project]:
        return self._state.current_project()

    # --- projects ---

    def add_project(self, name: str) -> BoardState.Project:
        project = BoardState.Project(id=create_id(EntityKind.PROJECT), name=_clean_label(name, "Project name"))
        self._state.projects.append(project)
        self._state.current_project_id = project.id
        self._commit()
        return project

    def rename_project(self, ref: str, name: str) -> bool:
        project = self.get_project(ref)
        name = _clean_label(name, "Project name")
        if name == project.name:
            return False
        project.name = name
        self._commit()
        return True

    def select_project(self, ref: str) -> BoardState.Project:
        project = self.get_project(ref)
        self._state.current_project_id = project.id
        self._commit()
        return project

    def clear_project(self, ref: str) -> None:
        """Remove every task inside a project."""
        project = self.get_project(ref)
        project.tasks = []
        self._commit()

    def delete_project(self, ref: str) -> None:
        project = self.get_project(ref)
        self._state.projects = [p for p in self._state.projects if p.id != project.id]
        if not self._state.projects:
            self._state.current_project_id = None
        elif self._state.current_project() is None:
            self._state.current_project_id = self._state.projects[0].id
        self._commit()

    def clear_all(self) -> None:
        self._state.projects = []
        self._state.current_project_id = None
        self._commit()

    # --- tasks ---

    def add_task(self, project_ref: Optional[str], title: str) -> BoardState.Task:
        """Append a task to a project, or to the current project when no reference is given."""
        project = self.get_project(project_ref) if project_ref else self.current_project()
        if project is None:
            raise EntityNotFoundError("No project selected")
        task = BoardState.Task(id=create_id(EntityKind.TASK), title=_clean_label(title, "Task title"))
        project.tasks.append(task)
        self._commit()
        return task

    def rename_task(self, task_id: str, title: str) -> bool:
        _, task = self.get_task(task_id)
        title = _clean_label(title, "Task title")
        if title == task.title:
            return False
        task.title = title
        self._commit()
        return True

    def clear_task(self, task_id: str) -> None:
        """Remove every subtask inside a task."""
        _, task = self.get_task(task_id)
        task.subtasks = []
        self._commit()

    def delete_task(self, task_id: str) -> None:
        project, _ = self.get_task(task_id)
        project.tasks = [t for t in project.tasks if t.id != task_id]
        self._commit()

    # --- subtasks ---

    def add_subtask(self, task_id: str, title: str) -> BoardState.Subtask:
        _, task = self.get_task(task_id)
        subtask = BoardState.Subtask(id=create_id(EntityKind.SUBTASK), title=_clean_label(title, "Subtask title"))
        task.subtasks.append(subtask)
        self._commit()
        return subtask

    def rename_subtask(self, subtask_id: str, title: str) -> bool:
        _, subtask = self.get_subtask(subtask_id)
        title = _clean_label(title, "Subtask title")
        if title == subtask.title:
            return False
        subtask.title = title
        self._commit()
        return True

    def set_subtask_done(self, subtask_id: str, done: bool) -> BoardState.Subtask:
        _, subtask = self.get_subtask(subtask_id)
        subtask.done = bool(done)
        self._commit()
        return subtask

    def toggle_subtask(self, subtask_id: str) -> BoardState.Subtask:
        _, subtask = self.get_subtask(subtask_id)
        return self.set_subtask_done(subtask_id, not subtask.done)

    def delete_subtask(self, subtask_id: str) -> None:
        task, _ = self.get_subtask(subtask_id)
        task.subtasks = [s for s in task.subtasks if s.id != subtask_id]
        self._commit()

    # --- layout ---

    def set_layout(self, mode: Union[LayoutMode, str]) -> LayoutMode:
        self._state.layout_mode = LayoutMode(mode)
        self._commit()
        return self._state.layout_mode

    def toggle_layout(self) -> LayoutMode:
        if self._state.layout_mode == LayoutMode.LIST:
            return self.set_layout(LayoutMode.GRID)
        return self.set_layout(LayoutMode.LIST)

    # --- import / export ---

    def export_snapshot(self) -> dict:
        """Build the export document for the current board."""
        snapshot = Snapshot(
            schema_version=APP_SCHEMA_VERSION,
            exported_at=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            projects=self._state.projects,
            layout_mode=self._state.layout_mode,
        )
        return snapshot.to_dict()

    def export_to_file(self, path: Union[Path, str, None] = None) -> Path:
        """Write the export document as JSON; defaults to tasks-board-<date>.json in the working directory."""
        if path is None:
            path = Path.cwd() / f"tasks-board-{datetime.now().strftime('%Y-%m-%d')}.json"
        path = Path(path)
        atomic_write(DATA_JSON, path, self.export_snapshot(), create_dirs=True)
        log.info(f"Exported {len(self._state.projects)} project(s) to {path}")
        return path

    def import_data(self, raw: Union[bytes, str], mode: Union[ImportMode, str] = ImportMode.MERGE,
                    source: Optional[str] = None) -> MergeReport:
        """Reconcile raw export bytes into the board; on failure the board is unchanged."""
        report = import_raw(self._state, raw, mode, source=source)
        self._commit()
        return report

    def import_file(self, path: Union[Path, str], mode: Union[ImportMode, str] = ImportMode.MERGE) -> MergeReport:
        return self.import_data(read_bytes(path), mode, source=str(path))
