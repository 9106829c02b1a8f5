"""
Merge Engine - folds a normalized snapshot into the live board.

Merging is a strict union: nothing live is deleted or reordered, unseen entities
are appended after their existing siblings, matched subtasks only ever gain
completion, and matched text fields keep their live value. The walk runs on a
working copy that replaces the live projects only once it has finished, so a
failed import never leaves a half-merged board behind.
"""
from enum import Enum
from typing import List, Union

from pydantic import BaseModel, Field

from minitm.logs import get_logger
from minitm.models import BoardState, EntityKind, Snapshot
from .match import MatchIndex
from .rekey import IdentifierIndex, project_collides, rekey_project

log = get_logger("reconcile.merge")


class ImportMode(Enum):
    MERGE = "merge"
    REPLACE = "replace"


class MergeReport(BaseModel):
    """What an import changed."""

    mode: ImportMode = Field(default=ImportMode.MERGE, description="Strategy used for the import")
    projects_added: int = Field(default=0, description="Incoming projects appended to the board")
    projects_matched: int = Field(default=0, description="Incoming projects merged into a live project")
    projects_rekeyed: int = Field(default=0, description="Incoming projects given a fresh identifier subtree")
    tasks_added: int = Field(default=0, description="Tasks appended, including those of added projects")
    tasks_matched: int = Field(default=0, description="Incoming tasks merged into a live task")
    subtasks_added: int = Field(default=0, description="Subtasks appended, including those of added tasks")
    subtasks_matched: int = Field(default=0, description="Incoming subtasks matched to a live subtask")
    subtasks_completed: int = Field(default=0, description="Live subtasks marked done by the import")
    ids_regenerated: int = Field(default=0, description="Task/subtask identifiers regenerated one at a time")

    @property
    def changed(self) -> bool:
        if self.mode == ImportMode.REPLACE:
            return True
        return bool(self.projects_added or self.tasks_added or self.subtasks_added or self.subtasks_completed)

    def summary(self) -> str:
        return (f"{self.mode.value}: +{self.projects_added} project(s), +{self.tasks_added} task(s), "
                f"+{self.subtasks_added} subtask(s), {self.subtasks_completed} completed, "
                f"{self.projects_rekeyed} rekeyed, {self.ids_regenerated} id(s) regenerated")


def _adopt_task(task: BoardState.Task, index: IdentifierIndex, report: MergeReport) -> None:
    if index.ensure_unique(EntityKind.TASK, task):
        report.ids_regenerated += 1
    for subtask in task.subtasks:
        if index.ensure_unique(EntityKind.SUBTASK, subtask):
            report.ids_regenerated += 1
    report.tasks_added += 1
    report.subtasks_added += len(task.subtasks)


def _adopt_project(project: BoardState.Project, index: IdentifierIndex, report: MergeReport) -> None:
    # A rekeyed project already owns its identifiers, so this only touches duplicates.
    if index.ensure_unique(EntityKind.PROJECT, project):
        report.ids_regenerated += 1
    for task in project.tasks:
        _adopt_task(task, index, report)
    report.projects_added += 1


def _merge_subtasks(target: BoardState.Task, incoming: BoardState.Task,
                    index: IdentifierIndex, report: MergeReport) -> None:
    matcher = MatchIndex(target.subtasks)
    for subtask in incoming.subtasks:
        live = matcher.find(subtask)
        if live is None:
            if index.ensure_unique(EntityKind.SUBTASK, subtask):
                report.ids_regenerated += 1
            target.subtasks.append(subtask)
            matcher.add(subtask)
            report.subtasks_added += 1
            continue

        report.subtasks_matched += 1
        if subtask.done and not live.done:
            live.done = True
            report.subtasks_completed += 1
        if subtask.title != live.title:
            log.debug(f"Keeping live title {live.title!r} over incoming {subtask.title!r} for subtask {live.id}")


def _merge_tasks(target: BoardState.Project, incoming: BoardState.Project,
                 index: IdentifierIndex, report: MergeReport) -> None:
    matcher = MatchIndex(target.tasks)
    for task in incoming.tasks:
        live = matcher.find(task)
        if live is None:
            _adopt_task(task, index, report)
            target.tasks.append(task)
            matcher.add(task)
            continue

        report.tasks_matched += 1
        _merge_subtasks(live, task, index, report)


def merge_snapshot(state: BoardState, snapshot: Snapshot) -> MergeReport:
    """
    Union `snapshot` into `state` in place.

    Args:
        state: The live board; its projects are replaced by the merged result.
        snapshot: A normalized snapshot. It is not modified.

    Returns:
        A MergeReport describing what was added, matched and rekeyed.
    """
    report = MergeReport(mode=ImportMode.MERGE)
    projects: List[BoardState.Project] = [p.model_copy(deep=True) for p in state.projects]
    index = IdentifierIndex.from_projects(projects)
    matcher = MatchIndex(projects)

    for source in snapshot.projects:
        incoming = source.model_copy(deep=True)
        if project_collides(incoming, index):
            incoming = rekey_project(incoming, index)
            report.projects_rekeyed += 1

        target = matcher.find(incoming)
        if target is None:
            _adopt_project(incoming, index, report)
            projects.append(incoming)
            matcher.add(incoming)
            log.debug(f"Added project {incoming.id} ({incoming.name})")
            continue

        report.projects_matched += 1
        log.debug(f"Merging project {incoming.id} ({incoming.name}) into {target.id} ({target.name})")
        _merge_tasks(target, incoming, index, report)

    state.projects = projects
    if state.current_project() is None and state.projects:
        state.current_project_id = state.projects[0].id

    log.info(f"Merged snapshot: {report.summary()}")
    return report


def replace_state(state: BoardState, snapshot: Snapshot) -> MergeReport:
    """Discard the live board and adopt the snapshot, selecting its first project."""
    report = MergeReport(mode=ImportMode.REPLACE)
    projects = [p.model_copy(deep=True) for p in snapshot.projects]
    index = IdentifierIndex()
    for project in projects:
        _adopt_project(project, index, report)

    state.projects = projects
    state.layout_mode = snapshot.layout_mode
    state.current_project_id = projects[0].id if projects else None

    log.info(f"Replaced board: {report.summary()}")
    return report


def import_snapshot(state: BoardState, snapshot: Snapshot,
                    mode: Union[ImportMode, str] = ImportMode.MERGE) -> MergeReport:
    """Apply `snapshot` to `state` with the chosen whole-state strategy."""
    mode = ImportMode(mode)
    if mode == ImportMode.REPLACE:
        return replace_state(state, snapshot)
    return merge_snapshot(state, snapshot)
