"""
Terminal rendering of the board, called after every successful mutation.
"""
from typing import List, Tuple

import click

from .models import BoardState, LayoutMode


def _percent(done: int, total: int) -> int:
    return round(done / total * 100) if total else 0


def _progress_text(progress: Tuple[int, int]) -> str:
    done, total = progress
    return f"{done} / {total} done ({_percent(done, total)}%)"


def _project_lines(project: BoardState.Project, layout: LayoutMode, current: bool) -> List[str]:
    marker = "*" if current else " "
    lines = [f"{marker} {project.name} [{project.id}]  {_progress_text(project.progress())}"]
    if not project.tasks:
        lines.append("    (no tasks)")
    for task in project.tasks:
        if layout == LayoutMode.GRID:
            done, total = task.progress()
            lines.append(f"    ▪ {task.title} [{task.id}]  {done}/{total}")
            continue
        lines.append(f"    {task.title} [{task.id}]")
        for subtask in task.subtasks:
            box = "[x]" if subtask.done else "[ ]"
            lines.append(f"      {box} {subtask.title} [{subtask.id}]")
    return lines


def render_board(state: BoardState) -> str:
    """Format the whole board in its layout mode."""
    lines = [f"Overall progress (all projects): {_progress_text(state.progress())}"]
    if not state.projects:
        lines.append("No projects yet.")
    for project in state.projects:
        lines.append("")
        lines.extend(_project_lines(project, state.layout_mode, project.id == state.current_project_id))
    return "\n".join(lines)


def echo_board(state: BoardState) -> None:
    click.echo(render_board(state))
