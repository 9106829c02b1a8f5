"""
Command Line Interface for Mini Task Manager.
"""

import functools
import sys
from pathlib import Path

import click

from .version import VERSION
from .data import DataCore
from .models import LayoutMode
from .reconcile import ImportMode
from .recovery import MiniTMError, SnapshotFormatError, SnapshotParseError
from .render import echo_board


def _fail(message: str):
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


def handle_errors(func):
    """Report minitm failures as a one-line message and a non-zero exit status."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SnapshotFormatError as e:
            _fail(f"Invalid file format. {e}")
        except SnapshotParseError:
            _fail("Failed to read file. Make sure it is a valid JSON export.")
        except (MiniTMError, FileNotFoundError) as e:
            _fail(str(e))
    return wrapper


def _board(ctx, render: bool = True):
    listeners = [echo_board] if render else []
    return DataCore.get_board(ctx.obj["data_dir"], listeners)


@click.group()
@click.version_option(version=VERSION, prog_name="mtm")
@click.option('--data-dir', type=click.Path(file_okay=False, path_type=Path), default=None,
              help='Directory holding board.yml (default: $MINITM_DATA_DIR or ~/.local/share/minitm/data)')
@click.pass_context
def main(ctx, data_dir):
    """
    Mini Task Manager - a local task board of projects, tasks and subtasks.
    """
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir


@main.command()
@click.pass_context
@handle_errors
def show(ctx):
    """Show the board."""
    board = _board(ctx, render=False)
    echo_board(board.state)


@main.command('clear-all')
@click.confirmation_option(prompt='This will remove all projects, tasks and subtasks. Continue?')
@click.pass_context
@handle_errors
def clear_all(ctx):
    """Remove every project."""
    _board(ctx).clear_all()


@main.command()
@click.argument('mode', required=False, type=click.Choice([m.value for m in LayoutMode]))
@click.pass_context
@handle_errors
def layout(ctx, mode):
    """Switch the layout (toggles when MODE is omitted)."""
    board = _board(ctx)
    if mode:
        board.set_layout(mode)
    else:
        board.toggle_layout()


# --- projects ---

@main.group()
def project():
    """Manage projects."""
    pass


@project.command('add')
@click.argument('name')
@click.pass_context
@handle_errors
def project_add(ctx, name):
    """Create a project and select it."""
    created = _board(ctx).add_project(name)
    click.echo(f"✅ Created project {created.id}")


@project.command('rename')
@click.argument('ref')
@click.argument('name')
@click.pass_context
@handle_errors
def project_rename(ctx, ref, name):
    """Rename a project (REF is an identifier or a name)."""
    if not _board(ctx).rename_project(ref, name):
        click.echo("📋 Name unchanged")


@project.command('select')
@click.argument('ref')
@click.pass_context
@handle_errors
def project_select(ctx, ref):
    """Make a project the current one."""
    _board(ctx).select_project(ref)


@project.command('clear')
@click.argument('ref')
@click.confirmation_option(prompt='Remove all tasks inside this project?')
@click.pass_context
@handle_errors
def project_clear(ctx, ref):
    """Remove all tasks inside a project."""
    _board(ctx).clear_project(ref)


@project.command('delete')
@click.argument('ref')
@click.confirmation_option(prompt='Delete this project and everything inside it?')
@click.pass_context
@handle_errors
def project_delete(ctx, ref):
    """Delete a project with its tasks and subtasks."""
    _board(ctx).delete_project(ref)


# --- tasks ---

@main.group()
def task():
    """Manage tasks."""
    pass


@task.command('add')
@click.option('-p', '--project', 'project_ref', help='Project identifier or name (default: current project)')
@click.argument('title')
@click.pass_context
@handle_errors
def task_add(ctx, project_ref, title):
    """Append a task to a project."""
    created = _board(ctx).add_task(project_ref, title)
    click.echo(f"✅ Created task {created.id}")


@task.command('rename')
@click.argument('task_id')
@click.argument('title')
@click.pass_context
@handle_errors
def task_rename(ctx, task_id, title):
    """Change a task's title."""
    if not _board(ctx).rename_task(task_id, title):
        click.echo("📋 Title unchanged")


@task.command('clear')
@click.argument('task_id')
@click.confirmation_option(prompt='Remove all subtasks inside this task?')
@click.pass_context
@handle_errors
def task_clear(ctx, task_id):
    """Remove all subtasks inside a task."""
    _board(ctx).clear_task(task_id)


@task.command('delete')
@click.argument('task_id')
@click.confirmation_option(prompt='Delete this task and all its subtasks?')
@click.pass_context
@handle_errors
def task_delete(ctx, task_id):
    """Delete a task with its subtasks."""
    _board(ctx).delete_task(task_id)


# --- subtasks ---

@main.group()
def subtask():
    """Manage subtasks."""
    pass


@subtask.command('add')
@click.argument('task_id')
@click.argument('title')
@click.pass_context
@handle_errors
def subtask_add(ctx, task_id, title):
    """Append a subtask to a task."""
    created = _board(ctx).add_subtask(task_id, title)
    click.echo(f"✅ Created subtask {created.id}")


@subtask.command('rename')
@click.argument('subtask_id')
@click.argument('title')
@click.pass_context
@handle_errors
def subtask_rename(ctx, subtask_id, title):
    """Change a subtask's title."""
    if not _board(ctx).rename_subtask(subtask_id, title):
        click.echo("📋 Title unchanged")


@subtask.command('toggle')
@click.argument('subtask_id')
@click.pass_context
@handle_errors
def subtask_toggle(ctx, subtask_id):
    """Flip a subtask between done and not done."""
    _board(ctx).toggle_subtask(subtask_id)


@subtask.command('delete')
@click.argument('subtask_id')
@click.confirmation_option(prompt='Delete this subtask?')
@click.pass_context
@handle_errors
def subtask_delete(ctx, subtask_id):
    """Delete a subtask."""
    _board(ctx).delete_subtask(subtask_id)


# --- import / export ---

@main.command('export')
@click.argument('path', required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
@handle_errors
def export_cmd(ctx, path):
    """Export the board as a JSON snapshot."""
    written = _board(ctx, render=False).export_to_file(path)
    click.echo(f"✅ Exported board to {written}")


@main.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--mode', type=click.Choice([m.value for m in ImportMode]), default=ImportMode.MERGE.value,
              show_default=True, help='merge: add to your current data; replace: delete current data')
@click.option('--backup/--no-backup', default=True, help='Back up the board before importing')
@click.pass_context
@handle_errors
def import_cmd(ctx, path, mode, backup):
    """Import a JSON snapshot into the board."""
    board = _board(ctx)
    if backup and board.store.exists():
        backup_path = DataCore.get_backup_manager(ctx.obj["data_dir"]).create_backup("pre_import")
        click.echo(f"📦 Backup created: {backup_path.name}")

    report = board.import_file(path, mode)
    click.echo(f"✅ Imported {path.name} ({report.summary()})")


# --- backups ---

@main.group()
def backup():
    """Backup and recovery commands."""
    pass


@backup.command('create')
@click.option('--name', help='Custom name for the backup')
@click.pass_context
@handle_errors
def backup_create(ctx, name):
    """Create a backup of the board."""
    _board(ctx, render=False)
    backup_path = DataCore.get_backup_manager(ctx.obj["data_dir"]).create_backup(name)
    click.echo(f"✅ Backup created: {backup_path}")


@backup.command('list')
@click.pass_context
@handle_errors
def backup_list(ctx):
    """List all available backups."""
    backups = DataCore.get_backup_manager(ctx.obj["data_dir"]).list_backups()

    if not backups:
        click.echo("📭 No backups found")
        return

    click.echo("📦 Available backups:")
    click.echo("")
    for entry in backups:
        click.echo(f"🗂️  {entry['backup_id']}")
        click.echo(f"   📅 Created: {entry['created_at']}")
        if entry.get('custom_name'):
            click.echo(f"   🏷️  Name: {entry['custom_name']}")
        if entry.get('status'):
            click.echo(f"   ⚠️  Status: {entry['status']}")
        click.echo("")


@backup.command('restore')
@click.argument('backup_id')
@click.confirmation_option(prompt='Are you sure you want to restore from backup?')
@click.pass_context
@handle_errors
def backup_restore(ctx, backup_id):
    """Restore the board from a backup."""
    DataCore.get_backup_manager(ctx.obj["data_dir"]).restore_backup(backup_id)
    click.echo("✅ Backup restored successfully")
    click.echo("💡 A backup of your previous state was created as 'pre_restore_<id>'")


@backup.command('cleanup')
@click.option('--keep', default=10, show_default=True, help='Number of backups to keep')
@click.confirmation_option(prompt='Are you sure you want to cleanup old backups?')
@click.pass_context
@handle_errors
def backup_cleanup(ctx, keep):
    """Remove old backups, keeping only the most recent ones."""
    removed_count = DataCore.get_backup_manager(ctx.obj["data_dir"]).cleanup_old_backups(keep)
    if removed_count > 0:
        click.echo(f"✅ Removed {removed_count} old backup(s)")
    else:
        click.echo("📦 No backups needed to be removed")


if __name__ == "__main__":
    main()
