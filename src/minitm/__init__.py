"""
Mini Task Manager - a local task board of Projects → Tasks → Subtasks.

This package provides the board model, storage, and the import reconciliation
engine that merges exported snapshots back into a live board.
"""

from .version import VERSION, APP_SCHEMA_VERSION
from .models import (
    EntityKind,
    LayoutMode,
    BoardState,
    Snapshot,
)
from .ids import create_id
from .reconcile import (
    ImportMode,
    MergeReport,
    normalize_snapshot,
    parse_snapshot,
    merge_snapshot,
    replace_state,
    import_snapshot,
)
from .board import Board
from .data import DataCore

__version__ = VERSION

__all__ = [
    "VERSION",
    "APP_SCHEMA_VERSION",
    "EntityKind",
    "LayoutMode",
    "BoardState",
    "Snapshot",
    "create_id",
    "ImportMode",
    "MergeReport",
    "normalize_snapshot",
    "parse_snapshot",
    "merge_snapshot",
    "replace_state",
    "import_snapshot",
    "Board",
    "DataCore",
]
