"""
Import reconciliation engine.

raw bytes -> parse_snapshot / normalize_snapshot -> Snapshot
          -> merge_snapshot (rekey + union) or replace_state -> mutated BoardState
"""
from typing import Union

from minitm.models import BoardState
from .normalize import normalize_snapshot, parse_snapshot, SNAPSHOT_ENVELOPE_SCHEMA
from .match import normalize_key, MatchIndex, find_match
from .rekey import IdentifierIndex, project_collides, rekey_project
from .merge import ImportMode, MergeReport, merge_snapshot, replace_state, import_snapshot


def import_raw(state: BoardState, raw: Union[bytes, str],
               mode: Union[ImportMode, str] = ImportMode.MERGE,
               source: str = None) -> MergeReport:
    """Parse, normalize and apply import bytes; state is untouched on any failure."""
    snapshot = parse_snapshot(raw, source=source)
    return import_snapshot(state, snapshot, mode)


__all__ = [
    'normalize_snapshot',
    'parse_snapshot',
    'SNAPSHOT_ENVELOPE_SCHEMA',
    'normalize_key',
    'MatchIndex',
    'find_match',
    'IdentifierIndex',
    'project_collides',
    'rekey_project',
    'ImportMode',
    'MergeReport',
    'merge_snapshot',
    'replace_state',
    'import_snapshot',
    'import_raw',
]
