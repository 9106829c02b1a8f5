"""
Snapshot Normalizer - turns an arbitrary decoded document into a well-formed Snapshot.

The envelope (a record carrying a `projects` sequence) is checked with jsonschema;
everything below it is coerced field by field rather than rejected, so one bad
element never aborts a whole import.
"""
import json
from typing import Any, Dict, List, Optional, Union

from jsonschema import Draft7Validator

from minitm.ids import create_id
from minitm.logs import get_logger
from minitm.models import BoardState, EntityKind, LayoutMode, Snapshot, PLACEHOLDER_NAMES
from minitm.recovery import SnapshotFormatError, SnapshotParseError
from minitm.version import APP_SCHEMA_VERSION

log = get_logger("reconcile.normalize")

SNAPSHOT_ENVELOPE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "minitm board snapshot",
    "type": "object",
    "required": ["projects"],
    "properties": {
        "schemaVersion": {"type": "integer", "minimum": 1, "maximum": APP_SCHEMA_VERSION},
        "exportedAt": {},
        "layoutMode": {},
        "projects": {"type": "array"},
    },
}

_envelope_validator = Draft7Validator(SNAPSHOT_ENVELOPE_SCHEMA)


def _check_envelope(document: Any) -> None:
    errors = sorted(_envelope_validator.iter_errors(document), key=lambda e: list(e.path))
    if not errors:
        return
    error = errors[0]
    location = "/".join(str(p) for p in error.path) or "<document>"
    if error.path and error.path[0] == "schemaVersion":
        message = f"Unsupported snapshot schema version {document.get('schemaVersion')!r} (supported: 1..{APP_SCHEMA_VERSION})"
    else:
        message = f"Invalid snapshot at {location}: {error.message}"
    log.warning(message)
    raise SnapshotFormatError(message)


def _identifier(value: Any, kind: EntityKind) -> str:
    if isinstance(value, str) and value:
        return value
    return create_id(kind)


def _label(value: Any, kind: EntityKind) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return PLACEHOLDER_NAMES[kind]


def _records(value: Any, what: str) -> List[Dict[str, Any]]:
    """Keep the record elements of a sequence, skipping null and non-record entries."""
    if not isinstance(value, list):
        return []
    records = []
    for index, item in enumerate(value):
        if item is None:
            continue
        if not isinstance(item, dict):
            log.warning(f"Skipping {what} #{index}: expected a record, got {type(item).__name__}")
            continue
        records.append(item)
    return records


def _layout(value: Any) -> LayoutMode:
    try:
        return LayoutMode(value)
    except (ValueError, TypeError):
        return LayoutMode.LIST


def normalize_subtask(raw: Dict[str, Any]) -> BoardState.Subtask:
    done = raw.get("done")
    return BoardState.Subtask(
        id=_identifier(raw.get("id"), EntityKind.SUBTASK),
        title=_label(raw.get("title"), EntityKind.SUBTASK),
        done=done if isinstance(done, bool) else False,
    )


def normalize_task(raw: Dict[str, Any]) -> BoardState.Task:
    return BoardState.Task(
        id=_identifier(raw.get("id"), EntityKind.TASK),
        title=_label(raw.get("title"), EntityKind.TASK),
        subtasks=[normalize_subtask(s) for s in _records(raw.get("subtasks"), "subtask")],
    )


def normalize_project(raw: Dict[str, Any]) -> BoardState.Project:
    return BoardState.Project(
        id=_identifier(raw.get("id"), EntityKind.PROJECT),
        name=_label(raw.get("name"), EntityKind.PROJECT),
        tasks=[normalize_task(t) for t in _records(raw.get("tasks"), "task")],
    )


def normalize_snapshot(document: Any) -> Snapshot:
    """
    Validate and coerce a decoded import document.

    Args:
        document: Whatever the JSON decoder produced.

    Returns:
        A Snapshot whose every entity satisfies the board invariants.

    Raises:
        SnapshotFormatError: The document is not a record, has no `projects`
            sequence, or declares a schema version this release cannot read.
    """
    _check_envelope(document)

    exported_at = document.get("exportedAt")
    snapshot = Snapshot(
        schema_version=document.get("schemaVersion", APP_SCHEMA_VERSION),
        exported_at=exported_at if isinstance(exported_at, str) else None,
        projects=[normalize_project(p) for p in _records(document["projects"], "project")],
        layout_mode=_layout(document.get("layoutMode")),
    )
    log.debug(f"Normalized snapshot with {len(snapshot.projects)} project(s)")
    return snapshot


def parse_snapshot(raw: Union[bytes, str], source: Optional[str] = None) -> Snapshot:
    """Decode JSON import bytes and normalize them."""
    where = f" from {source}" if source else ""
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8-sig")
        document = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        log.error(f"Could not parse snapshot{where}: {e}")
        raise SnapshotParseError(f"Snapshot{where} is not valid JSON: {e}") from e
    return normalize_snapshot(document)
