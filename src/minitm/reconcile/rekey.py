"""
Rekeying Engine - keeps identifiers unique within their kind across the board.

An IdentifierIndex records which entity owns each identifier, covering the live
state plus everything claimed so far in the current import. A project whose
identifier is owned by a differently named project gets its whole subtree
rekeyed; narrower task and subtask collisions are fixed one entity at a time
by the merge engine through `ensure_unique`.
"""
from typing import Dict, Iterable, Optional

from minitm.ids import create_id
from minitm.logs import get_logger
from minitm.models import BoardState, EntityKind
from .match import normalize_key

log = get_logger("reconcile.rekey")


class IdentifierIndex:
    """Per-kind map of identifier -> owning entity."""

    def __init__(self):
        self._owners: Dict[EntityKind, Dict[str, object]] = {kind: {} for kind in EntityKind}

    @classmethod
    def from_projects(cls, projects: Iterable[BoardState.Project]) -> 'IdentifierIndex':
        index = cls()
        for project in projects:
            index.claim(EntityKind.PROJECT, project)
            for task in project.tasks:
                index.claim(EntityKind.TASK, task)
                for subtask in task.subtasks:
                    index.claim(EntityKind.SUBTASK, subtask)
        return index

    def owner(self, kind: EntityKind, entity_id: str) -> Optional[object]:
        return self._owners[kind].get(entity_id)

    def is_used(self, kind: EntityKind, entity_id: str) -> bool:
        return entity_id in self._owners[kind]

    def claim(self, kind: EntityKind, entity) -> None:
        """Record `entity` as the owner of its identifier unless it is already owned."""
        self._owners[kind].setdefault(entity.id, entity)

    def fresh_id(self, kind: EntityKind) -> str:
        new_id = create_id(kind)
        while self.is_used(kind, new_id):
            new_id = create_id(kind)
        return new_id

    def ensure_unique(self, kind: EntityKind, entity) -> bool:
        """
        Claim the entity's identifier, regenerating it first if another entity owns it.

        Returns:
            True when the identifier was regenerated.
        """
        current = self.owner(kind, entity.id)
        if current is entity:
            return False
        regenerated = current is not None
        if regenerated:
            old_id = entity.id
            entity.id = self.fresh_id(kind)
            log.debug(f"Regenerated {kind.name.lower()} identifier {old_id} -> {entity.id}")
        self.claim(kind, entity)
        return regenerated

    def __len__(self) -> int:
        return sum(len(owners) for owners in self._owners.values())


def project_collides(project: BoardState.Project, index: IdentifierIndex) -> bool:
    """True when the project's identifier belongs to a differently named project."""
    owner = index.owner(EntityKind.PROJECT, project.id)
    if owner is None or owner is project:
        return False
    return normalize_key(owner.label) != normalize_key(project.label)


def rekey_project(project: BoardState.Project, index: IdentifierIndex) -> BoardState.Project:
    """
    Return a deep copy of `project` with fresh identifiers on every node.

    The copy keeps the exact tree shape and order; each new identifier is claimed
    in `index` as it is assigned. The input project is left untouched.
    """
    clone = project.model_copy(deep=True)
    mapping: Dict[str, str] = {}

    clone.id = index.fresh_id(EntityKind.PROJECT)
    mapping[project.id] = clone.id
    index.claim(EntityKind.PROJECT, clone)
    for task in clone.tasks:
        old_id = task.id
        task.id = index.fresh_id(EntityKind.TASK)
        mapping[old_id] = task.id
        index.claim(EntityKind.TASK, task)
        for subtask in task.subtasks:
            old_id = subtask.id
            subtask.id = index.fresh_id(EntityKind.SUBTASK)
            mapping[old_id] = subtask.id
            index.claim(EntityKind.SUBTASK, subtask)

    log.info(f"Rekeyed project {project.id!r} ({project.name}) as {clone.id!r}")
    log.debug(f"Rekey mapping: {mapping}")
    return clone
