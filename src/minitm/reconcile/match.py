"""
Key Matcher - decides whether an incoming entity is "the same" as a live one.

Identifier equality wins; failing that, the first sibling whose trimmed,
case-folded name equals the incoming one is taken. Name matching is a lossy
convenience: two distinct entities sharing a name will be consolidated.
"""
from typing import Dict, Generic, Iterable, Optional, TypeVar

T = TypeVar("T")


def normalize_key(text: Optional[str]) -> str:
    return (text or "").strip().casefold()


class MatchIndex(Generic[T]):
    """Identifier and name lookups over one sibling collection, first entry wins."""

    def __init__(self, entities: Iterable[T] = ()):
        self._by_id: Dict[str, T] = {}
        self._by_key: Dict[str, T] = {}
        for entity in entities:
            self.add(entity)

    def add(self, entity: T) -> None:
        self._by_id.setdefault(entity.id, entity)
        self._by_key.setdefault(normalize_key(entity.label), entity)

    def find_by_id(self, entity_id: str) -> Optional[T]:
        return self._by_id.get(entity_id)

    def find_by_name(self, name: str) -> Optional[T]:
        return self._by_key.get(normalize_key(name))

    def find(self, candidate) -> Optional[T]:
        """Return the live entity matching `candidate`, or None."""
        match = self.find_by_id(candidate.id)
        if match is None:
            match = self.find_by_name(candidate.label)
        return match


def find_match(entities: Iterable[T], candidate) -> Optional[T]:
    return MatchIndex(entities).find(candidate)
