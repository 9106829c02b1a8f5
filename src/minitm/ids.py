"""
Identifier generation for projects, tasks and subtasks.

Identifiers are the entity kind's one-character tag followed by a random UUID.
When the operating system offers no strong randomness source we fall back to a
millisecond timestamp plus a pseudo-random suffix; that is practically unique
rather than provably unique, and the rekeying pass catches any collision.
"""
import random
import time
import uuid

from .models import EntityKind
from .logs import get_logger

log = get_logger("ids")

def _fallback_id(prefix: str) -> str:
    return f"{prefix}{int(time.time() * 1000)}_{random.getrandbits(52):x}"

def create_id(kind: EntityKind) -> str:
    """Return a fresh identifier for an entity of the given kind."""
    try:
        return f"{kind.value}{uuid.uuid4()}"
    except NotImplementedError:
        log.debug("No strong randomness source available, using fallback identifier")
        return _fallback_id(kind.value)
