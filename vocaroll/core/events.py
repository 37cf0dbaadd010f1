"""Change events emitted by edit operations.

Mutators return or emit a :class:`ChangeEvent` value instead of calling
per-note listener objects; the receiver decides how to route it (direct
call, Qt signal via :mod:`.change_relay`, a queue, ...).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ChangeKind(Enum):
    NOTE_ADDED = "note_added"
    NOTE_REMOVED = "note_removed"
    NOTE_MOVED = "note_moved"
    NOTE_INVALID = "note_invalid"
    CURVE_CHANGED = "curve_changed"
    ENVELOPE_CHANGED = "envelope_changed"
    TIMELINE_EMPTY = "timeline_empty"


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    kind: ChangeKind
    position: int
    before: Any = None
    after: Any = None


ChangeSink = Callable[[ChangeEvent], None]
