"""Overlap resolution for timeline mutations.

Pure Python, no Qt dependency.  After a note is inserted, removed or
moved, :class:`OverlapResolver` trims neighbours so that no two notes
overlap and re-points portamento anchors so that each curve starts on
its predecessor's pitch.  It returns the closed range of positions whose
derived state (envelope, curve, true lyric) must be refreshed.

Predecessor-side effects are always applied before successor-side ones.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .constants import MAX_DURATION
from .errors import PositionOccupied
from .region import RegionBounds
from .timeline import Note, NoteTimeline

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RemovalResult:
    """Outcome of :meth:`OverlapResolver.resolve_remove`."""

    removed: Note | None
    touched: RegionBounds
    timeline_empty: bool


class OverlapResolver:
    """Keeps a :class:`NoteTimeline` overlap-free across edits."""

    def __init__(
        self,
        timeline: NoteTimeline,
        on_trim: Callable[[Note], None] | None = None,
    ) -> None:
        self._timeline = timeline
        # Called after an already-placed predecessor is shortened.
        self._on_trim = on_trim

    @property
    def timeline(self) -> NoteTimeline:
        return self._timeline

    # ── Insert ──────────────────────────────────────────────

    def insert(self, note: Note) -> RegionBounds:
        """Put *note* into the timeline and resolve overlaps around it.

        Raises PositionOccupied (timeline unchanged) if the slot is taken.
        """
        self._timeline.put(note.position, note)
        return self.resolve_insert(note.position)

    def resolve_insert(self, position: int) -> RegionBounds:
        """Restore the no-overlap invariant around the note at *position*."""
        note = self._timeline.get(position)
        if note is None:
            raise KeyError(position)
        touched = RegionBounds(position, position)

        found = self._timeline.predecessor_of(position)
        if found is not None:
            prev_pos, prev = found
            if prev.end_ms > position:
                log.debug("Trimming note at %d to %d ms", prev_pos, position - prev_pos)
                prev.trim_to(position - prev_pos)
                touched = touched.merge_with(RegionBounds(prev_pos, prev_pos))
                if self._on_trim is not None:
                    self._on_trim(prev)
            prev.adjust_for_overlap(position - prev_pos)
            note.prev_row = prev.row
        else:
            note.prev_row = None

        found = self._timeline.successor_of(position)
        if found is not None:
            next_pos, nxt = found
            if note.end_ms > next_pos:
                log.debug("Trimming note at %d to %d ms", position, next_pos - position)
                note.trim_to(next_pos - position)
            note.adjust_for_overlap(next_pos - position)
            # The successor's portamento now starts from this note's pitch.
            nxt.prev_row = note.row
            touched = touched.merge_with(RegionBounds(next_pos, next_pos))
        else:
            note.adjust_for_overlap(MAX_DURATION)

        return touched

    # ── Remove ──────────────────────────────────────────────

    def resolve_remove(self, position: int) -> RemovalResult:
        """Remove the note at *position* and report the range to re-derive.

        The predecessor's duration is left alone; the caller's refresh pass
        decides whether it now extends to the next note or the open tail.
        """
        prev = self._timeline.predecessor_of(position)
        nxt = self._timeline.successor_of(position)
        removed = self._timeline.remove(position)
        if removed is None:
            return RemovalResult(None, RegionBounds.INVALID, self._timeline.is_empty())

        if nxt is not None:
            nxt[1].prev_row = prev[1].row if prev is not None else None

        if prev is not None and nxt is not None:
            touched = RegionBounds(prev[0], nxt[0])
        elif prev is not None:
            touched = RegionBounds(prev[0], prev[0])
        elif nxt is not None:
            touched = RegionBounds(nxt[0], nxt[0])
        else:
            touched = RegionBounds.INVALID

        empty = self._timeline.is_empty()
        if empty:
            log.debug("Timeline empty after removing note at %d", position)
        return RemovalResult(removed, touched, empty)

    # ── Move ────────────────────────────────────────────────

    def move(self, position: int, new_position: int, row_delta: int = 0) -> RegionBounds:
        """Move the note at *position* to *new_position* as one step.

        The destination is checked before anything changes, so a failed
        move leaves the timeline exactly as it was.
        """
        note = self._timeline.get(position)
        if note is None:
            raise KeyError(position)
        new_position = max(0, new_position)
        if new_position != position and new_position in self._timeline:
            raise PositionOccupied(new_position)

        removal = self.resolve_remove(position)
        note.move_by(new_position - position, row_delta)
        self._timeline.put(note.position, note)
        touched = self.resolve_insert(note.position)
        return removal.touched.merge_with(touched)
