"""Position-indexed note store for the piano roll.

Pure Python, no Qt dependency.  ``NoteTimeline`` is an ordered mapping
from integer millisecond position to :class:`Note`; it never touches
envelope or curve data itself.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterator
from dataclasses import dataclass

from .constants import MAX_DURATION
from .errors import PositionOccupied
from .note_data import CurveData, EnvelopeData, NoteData, NoteUpdateData
from .pitch_utils import clamp_row, pitch_to_row_num, row_num_to_pitch
from .region import RegionBounds

# ── Note ───────────────────────────────────────────────────


@dataclass(eq=False)
class Note:
    """A single note on the timeline.

    ``overlap_ms`` is the distance to the next note (``MAX_DURATION`` when
    there is none); it bounds the rendered length without changing the
    stored ``duration_ms``.  ``prev_row`` is the pitch the portamento
    starts from.
    """

    position: int
    duration_ms: int
    row: int            # 0 = C1 (lowest)
    lyric: str
    true_lyric: str = ""
    envelope: EnvelopeData | None = None
    curve: CurveData | None = None
    valid: bool = False
    overlap_ms: int = MAX_DURATION
    prev_row: int | None = None
    backup: NoteUpdateData | None = None

    def __post_init__(self) -> None:
        self.duration_ms = max(0, self.duration_ms)
        self.row = clamp_row(self.row)
        if not self.true_lyric:
            self.true_lyric = self.lyric

    @property
    def end_ms(self) -> int:
        return self.position + self.duration_ms

    @property
    def effective_duration_ms(self) -> int:
        return min(self.duration_ms, self.overlap_ms)

    @property
    def valid_bounds(self) -> RegionBounds:
        return RegionBounds(self.position, self.position + self.effective_duration_ms)

    @property
    def pitch(self) -> str:
        return row_num_to_pitch(self.row)

    @property
    def anchor_row(self) -> int:
        """Row the portamento starts on: previous pitch, or own pitch for the first note."""
        return self.row if self.prev_row is None else self.prev_row

    def adjust_for_overlap(self, distance_to_next: int) -> None:
        """Record the distance to the next note; the stored duration never grows."""
        self.overlap_ms = max(0, distance_to_next)

    def trim_to(self, duration_ms: int) -> None:
        self.duration_ms = max(0, min(self.duration_ms, duration_ms))

    def move_by(self, position_delta: int, row_delta: int) -> None:
        self.position = max(0, self.position + position_delta)
        self.row = clamp_row(self.row + row_delta)

    def apply_update(self, update: NoteUpdateData) -> None:
        self.true_lyric = update.true_lyric
        self.envelope = update.envelope
        self.curve = update.pitchbend

    def to_note_data(self) -> NoteData:
        return NoteData(
            position=self.position,
            duration=self.duration_ms,
            pitch=self.pitch,
            lyric=self.lyric,
            envelope=self.envelope,
            pitchbend=self.curve,
        )

    @classmethod
    def from_note_data(cls, data: NoteData) -> Note:
        return cls(
            position=data.position,
            duration_ms=data.duration,
            row=pitch_to_row_num(data.pitch),
            lyric=data.lyric,
            envelope=data.envelope,
            curve=data.pitchbend,
        )


# ── NoteTimeline ───────────────────────────────────────────


class NoteTimeline:
    """Ordered map ``position → Note`` with unique positions.

    Keys are kept in a sorted list searched with ``bisect`` so
    neighbour lookups are logarithmic in the note count.
    """

    def __init__(self) -> None:
        self._notes: dict[int, Note] = {}
        self._positions: list[int] = []

    # ── Properties ──────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, position: object) -> bool:
        return position in self._notes

    def __iter__(self) -> Iterator[tuple[int, Note]]:
        for pos in list(self._positions):
            yield pos, self._notes[pos]

    def is_empty(self) -> bool:
        return not self._positions

    def positions(self) -> list[int]:
        return list(self._positions)

    def notes(self) -> list[Note]:
        return [self._notes[p] for p in self._positions]

    def get(self, position: int) -> Note | None:
        return self._notes.get(position)

    @property
    def first(self) -> tuple[int, Note] | None:
        if not self._positions:
            return None
        pos = self._positions[0]
        return pos, self._notes[pos]

    @property
    def last(self) -> tuple[int, Note] | None:
        if not self._positions:
            return None
        pos = self._positions[-1]
        return pos, self._notes[pos]

    # ── Mutation ────────────────────────────────────────────

    def put(self, position: int, note: Note) -> None:
        """Insert *note* at *position*; raises PositionOccupied if taken."""
        if position in self._notes:
            raise PositionOccupied(position)
        bisect.insort(self._positions, position)
        self._notes[position] = note

    def remove(self, position: int) -> Note | None:
        note = self._notes.pop(position, None)
        if note is None:
            return None
        i = bisect.bisect_left(self._positions, position)
        del self._positions[i]
        return note

    def clear(self) -> None:
        self._notes.clear()
        self._positions.clear()

    # ── Neighbours ──────────────────────────────────────────

    def predecessor_of(self, position: int) -> tuple[int, Note] | None:
        """Nearest entry with a strictly smaller position."""
        i = bisect.bisect_left(self._positions, position)
        if i == 0:
            return None
        pos = self._positions[i - 1]
        return pos, self._notes[pos]

    def successor_of(self, position: int) -> tuple[int, Note] | None:
        """Nearest entry with a strictly greater position."""
        i = bisect.bisect_right(self._positions, position)
        if i >= len(self._positions):
            return None
        pos = self._positions[i]
        return pos, self._notes[pos]

    # ── Range queries ───────────────────────────────────────

    def first_in_range(self, bounds: RegionBounds) -> tuple[int, Note] | None:
        """Smallest-position note whose valid bounds intersect *bounds*.

        Only the note just before ``bounds.min_ms`` can reach into the
        region from the left, since committed notes never overlap.
        """
        if not bounds.is_valid:
            return None
        i = bisect.bisect_left(self._positions, bounds.min_ms)
        for j in (i - 1, i):
            if 0 <= j < len(self._positions):
                hit = self._hit(j, bounds)
                if hit is not None:
                    return hit
        return None

    def last_in_range(self, bounds: RegionBounds) -> tuple[int, Note] | None:
        """Largest-position note whose valid bounds intersect *bounds*."""
        if not bounds.is_valid:
            return None
        j = bisect.bisect_left(self._positions, bounds.max_ms) - 1
        if j < 0:
            return None
        return self._hit(j, bounds)

    def notes_in_range(self, bounds: RegionBounds) -> list[Note]:
        first = self.first_in_range(bounds)
        last = self.last_in_range(bounds)
        if first is None or last is None:
            return []
        lo = bisect.bisect_left(self._positions, first[0])
        hi = bisect.bisect_right(self._positions, last[0])
        return [self._notes[p] for p in self._positions[lo:hi]]

    def _hit(self, index: int, bounds: RegionBounds) -> tuple[int, Note] | None:
        pos = self._positions[index]
        note = self._notes[pos]
        bb = note.valid_bounds
        if bounds.intersects(bb.min_ms, bb.max_ms):
            return pos, note
        return None
