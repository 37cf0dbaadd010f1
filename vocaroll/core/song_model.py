"""Song model collaborator: the source of truth for persisted note state.

``SongModel`` is the interface the editing session talks to.
``InMemorySongModel`` is a complete in-process implementation used by
tests and by hosts that have no backend of their own: it stores
``NoteData`` by position and derives the true lyric, envelope timing and
default portamento for each note on request.
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterable
from typing import Protocol

from .config import EditorSettings
from .note_data import CurveData, EditMode, EnvelopeData, MutateResponse, NoteData, NoteUpdateData

log = logging.getLogger(__name__)

# Lyrics that carry no phoneme of their own
_REST_LYRICS = {"", "-"}
_CONTINUATION = "+"


class SongModel(Protocol):
    def add_notes(self, notes: Iterable[NoteData]) -> None: ...

    def remove_notes(self, positions: Iterable[int]) -> MutateResponse: ...

    def modify_note(self, note: NoteData) -> None: ...

    def standardize_notes(self, first_position: int, last_position: int) -> MutateResponse: ...

    def current_mode(self) -> EditMode: ...


class InMemorySongModel:
    """Sorted in-memory note store implementing :class:`SongModel`."""

    def __init__(
        self,
        mode: EditMode = EditMode.ADD,
        default_lyric: str = "a",
        preutterance_ms: float = 0.0,
        portamento_offset_ms: float = -25.0,
        portamento_width_ms: float = 50.0,
    ) -> None:
        self._notes: dict[int, NoteData] = {}
        self._positions: list[int] = []
        self._mode = mode
        self._default_lyric = default_lyric
        self._preutterance_ms = preutterance_ms
        self._portamento_offset_ms = portamento_offset_ms
        self._portamento_width_ms = portamento_width_ms

    @classmethod
    def from_settings(cls, settings: EditorSettings, mode: EditMode = EditMode.ADD) -> InMemorySongModel:
        """Song model whose derived defaults follow the user settings."""
        return cls(
            mode=mode,
            default_lyric=settings.default_lyric,
            preutterance_ms=settings.preutterance_ms,
            portamento_offset_ms=settings.portamento_offset_ms,
            portamento_width_ms=settings.portamento_width_ms,
        )

    # ── Properties ──────────────────────────────────────────

    @property
    def notes(self) -> list[NoteData]:
        return [self._notes[p] for p in self._positions]

    @property
    def note_count(self) -> int:
        return len(self._positions)

    def get(self, position: int) -> NoteData | None:
        return self._notes.get(position)

    def current_mode(self) -> EditMode:
        return self._mode

    def set_mode(self, mode: EditMode) -> None:
        self._mode = mode

    # ── Mutation ────────────────────────────────────────────

    def add_notes(self, notes: Iterable[NoteData]) -> None:
        for note in notes:
            if note.position in self._notes:
                log.warning("Song already has a note at %d; replacing it", note.position)
            else:
                bisect.insort(self._positions, note.position)
            self._notes[note.position] = note

    def remove_notes(self, positions: Iterable[int]) -> MutateResponse:
        """Remove notes; reports each removed note and the surviving neighbours."""
        to_remove = sorted(p for p in set(positions) if p in self._notes)
        if not to_remove:
            return MutateResponse()
        updates = tuple(self._derive(bisect.bisect_left(self._positions, p)) for p in to_remove)
        removed = []
        for p in to_remove:
            removed.append(self._notes.pop(p))
            del self._positions[bisect.bisect_left(self._positions, p)]

        lo = bisect.bisect_left(self._positions, to_remove[0])
        hi = bisect.bisect_right(self._positions, to_remove[-1])
        prev = self._derive(lo - 1) if lo > 0 else None
        nxt = self._derive(hi) if hi < len(self._positions) else None
        return MutateResponse(notes=updates, prev=prev, next=nxt, removed=tuple(removed))

    def modify_note(self, note: NoteData) -> None:
        if note.position not in self._notes:
            raise KeyError(note.position)
        self._notes[note.position] = note

    def standardize_notes(self, first_position: int, last_position: int) -> MutateResponse:
        """Derived state for notes in ``[first, last]`` plus their outer neighbours."""
        lo = bisect.bisect_left(self._positions, first_position)
        hi = bisect.bisect_right(self._positions, last_position)
        notes = tuple(self._derive(i) for i in range(lo, hi))
        prev = self._derive(lo - 1) if lo > 0 else None
        nxt = self._derive(hi) if hi < len(self._positions) else None
        return MutateResponse(notes=notes, prev=prev, next=nxt)

    # ── Derivation ──────────────────────────────────────────

    def _derive(self, index: int) -> NoteUpdateData:
        note = self._notes[self._positions[index]]
        duration = note.duration
        if index + 1 < len(self._positions):
            duration = min(duration, self._positions[index + 1] - note.position)

        envelope = note.envelope or EnvelopeData.default()
        preutter = envelope.preutterance
        if preutter is None:
            preutter = self._preutterance_ms
        envelope = envelope.with_timing(preutter, duration + preutter)

        pitchbend = note.pitchbend or CurveData.default(
            self._portamento_offset_ms, self._portamento_width_ms,
        )
        return NoteUpdateData(
            position=note.position,
            true_lyric=self._true_lyric(index),
            envelope=envelope,
            pitchbend=pitchbend,
        )

    def _true_lyric(self, index: int) -> str:
        # "+" sustains the previous note's vowel; walk back to the first real lyric.
        i = index
        while i >= 0:
            lyric = self._notes[self._positions[i]].lyric.strip()
            if lyric == _CONTINUATION:
                i -= 1
                continue
            if lyric in _REST_LYRICS:
                lyric = self._default_lyric
            return lyric if i == index else lyric[-1:]
        return self._default_lyric
