"""Editing session: turns user intents into timeline and song-model updates.

Pure Python, no Qt dependency.  Every intent follows the same protocol:
the song model is told about the structural change, the local timeline
is updated (with :class:`OverlapResolver` keeping it overlap-free), and
the derived state of every affected note (true lyric, envelope,
portamento) is re-read from the song model's ``standardize_notes``
response.  Each intent returns a :class:`ChangeSet` naming the positions
the view has to redraw.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .config import EditorSettings
from .constants import COL_WIDTH, COLS_PER_MEASURE, MAX_DURATION, MEASURE_WIDTH
from .curve import CurveModel, DragState
from .envelope import envelope_bounds, envelope_outline
from .errors import (
    ControlPointLimitExceeded,
    InvalidMerge,
    PositionOccupied,
    TimelineDesyncError,
)
from .events import ChangeEvent, ChangeKind, ChangeSink
from .note_data import (
    CurveData,
    CurveType,
    EditMode,
    EnvelopeData,
    MutateResponse,
    NoteData,
    NoteUpdateData,
)
from .overlap import OverlapResolver
from .pitch_utils import clamp_row
from .region import RegionBounds
from .scaler import Scaler
from .song_model import SongModel
from .timeline import Note, NoteTimeline

log = logging.getLogger(__name__)


# ── ChangeSet ──────────────────────────────────────────────


@dataclass
class ChangeSet:
    """What one intent changed, for the (external) view layer."""

    envelopes: dict[int, EnvelopeData | None] = field(default_factory=dict)
    curves: dict[int, CurveData | None] = field(default_factory=dict)
    invalid: list[int] = field(default_factory=list)
    removed: list[int] = field(default_factory=list)
    events: list[ChangeEvent] = field(default_factory=list)
    timeline_empty: bool = False

    @property
    def touched(self) -> list[int]:
        return sorted(self.envelopes)

    @property
    def is_empty(self) -> bool:
        return not (self.envelopes or self.invalid or self.removed or self.events)

    def touch(self, note: Note) -> None:
        self.envelopes[note.position] = note.envelope
        self.curves[note.position] = note.curve

    def forget(self, position: int) -> None:
        self.envelopes.pop(position, None)
        self.curves.pop(position, None)


# ── EditSession ────────────────────────────────────────────


class EditSession:
    """Single-threaded orchestrator for one track's note edits."""

    def __init__(
        self,
        song: SongModel,
        settings: EditorSettings | None = None,
        sink: ChangeSink | None = None,
        scaler: Scaler | None = None,
    ) -> None:
        self._song = song
        self._settings = settings or EditorSettings()
        self._sink = sink
        self._scaler = scaler or Scaler(self._settings.scale_x, self._settings.scale_y)
        self._timeline = NoteTimeline()
        self._resolver = OverlapResolver(self._timeline, on_trim=self._push_trim)
        self._curves: dict[int, CurveModel] = {}
        self._highlighted: list[Note] = []
        self._pending: list[ChangeEvent] = []
        self._num_measures = self._settings.min_measures
        self._visible = RegionBounds.INVALID

    # ── Properties ──────────────────────────────────────────

    @property
    def timeline(self) -> NoteTimeline:
        return self._timeline

    @property
    def resolver(self) -> OverlapResolver:
        return self._resolver

    @property
    def scaler(self) -> Scaler:
        return self._scaler

    @property
    def settings(self) -> EditorSettings:
        return self._settings

    @property
    def num_measures(self) -> int:
        return self._num_measures

    @property
    def track_width_ms(self) -> int:
        return self._num_measures * MEASURE_WIDTH

    @property
    def visible_region(self) -> RegionBounds:
        return self._visible

    @property
    def highlighted(self) -> list[Note]:
        return list(self._highlighted)

    def set_sink(self, sink: ChangeSink | None) -> None:
        self._sink = sink

    # ── Track setup ─────────────────────────────────────────

    def create_new_track(self, notes: Sequence[NoteData]) -> ChangeSet:
        """Populate the timeline from notes the song model already holds."""
        self._clear_track()
        cs = ChangeSet()
        if not notes:
            cs.timeline_empty = True
            return cs

        ordered = sorted(notes, key=lambda n: n.position)
        self._set_num_measures(ordered[-1].position // COL_WIDTH // COLS_PER_MEASURE + 4)
        for data in ordered:
            note = Note.from_note_data(data)
            note.valid = True
            try:
                self._resolver.insert(note)
            except PositionOccupied:
                log.warning("Song data has two notes at %d ms; dropping one", data.position)
                note.valid = False
                cs.invalid.append(data.position)

        if not self._timeline.is_empty():
            first, last = self._timeline.first[0], self._timeline.last[0]
            self._refresh(first, last, cs)
        return self._finish(cs)

    # ── Note intents ────────────────────────────────────────

    def propose_note(self, row: int, col: int) -> Note | None:
        """Uncommitted default note for a click on grid cell (row, col).

        Only the ADD mode creates notes; otherwise returns None.
        """
        if self._song.current_mode() != EditMode.ADD:
            return None
        return Note(
            position=max(0, col) * COL_WIDTH,
            duration_ms=self._settings.default_duration_ms,
            row=clamp_row(row),
            lyric=self._settings.default_lyric,
        )

    def add_note_at(self, row: int, col: int) -> ChangeSet:
        note = self.propose_note(row, col)
        if note is None:
            return ChangeSet()
        return self.update_note(note)

    def update_note(self, note: Note) -> ChangeSet:
        """Commit *note* (new, resized or relyriced) at its current position."""
        cs = ChangeSet()
        position = note.position
        touched = RegionBounds.INVALID
        if note.valid:
            touched = self._remove_notes({position}, cs)

        try:
            touched = touched.merge_with(self._resolver.insert(note))
        except PositionOccupied:
            log.debug("Position %d occupied; note left uncommitted", position)
            note.valid = False
            cs.invalid.append(position)
            self._emit(ChangeEvent(ChangeKind.NOTE_INVALID, position))
        else:
            note.valid = True
            self._song.add_notes([note.to_note_data()])
            if position in cs.removed:
                cs.removed.remove(position)
            self._emit(ChangeEvent(ChangeKind.NOTE_ADDED, position, None, note.to_note_data()))
            last = self._timeline.last
            if last is not None and last[0] == position:
                self._fit_measures_to(position)

        # Refresh regardless of whether the note was placed.
        touched = touched.merge_with(RegionBounds(position, position))
        self._refresh(touched.min_ms, touched.max_ms, cs)
        return self._finish(cs)

    def move_note(self, note: Note, position_delta: int, row_delta: int = 0) -> ChangeSet:
        """Move *note*, or every highlighted note if it is highlighted."""
        if self.is_highlighted(note) and len(self._highlighted) > 1:
            return self._move_group(self._highlighted, position_delta, row_delta)
        new_position = max(0, note.position + position_delta)
        if note.valid and note.position in self._timeline and (
            new_position == note.position or new_position not in self._timeline
        ):
            return self._move_single(note, new_position, row_delta)
        return self._move_group([note], position_delta, row_delta)

    def delete_note(self, note: Note) -> ChangeSet:
        """Delete *note*, or every highlighted note if it is highlighted."""
        if self.is_highlighted(note):
            return self.delete_selected()
        cs = ChangeSet()
        if note.valid:
            touched = self._remove_notes({note.position}, cs)
            if touched.is_valid:
                self._refresh(touched.min_ms, touched.max_ms, cs)
        return self._finish(cs)

    def delete_selected(self) -> ChangeSet:
        cs = ChangeSet()
        positions = {n.position for n in self._highlighted if n.valid}
        touched = self._remove_notes(positions, cs)
        if touched.is_valid:
            self._refresh(touched.min_ms, touched.max_ms, cs)
        self._highlighted.clear()
        return self._finish(cs)

    def modify_envelope(self, position: int, envelope: EnvelopeData) -> ChangeSet:
        cs = ChangeSet()
        note = self._require(position, "modify_envelope")
        if note is None:
            return self._finish(cs)
        before = note.envelope
        self._song.modify_note(NoteData(
            position=position,
            duration=note.duration_ms,
            pitch=note.pitch,
            lyric=note.lyric,
            envelope=envelope,
            pitchbend=note.curve,
        ))
        self._refresh(position, position, cs)
        self._emit(ChangeEvent(ChangeKind.ENVELOPE_CHANGED, position, before, note.envelope))
        return self._finish(cs)

    # ── Selection ───────────────────────────────────────────

    def is_highlighted(self, note: Note) -> bool:
        return any(n is note for n in self._highlighted)

    def highlight(self, note: Note, exclusive: bool = True) -> None:
        """Highlight *note*; non-exclusive extends the highlight to reach it."""
        if exclusive or not self._highlighted:
            self._highlighted = [note]
            return
        positions = [n.position for n in self._highlighted] + [note.position]
        lo, hi = min(positions), max(positions)
        self._highlighted = [n for n in self._timeline.notes() if lo <= n.position <= hi]
        if not note.valid:
            self._highlighted.append(note)

    def select_notes(self, region: RegionBounds) -> None:
        self._highlighted = self._timeline.notes_in_range(region)

    def clear_highlights(self) -> None:
        self._highlighted.clear()

    @property
    def highlighted_region(self) -> RegionBounds:
        valid = [n for n in self._highlighted if n.valid]
        if not valid:
            return RegionBounds.INVALID
        first = min(valid, key=lambda n: n.position)
        last = max(valid, key=lambda n: n.position)
        return RegionBounds(first.position, last.valid_bounds.max_ms)

    # ── Portamento curves ───────────────────────────────────

    def curve_for(self, position: int) -> CurveModel:
        """Live curve of the note at *position* (built on first use)."""
        curve = self._curves.get(position)
        if curve is not None:
            return curve
        note = self._timeline.get(position)
        if note is None:
            raise KeyError(position)
        if note.curve is None:
            raise KeyError(f"Note at {position} has no portamento yet")
        curve = CurveModel.from_data(
            position,
            note.anchor_row,
            note.row,
            note.curve,
            self._scaler,
            sink=self._on_curve_changed,
            max_x=self._scaler.scale_pos(self.track_width_ms),
            max_points=self._settings.max_control_points,
        )
        self._curves[position] = curve
        return curve

    def split_curve(self, position: int, segment_index: int) -> ChangeSet:
        try:
            self.curve_for(position).split_at(segment_index)
        except ControlPointLimitExceeded as e:
            log.debug("Split ignored: %s", e)
        return self._finish(ChangeSet())

    def merge_curve(self, position: int, point_index: int) -> ChangeSet:
        try:
            self.curve_for(position).merge_at(point_index)
        except InvalidMerge as e:
            log.debug("Merge ignored: %s", e)
        return self._finish(ChangeSet())

    def retype_curve(self, position: int, segment_index: int, new_type: CurveType) -> ChangeSet:
        self.curve_for(position).retype(segment_index, new_type)
        return self._finish(ChangeSet())

    def begin_curve_drag(self, position: int, point_index: int) -> DragState:
        return self.curve_for(position).begin_drag(point_index)

    def drag_curve(self, position: int, state: DragState, x: float, y: float) -> bool:
        return self.curve_for(position).drag_to(state, x, y)

    def end_curve_drag(self, position: int, state: DragState) -> ChangeSet:
        self.curve_for(position).end_drag(state)
        return self._finish(ChangeSet())

    # ── Geometry queries ────────────────────────────────────

    def envelope_outline_for(self, position: int) -> tuple[tuple[float, float], ...]:
        note = self._timeline.get(position)
        if note is None or note.envelope is None:
            return ()
        return envelope_outline(position, note.envelope, self._scaler)

    def playback_region(self, rendered: RegionBounds) -> RegionBounds:
        """Exact span played for *rendered*: first envelope start to last note end."""
        first = self._timeline.first_in_range(rendered)
        last = self._timeline.last_in_range(rendered)
        if first is None or last is None:
            return RegionBounds.INVALID
        start = max(rendered.min_ms, 0)
        if first[1].envelope is not None:
            start = min(envelope_bounds(first[0], first[1].envelope).min_ms, start)
        return RegionBounds(start, last[0] + last[1].duration_ms)

    def selectively_show_region(self, center_percent: float, margin_px: float) -> RegionBounds:
        """Whole measures around *center_percent* of the track, plus a margin."""
        measure_px = max(1, round(self._scaler.scale_x(MEASURE_WIDTH)))
        margin_measures = int(margin_px / measure_px) + 3
        center = round((self._num_measures - 1) * center_percent)
        last = self._num_measures - 1
        start = min(max(center - margin_measures, 0), last)
        end = min(max(center + margin_measures, 0), last)
        self._visible = RegionBounds(start * MEASURE_WIDTH, (end + 1) * MEASURE_WIDTH)
        return self._visible

    # ── Internals: moves ────────────────────────────────────

    def _move_single(self, note: Note, new_position: int, row_delta: int) -> ChangeSet:
        cs = ChangeSet()
        old_position = note.position
        response = self._song.remove_notes({old_position})
        self._check_response(response, "remove_notes")
        if response.notes:
            note.backup = response.notes[0]
        self._curves.pop(old_position, None)

        touched = self._resolver.move(old_position, new_position, row_delta)
        self._song.add_notes([note.to_note_data()])
        touched = touched.merge_with(self._neighbour_region(response))
        self._emit(ChangeEvent(ChangeKind.NOTE_MOVED, note.position, old_position, note.position))
        if self._timeline.last[0] == note.position:
            self._fit_measures_to(note.position)
        self._refresh(touched.min_ms, touched.max_ms, cs)
        return self._finish(cs)

    def _move_group(self, notes: Iterable[Note], position_delta: int, row_delta: int) -> ChangeSet:
        cs = ChangeSet()
        group = sorted(notes, key=lambda n: n.position)
        touched = self._remove_notes({n.position for n in group if n.valid}, cs)

        added: list[Note] = []
        for note in group:
            old_position = note.position
            note.move_by(position_delta, row_delta)
            note.valid = False
            try:
                touched = touched.merge_with(self._resolver.insert(note))
            except PositionOccupied:
                cs.invalid.append(note.position)
                self._emit(ChangeEvent(ChangeKind.NOTE_INVALID, note.position))
                continue
            added.append(note)
            if note.position in cs.removed:
                cs.removed.remove(note.position)
            self._emit(ChangeEvent(ChangeKind.NOTE_MOVED, note.position, old_position, note.position))

        if not added:
            if touched.is_valid:
                self._refresh(touched.min_ms, touched.max_ms, cs)
            return self._finish(cs)

        # Marked valid only now: trims between group members must not reach
        # the song model before the members themselves do.
        for note in added:
            note.valid = True
        self._song.add_notes([n.to_note_data() for n in added])
        add_region = RegionBounds(added[0].position, added[-1].position)
        touched = touched.merge_with(add_region)
        self._refresh(touched.min_ms, touched.max_ms, cs)
        if touched.max_ms == add_region.max_ms:
            self._fit_measures_to(add_region.max_ms)
        return self._finish(cs)

    # ── Internals: song model reconciliation ────────────────

    def _remove_notes(self, positions: set[int], cs: ChangeSet) -> RegionBounds:
        """Remove from the song model first, then mirror its response locally."""
        if not positions:
            return RegionBounds.INVALID
        response = self._song.remove_notes(positions)
        touched = RegionBounds.INVALID
        for update in response.notes:
            note = self._require(update.position, "remove_notes")
            if note is None:
                continue
            note.backup = update
            removal = self._resolver.resolve_remove(update.position)
            touched = touched.merge_with(removal.touched)
            self._curves.pop(update.position, None)
            cs.forget(update.position)
            cs.removed.append(update.position)
            self._emit(ChangeEvent(ChangeKind.NOTE_REMOVED, update.position, note.to_note_data(), None))

        # Ranges may still name notes removed later in the same batch.
        return touched.merge_with(self._neighbour_region(response))

    def _refresh(self, first: int, last: int, cs: ChangeSet) -> None:
        """Re-derive notes in ``[first, last]`` and their neighbours from the song model."""
        response = self._song.standardize_notes(first, last)
        prev_note: Note | None = None
        if response.prev is not None:
            prev_note = self._require(response.prev.position, "standardize_notes")
            if prev_note is not None:
                prev_note.envelope = response.prev.envelope
                cs.touch(prev_note)

        for update in response.notes:
            note = self._require(update.position, "standardize_notes")
            if note is None:
                continue
            self._apply(note, update, prev_note, cs)
            prev_note = note

        if response.next is not None:
            note = self._require(response.next.position, "standardize_notes")
            if note is not None:
                self._apply(note, response.next, prev_note, cs)
        elif prev_note is not None:
            prev_note.adjust_for_overlap(MAX_DURATION)

    def _apply(self, note: Note, update: NoteUpdateData, prev_note: Note | None, cs: ChangeSet) -> None:
        note.apply_update(update)
        note.prev_row = prev_note.row if prev_note is not None else None
        if prev_note is not None:
            prev_note.adjust_for_overlap(note.position - prev_note.position)
        self._curves.pop(note.position, None)
        cs.touch(note)

    def _neighbour_region(self, response: MutateResponse) -> RegionBounds:
        if response.prev is not None and response.next is not None:
            return RegionBounds(response.prev.position, response.next.position)
        if response.prev is not None:
            return RegionBounds(response.prev.position, response.prev.position)
        if response.next is not None:
            return RegionBounds(response.next.position, response.next.position)
        return RegionBounds.INVALID

    def _check_response(self, response: MutateResponse, operation: str) -> None:
        for update in response.notes:
            self._require(update.position, operation)

    def _require(self, position: int, operation: str) -> Note | None:
        note = self._timeline.get(position)
        if note is not None:
            return note
        if self._settings.desync_policy == "raise":
            log.error("%s: song model has a note at %d the timeline lacks", operation, position)
            raise TimelineDesyncError(position, operation)
        log.warning("%s: song model has a note at %d the timeline lacks; continuing",
                    operation, position)
        return None

    def _push_trim(self, note: Note) -> None:
        if note.valid:
            self._song.modify_note(note.to_note_data())

    def _on_curve_changed(self, event: ChangeEvent) -> None:
        note = self._require(event.position, "modify_note")
        if note is None:
            return
        self._song.modify_note(NoteData(
            position=note.position,
            duration=note.duration_ms,
            pitch=note.pitch,
            lyric=note.lyric,
            envelope=note.envelope,
            pitchbend=event.after,
        ))
        note.curve = event.after
        self._emit(event)

    # ── Internals: events and view ──────────────────────────

    def _emit(self, event: ChangeEvent) -> None:
        self._pending.append(event)
        if self._sink is not None:
            self._sink(event)

    def _finish(self, cs: ChangeSet) -> ChangeSet:
        # Checked once per intent: a resize or group move re-inserts what it removed.
        if cs.removed and self._timeline.is_empty():
            cs.timeline_empty = True
            self._reset_view()
            self._emit(ChangeEvent(ChangeKind.TIMELINE_EMPTY, 0))
        for event in self._pending:
            if event.kind is ChangeKind.CURVE_CHANGED:
                note = self._timeline.get(event.position)
                if note is not None:
                    cs.touch(note)
        cs.events.extend(self._pending)
        self._pending = []
        return cs

    def _fit_measures_to(self, position: int) -> None:
        self._set_num_measures(position // COL_WIDTH // COLS_PER_MEASURE + 4)

    def _set_num_measures(self, count: int) -> None:
        if count < 0:
            return
        self._num_measures = max(count, self._settings.min_measures)

    def _reset_view(self) -> None:
        self._num_measures = self._settings.min_measures
        self._visible = RegionBounds(0, self._num_measures * MEASURE_WIDTH)

    def _clear_track(self) -> None:
        self._timeline.clear()
        self._curves.clear()
        self._highlighted.clear()
        self._pending = []
        self._reset_view()
