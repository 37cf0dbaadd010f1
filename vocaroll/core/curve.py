"""Editable portamento curve.

Pure Python, no Qt dependency.  A curve is a chain of typed segments
between control points, held in display (pixel) coordinates.  Control
points live in one arena list and each segment refers to its endpoints by
index, so moving a point moves the end of one segment and the start of
the next at once.

Every structural edit and every drag that moved something emits a
``CURVE_CHANGED`` event carrying the before/after :class:`CurveData`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .constants import CURVE_PRECISION, MAX_CONTROL_POINTS, PITCHBEND_UNITS_PER_ROW, ROW_HEIGHT
from .errors import ControlPointLimitExceeded, InvalidMerge
from .events import ChangeEvent, ChangeKind, ChangeSink
from .note_data import CurveData, CurveType
from .scaler import Scaler

log = logging.getLogger(__name__)


@dataclass
class ControlPoint:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Segment:
    start: int   # index into the control point arena
    end: int
    type: CurveType = CurveType.S


@dataclass
class DragState:
    """Transient state for one drag gesture on one control point."""

    point_index: int
    start_data: CurveData
    changed: bool = False


class CurveModel:
    """Live, editable portamento for the note starting at ``note_start_ms``."""

    def __init__(
        self,
        note_start_ms: int,
        points: list[tuple[float, float]],
        types: list[CurveType],
        scaler: Scaler | None = None,
        sink: ChangeSink | None = None,
        max_x: float | None = None,
        max_y: float | None = None,
        max_points: int = MAX_CONTROL_POINTS,
    ) -> None:
        if len(points) < 2 or len(types) != len(points) - 1:
            raise ValueError("A curve needs n >= 2 control points and n - 1 segment types")
        xs = [p[0] for p in points]
        # Loaded data may hold zero-width segments; edits keep x strictly increasing.
        if any(b < a for a, b in zip(xs, xs[1:])):
            raise ValueError("Control point x-coordinates must not decrease")
        self._note_start_ms = note_start_ms
        self._scaler = scaler or Scaler()
        self._sink = sink
        self._max_x = max_x
        self._max_y = self._scaler.grid_height if max_y is None else max_y
        self._max_points = max_points
        self._points = [ControlPoint(float(x), float(y)) for x, y in points]
        self._segments = [Segment(i, i + 1, t) for i, t in enumerate(types)]

    # ── Construction ────────────────────────────────────────

    @classmethod
    def from_data(
        cls,
        note_start_ms: int,
        prev_row: int,
        row: int,
        data: CurveData,
        scaler: Scaler | None = None,
        sink: ChangeSink | None = None,
        **kwargs,
    ) -> CurveModel:
        """Rebuild the live chain from canonical data.

        The first point sits on *prev_row*'s pitch and the last on *row*'s;
        interior heights are relative to the last point.
        """
        scaler = scaler or Scaler()
        x = scaler.scale_pos(note_start_ms + data.start_offset_ms)
        end_y = scaler.row_to_y(row)
        points = [(x, scaler.row_to_y(prev_row))]
        last = len(data.widths) - 1
        for i, width in enumerate(data.widths):
            x += scaler.scale_x(width)
            if i == last:
                y = end_y
            else:
                y = end_y - scaler.scale_y(data.heights[i] / PITCHBEND_UNITS_PER_ROW * ROW_HEIGHT)
            points.append((x, y))
        return cls(note_start_ms, points, list(data.shapes), scaler, sink, **kwargs)

    # ── Properties ──────────────────────────────────────────

    @property
    def note_start_ms(self) -> int:
        return self._note_start_ms

    @property
    def points(self) -> list[tuple[float, float]]:
        return [(p.x, p.y) for p in self._points]

    @property
    def segments(self) -> list[Segment]:
        return list(self._segments)

    @property
    def shapes(self) -> list[CurveType]:
        return [s.type for s in self._segments]

    @property
    def point_count(self) -> int:
        return len(self._points)

    @property
    def segment_count(self) -> int:
        return len(self._segments)

    @property
    def start_x(self) -> float:
        return self._points[0].x

    @property
    def width(self) -> float:
        return self._points[-1].x - self._points[0].x

    def set_sink(self, sink: ChangeSink | None) -> None:
        self._sink = sink

    def can_split(self) -> bool:
        return len(self._points) < self._max_points

    def can_merge(self, point_index: int) -> bool:
        return 0 < point_index < len(self._points) - 1

    def segment_for_point(self, point_index: int) -> int:
        """Segment a context action on *point_index* applies to."""
        self._check_point(point_index)
        return min(point_index, len(self._segments) - 1)

    # ── Structural edits ────────────────────────────────────

    def split_at(self, segment_index: int) -> int:
        """Split a segment at its midpoint; returns the new point's index."""
        self._check_segment(segment_index)
        if not self.can_split():
            raise ControlPointLimitExceeded(self._max_points)
        before = self.to_data()
        seg = self._segments[segment_index]
        a, b = self._points[seg.start], self._points[seg.end]
        new_index = segment_index + 1
        self._points.insert(new_index, ControlPoint((a.x + b.x) / 2, (a.y + b.y) / 2))
        types = self.shapes
        types.insert(segment_index, seg.type)
        self._relink(types)
        self._emit(before)
        return new_index

    def merge_at(self, point_index: int) -> None:
        """Remove an interior point, joining its two segments.

        The joined segment keeps the first segment's type.
        """
        self._check_point(point_index)
        if not self.can_merge(point_index):
            raise InvalidMerge(point_index)
        before = self.to_data()
        types = self.shapes
        del types[point_index]  # drop the second segment's type
        del self._points[point_index]
        self._relink(types)
        self._emit(before)

    def retype(self, segment_index: int, new_type: CurveType) -> None:
        self._check_segment(segment_index)
        seg = self._segments[segment_index]
        if seg.type is new_type:
            return
        before = self.to_data()
        self._segments[segment_index] = Segment(seg.start, seg.end, new_type)
        self._emit(before)

    # ── Dragging ────────────────────────────────────────────

    def begin_drag(self, point_index: int) -> DragState:
        self._check_point(point_index)
        return DragState(point_index, self.to_data())

    def drag_to(self, state: DragState, x: float, y: float) -> bool:
        """Move the dragged point where allowed; returns whether anything moved.

        x must stay strictly between the neighbouring points (and inside
        ``(0, max_x)``); only interior points move vertically, inside
        ``(0, max_y)``.  Endpoints stay on their notes' pitches.
        """
        i = state.point_index
        point = self._points[i]
        moved = False

        lo = self._points[i - 1].x if i > 0 else 0.0
        hi = self._points[i + 1].x if i < len(self._points) - 1 else self._max_x
        if x > lo and (hi is None or x < hi) and x != point.x:
            point.x = x
            moved = True

        if self.can_merge(i) and 0 < y < self._max_y and y != point.y:
            point.y = y
            moved = True

        state.changed = state.changed or moved
        return moved

    def end_drag(self, state: DragState) -> ChangeEvent | None:
        if not state.changed:
            return None
        return self._emit(state.start_data)

    # ── Canonical data ──────────────────────────────────────

    def to_data(self, note_start_ms: int | None = None, row_height: float = ROW_HEIGHT) -> CurveData:
        """Normalise the chain into note-relative model units."""
        if note_start_ms is None:
            note_start_ms = self._note_start_ms
        sc = self._scaler
        end_y = sc.unscale_y(self._points[-1].y)
        widths = []
        heights = []
        for i, seg in enumerate(self._segments):
            a, b = self._points[seg.start], self._points[seg.end]
            widths.append(_canon(sc.unscale_x(b.x - a.x)))
            if i < len(self._segments) - 1:
                height = (end_y - sc.unscale_y(b.y)) / row_height * PITCHBEND_UNITS_PER_ROW
                heights.append(_canon(height))
        return CurveData(
            start_offset_ms=_canon(sc.unscale_pos(self._points[0].x) - note_start_ms),
            widths=tuple(widths),
            heights=tuple(heights),
            shapes=tuple(self.shapes),
        )

    # ── Internals ───────────────────────────────────────────

    def _relink(self, types: list[CurveType]) -> None:
        self._segments = [Segment(i, i + 1, t) for i, t in enumerate(types)]

    def _emit(self, before: CurveData) -> ChangeEvent:
        event = ChangeEvent(ChangeKind.CURVE_CHANGED, self._note_start_ms, before, self.to_data())
        log.debug("Curve at %d now has %d segments", self._note_start_ms, len(self._segments))
        if self._sink is not None:
            self._sink(event)
        return event

    def _check_segment(self, index: int) -> None:
        if not (0 <= index < len(self._segments)):
            raise IndexError(f"Segment index {index} out of range")

    def _check_point(self, index: int) -> None:
        if not (0 <= index < len(self._points)):
            raise IndexError(f"Control point index {index} out of range")


def _canon(value: float) -> float:
    # round() keeps -0.0; normalise it so equal data compares and prints alike
    return round(value, CURVE_PRECISION) + 0.0
