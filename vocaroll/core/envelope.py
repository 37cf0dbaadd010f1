"""Envelope geometry: maps EnvelopeData onto seven outline anchor points.

Pure functions, no state.  Amplitudes use a 0–200 display scale where
100 is the baseline the outline starts and ends on, and a stored height
``h`` is drawn at ``100 - h / 2`` (louder is higher, i.e. smaller y).
"""

from __future__ import annotations

from .note_data import EnvelopeData
from .region import RegionBounds
from .scaler import Scaler

# Baseline of the 0–200 amplitude scale.
ENVELOPE_BASELINE = 100.0

Point = tuple[float, float]


def _display_height(stored: float) -> float:
    return ENVELOPE_BASELINE - stored / 2.0


def envelope_span(note_start_ms: float, envelope: EnvelopeData) -> tuple[float, float]:
    """Start and end (ms) of the envelope: preutterance lead-in, then length."""
    preutter = envelope.preutterance or 0.0
    length = envelope.length or 0.0
    start = note_start_ms - preutter
    return start, start + length


def envelope_outline(
    note_start_ms: float,
    envelope: EnvelopeData,
    scaler: Scaler | None = None,
) -> tuple[Point, ...]:
    """Seven ``(time, amplitude)`` anchors forming the envelope outline.

    Order: lead-in on the baseline, p1, p1+p2, p1+p2+p5 (attack),
    end-p4-p3, end-p4 (release), return to the baseline.  With a *scaler*
    the time axis is converted to pixels; amplitude is never scaled.
    """
    start, end = envelope_span(note_start_ms, envelope)
    p1, p2, p3, p4, p5 = envelope.widths
    v1, v2, v3, v4, v5 = (_display_height(h) for h in envelope.heights)
    xs = (
        start,
        start + p1,
        start + p1 + p2,
        start + p1 + p2 + p5,
        end - p4 - p3,
        end - p4,
        end,
    )
    if scaler is not None:
        xs = tuple(scaler.scale_pos(x) for x in xs)
    ys = (ENVELOPE_BASELINE, v1, v2, v5, v3, v4, ENVELOPE_BASELINE)
    return tuple(zip(xs, ys))


def envelope_editor_outline(
    editor_width: float,
    editor_height: float,
    envelope: EnvelopeData,
    scaler: Scaler | None = None,
) -> tuple[Point, ...]:
    """Outline for the standalone envelope-shape editor.

    Same control heights, but mapped into a fixed ``width x height`` frame:
    the outline runs from ``(0, height)`` to ``(width, height)`` and the
    release points are measured back from the right edge.
    """
    if editor_height <= 0:
        raise ValueError("Editor height must be positive")
    scaler = scaler or Scaler()
    p1, p2, p3, p4, p5 = envelope.widths
    ratio = 200.0 / editor_height
    v1, v2, v3, v4, v5 = ((editor_height - h) / ratio for h in envelope.heights)
    return (
        (0.0, editor_height),
        (scaler.scale_x(p1), v1),
        (scaler.scale_x(p1 + p2), v2),
        (scaler.scale_x(p1 + p2 + p5), v5),
        (editor_width - scaler.scale_x(p4 + p3), v3),
        (editor_width - scaler.scale_x(p4), v4),
        (editor_width, editor_height),
    )


def envelope_bounds(note_start_ms: int, envelope: EnvelopeData) -> RegionBounds:
    """Millisecond region covered by the envelope (rounded outward)."""
    start, end = envelope_span(note_start_ms, envelope)
    return RegionBounds(int(start // 1), -int(-end // 1))
