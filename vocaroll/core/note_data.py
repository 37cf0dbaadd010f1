"""Immutable value types exchanged with the song model.

Pure Python, no Qt dependency.  Envelope and curve payloads are replaced
wholesale on every edit, never patched field by field.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum, auto


class CurveType(Enum):
    """Portamento segment shape; values are the UTAU shape codes."""

    S = ""
    J = "j"
    R = "r"
    LINEAR = "s"

    @classmethod
    def from_code(cls, code: str) -> CurveType:
        try:
            return cls(code.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown curve shape code: {code!r}") from None


class EditMode(IntEnum):
    """Editor mode reported by the song model; only ADD creates notes on click."""

    ADD = auto()
    EDIT = auto()


_ENVELOPE_POINTS = 5


@dataclass(frozen=True, slots=True)
class EnvelopeData:
    """Five ramp widths (ms) and heights (0–200) plus optional overrides.

    Widths follow UTAU's ``p1, p2, p3, p4, p5`` order and heights
    ``v1 .. v5``: p1/p2/p5 shape the attack, p3/p4 the release.
    """

    widths: tuple[float, ...]
    heights: tuple[float, ...]
    preutterance: float | None = None
    length: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "widths", tuple(float(w) for w in self.widths))
        object.__setattr__(self, "heights", tuple(float(h) for h in self.heights))
        if len(self.widths) != _ENVELOPE_POINTS or len(self.heights) != _ENVELOPE_POINTS:
            raise ValueError("Envelope needs exactly 5 widths and 5 heights")
        if any(h < 0 or h > 200 for h in self.heights):
            raise ValueError(f"Envelope heights must lie in 0..200: {self.heights}")

    def with_timing(self, preutterance: float, length: float) -> EnvelopeData:
        return EnvelopeData(self.widths, self.heights, preutterance, length)

    @classmethod
    def default(cls) -> EnvelopeData:
        # UTAU's stock envelope "0,5,35,0,100,100,0"
        return cls(
            widths=(0.0, 5.0, 35.0, 0.0, 0.0),
            heights=(0.0, 100.0, 100.0, 0.0, 100.0),
        )


@dataclass(frozen=True, slots=True)
class CurveData:
    """Canonical serialised portamento, relative to its owning note.

    ``start_offset_ms`` is measured from the note start (usually negative).
    ``heights`` hold the interior control points in tenths of a semitone,
    relative to the final (note) pitch; the first point always sits on the
    previous note's pitch and the last on this note's pitch.
    """

    start_offset_ms: float
    widths: tuple[float, ...]
    heights: tuple[float, ...]
    shapes: tuple[CurveType, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "widths", tuple(float(w) for w in self.widths))
        object.__setattr__(self, "heights", tuple(float(h) for h in self.heights))
        object.__setattr__(self, "shapes", tuple(
            s if isinstance(s, CurveType) else CurveType.from_code(s) for s in self.shapes
        ))
        if not self.shapes:
            raise ValueError("Curve needs at least one segment")
        if len(self.widths) != len(self.shapes):
            raise ValueError("Curve needs one width per segment")
        if len(self.heights) != len(self.shapes) - 1:
            raise ValueError("Curve needs one height per interior control point")
        if any(w < 0 for w in self.widths):
            raise ValueError(f"Curve widths must be non-negative: {self.widths}")

    @property
    def segment_count(self) -> int:
        return len(self.shapes)

    @property
    def total_width(self) -> float:
        return sum(self.widths)

    @classmethod
    def default(cls, start_offset_ms: float = -25.0, width_ms: float = 50.0) -> CurveData:
        """Single S-shaped transition straddling the note start."""
        return cls(
            start_offset_ms=start_offset_ms,
            widths=(width_ms,),
            heights=(),
            shapes=(CurveType.S,),
        )


@dataclass(frozen=True, slots=True)
class NoteData:
    """Boundary representation of a note: what the song model stores."""

    position: int
    duration: int
    pitch: str          # e.g. "C4"
    lyric: str
    envelope: EnvelopeData | None = None
    pitchbend: CurveData | None = None


@dataclass(frozen=True, slots=True)
class NoteUpdateData:
    """Derived per-note state returned by the song model after a mutation."""

    position: int
    true_lyric: str
    envelope: EnvelopeData
    pitchbend: CurveData


@dataclass(frozen=True, slots=True)
class MutateResponse:
    """Song model response: affected notes plus their outer neighbours."""

    notes: tuple[NoteUpdateData, ...] = ()
    prev: NoteUpdateData | None = None
    next: NoteUpdateData | None = None
    removed: tuple[NoteData, ...] = ()
