"""Conversion between pitch names ("C4", "F#5") and piano-roll rows."""

from __future__ import annotations

from .constants import NOTES_PER_OCTAVE, OCTAVE_MAX, OCTAVE_MIN, ROW_COUNT

PITCHES: tuple[str, ...] = (
    "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B",
)
REVERSE_PITCHES: tuple[str, ...] = tuple(reversed(PITCHES))

# Flats are accepted on input and normalised to sharps
_FLATS = {
    "Db": "C#",
    "Eb": "D#",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
}


def row_num_to_pitch(row: int) -> str:
    """Row 0 → "C1", row 83 → "B7"."""
    if not (0 <= row < ROW_COUNT):
        raise ValueError(f"Pitch row out of range: {row}")
    octave, index = divmod(row, NOTES_PER_OCTAVE)
    return f"{PITCHES[index]}{octave + OCTAVE_MIN}"


def pitch_to_row_num(pitch: str) -> int:
    """Inverse of :func:`row_num_to_pitch`.

    Raises ValueError for names that are malformed or outside C1..B7.
    """
    name = pitch.strip()
    i = len(name)
    while i > 0 and name[i - 1].isdigit():
        i -= 1
    letter, octave_str = name[:i], name[i:]
    if not letter or not octave_str:
        raise ValueError(f"Malformed pitch name: {pitch!r}")
    letter = letter[0].upper() + letter[1:]
    letter = _FLATS.get(letter, letter)
    if letter not in PITCHES:
        raise ValueError(f"Unknown pitch class in {pitch!r}")
    octave = int(octave_str)
    if not (OCTAVE_MIN <= octave <= OCTAVE_MAX):
        raise ValueError(f"Octave out of range in {pitch!r}")
    return (octave - OCTAVE_MIN) * NOTES_PER_OCTAVE + PITCHES.index(letter)


def is_black_key(row: int) -> bool:
    return PITCHES[row % NOTES_PER_OCTAVE].endswith("#")


def clamp_row(row: int) -> int:
    return max(0, min(ROW_COUNT - 1, row))
