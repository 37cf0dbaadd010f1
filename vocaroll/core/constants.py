"""Grid, pitch, and editing limits shared by the timeline model."""

# Pitch rows: 7 octaves (C1..B7), row 0 is the lowest pitch.
OCTAVE_MIN = 1
OCTAVE_MAX = 7
NOTES_PER_OCTAVE = 12
ROW_COUNT = (OCTAVE_MAX - OCTAVE_MIN + 1) * NOTES_PER_OCTAVE  # 84

# Model-space size of one pitch row (vertical units before scaling).
ROW_HEIGHT = 20

# Milliseconds covered by one grid column; a measure is 4 columns.
COL_WIDTH = 480
COLS_PER_MEASURE = 4
MEASURE_WIDTH = COL_WIDTH * COLS_PER_MEASURE

# Measures shown for an empty track / kept after the last note.
DEFAULT_MEASURES = 4

# Duration sentinel: "extend to the next note or an unbounded tail".
MAX_DURATION = 2**31 - 1

# Portamento control point limit (both endpoints included).
MAX_CONTROL_POINTS = 50

# Pitchbend heights are stored in tenths of a semitone.
PITCHBEND_UNITS_PER_ROW = 10

# Rounding applied when canonicalising curve data.
CURVE_PRECISION = 3
