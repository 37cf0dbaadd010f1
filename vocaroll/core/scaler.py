"""Unit conversion between model space (ms, pitch rows) and display pixels.

Pure and stateless: a :class:`Scaler` is a frozen pair of zoom factors.
Model y grows downward like screen y, so row 0 (the lowest pitch) sits at
the bottom of the grid.
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import ROW_COUNT, ROW_HEIGHT


@dataclass(frozen=True, slots=True)
class Scaler:
    """Horizontal / vertical zoom between model units and pixels."""

    horizontal: float = 0.2  # px per ms
    vertical: float = 1.0    # px per model row unit

    def __post_init__(self) -> None:
        if self.horizontal <= 0 or self.vertical <= 0:
            raise ValueError("Scale factors must be positive")

    # ── Widths ──────────────────────────────────────────────

    def scale_x(self, ms: float) -> float:
        return ms * self.horizontal

    def unscale_x(self, px: float) -> float:
        return px / self.horizontal

    # ── Absolute positions ─────────────────────────────────

    def scale_pos(self, ms: float) -> float:
        return ms * self.horizontal

    def unscale_pos(self, px: float) -> float:
        return px / self.horizontal

    # ── Vertical ────────────────────────────────────────────

    def scale_y(self, units: float) -> float:
        return units * self.vertical

    def unscale_y(self, px: float) -> float:
        return px / self.vertical

    def row_to_y(self, row: int) -> float:
        """Pixel y of the centre line of pitch *row*."""
        return self.scale_y((ROW_COUNT - 1 - row) * ROW_HEIGHT + ROW_HEIGHT / 2)

    def y_to_row(self, px: float) -> int:
        """Pitch row whose band contains pixel *px* (not clamped)."""
        return ROW_COUNT - 1 - int(self.unscale_y(px) // ROW_HEIGHT)

    @property
    def grid_height(self) -> float:
        return self.scale_y(ROW_COUNT * ROW_HEIGHT)
