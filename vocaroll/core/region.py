"""Closed-open millisecond intervals used for selection and refresh ranges."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RegionBounds:
    """Interval ``[min_ms, max_ms)``.

    ``INVALID`` (min > max) is the "nothing" region returned when no
    refresh is needed; it intersects nothing and merges as the identity.
    """

    min_ms: int
    max_ms: int

    @property
    def is_valid(self) -> bool:
        return self.min_ms <= self.max_ms

    @property
    def width(self) -> int:
        return max(0, self.max_ms - self.min_ms)

    def intersects(self, start_ms: int, end_ms: int) -> bool:
        """Whether ``[start_ms, end_ms)`` overlaps this region.

        A zero-length span counts when its start lies inside the region.
        """
        if not self.is_valid:
            return False
        if end_ms <= start_ms:
            return self.contains(start_ms)
        return start_ms < self.max_ms and end_ms > self.min_ms

    def contains(self, ms: int) -> bool:
        return self.min_ms <= ms < self.max_ms

    def merge_with(self, other: RegionBounds) -> RegionBounds:
        if not self.is_valid:
            return other
        if not other.is_valid:
            return self
        return RegionBounds(min(self.min_ms, other.min_ms), max(self.max_ms, other.max_ms))


RegionBounds.INVALID = RegionBounds(0, -1)  # type: ignore[attr-defined]
