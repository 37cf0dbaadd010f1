"""Error taxonomy for timeline and curve edits."""

from __future__ import annotations


class VocarollError(Exception):
    """Base class for recoverable editing errors."""


class PositionOccupied(VocarollError):
    """A note already holds the requested timeline position."""

    def __init__(self, position: int) -> None:
        super().__init__(f"A note already exists at {position} ms")
        self.position = position


class ControlPointLimitExceeded(VocarollError):
    """Splitting would push a curve past its control point cap."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Curve already has the maximum of {limit} control points")
        self.limit = limit


class InvalidMerge(VocarollError):
    """Merge requested on a boundary control point."""

    def __init__(self, point_index: int) -> None:
        super().__init__(f"Control point {point_index} is a boundary point")
        self.point_index = point_index


class TimelineDesyncError(AssertionError):
    """The song model reported a note the local timeline does not hold."""

    def __init__(self, position: int, operation: str) -> None:
        super().__init__(
            f"{operation}: note at {position} ms present in song model but not in timeline"
        )
        self.position = position
        self.operation = operation
