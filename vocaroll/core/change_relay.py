"""Qt bridge for change events.

The model layer is Qt-free; GUI code that wants change events delivered on
the GUI thread wraps them in a ``ChangeRelay`` whose ``changed`` signal
carries each :class:`~.events.ChangeEvent`.  The relay instance itself is a
valid ``ChangeSink``.
"""

from __future__ import annotations

import logging

log = logging.getLogger(__name__)

# Resolved on first use so importing the core never pulls in Qt.
_ChangeRelayClass = None


def _ensure_qt_classes():
    """Define Qt-dependent classes on first use."""
    global _ChangeRelayClass

    if _ChangeRelayClass is not None:
        return

    from PyQt6.QtCore import QObject, pyqtSignal

    class ChangeRelay(QObject):
        """Re-emits change events as a Qt signal."""

        changed = pyqtSignal(object)
        timeline_emptied = pyqtSignal()

        def __init__(self, parent=None) -> None:
            super().__init__(parent)
            self._forwarded = 0

        @property
        def forwarded(self) -> int:
            return self._forwarded

        def __call__(self, event) -> None:
            from .events import ChangeKind

            self._forwarded += 1
            log.debug("Relaying %s at %d", event.kind.value, event.position)
            self.changed.emit(event)
            if event.kind is ChangeKind.TIMELINE_EMPTY:
                self.timeline_emptied.emit()

    _ChangeRelayClass = ChangeRelay


def get_change_relay_class():
    """Get the ChangeRelay class (imports PyQt6)."""
    _ensure_qt_classes()
    return _ChangeRelayClass


def create_change_relay(parent=None):
    """Create a ChangeRelay usable as an EditSession change sink."""
    cls = get_change_relay_class()
    return cls(parent)
