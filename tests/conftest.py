"""Shared test fixtures."""

from __future__ import annotations

import pytest

from vocaroll.core.note_data import NoteData
from vocaroll.core.session import EditSession
from vocaroll.core.song_model import InMemorySongModel
from vocaroll.core.timeline import Note


@pytest.fixture(scope="session")
def qapp():
    """Provide a QCoreApplication instance for the entire test session."""
    from PyQt6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture
def song():
    """Empty in-memory song model in ADD mode."""
    return InMemorySongModel()


@pytest.fixture
def session(song):
    """Edit session bound to the ``song`` fixture, default settings."""
    return EditSession(song)


def make_note(position: int, duration: int = 480, row: int = 36, lyric: str = "a") -> Note:
    """Uncommitted note (default pitch C4)."""
    return Note(position=position, duration_ms=duration, row=row, lyric=lyric)


def make_data(position: int, duration: int = 480, pitch: str = "C4", lyric: str = "a") -> NoteData:
    return NoteData(position=position, duration=duration, pitch=pitch, lyric=lyric)
