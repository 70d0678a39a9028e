from datetime import datetime, timedelta, UTC

import pytest

from simplenotes.db import init_db, reset_engine
from simplenotes.models import Note


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "notes.sqlite"
    monkeypatch.setenv("SIMPLENOTES_DB_PATH", str(path))
    reset_engine()  # pick up new path
    init_db()
    yield path
    reset_engine()


def at(minutes: int) -> datetime:
    return datetime(2024, 1, 1, tzinfo=UTC) + timedelta(minutes=minutes)


def make_note(note_id: str, minutes: int = 0, **fields) -> Note:
    return Note(id=note_id, created_at=at(0), updated_at=at(minutes), **fields)


class Clock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start: int = 100):
        self.minutes = start

    def __call__(self) -> datetime:
        self.minutes += 1
        return at(self.minutes)


class FakeTimer:
    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        # like threading.Timer, a cancelled timer never runs
        if not self.cancelled:
            self.function()


class TimerFactory:
    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, interval, function):
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    def fire_all(self):
        for timer in list(self.timers):
            timer.fire()


class MemoryGateway:
    def __init__(self, notes=None, fail=False):
        self.stored = list(notes or [])
        self.saves: list[tuple] = []
        self.fail = fail

    def load(self):
        return list(self.stored)

    def save(self, notes):
        self.saves.append(tuple(notes))
        if self.fail:
            return False
        self.stored = list(notes)
        return True


@pytest.fixture
def timers():
    return TimerFactory()


@pytest.fixture
def clock():
    return Clock()
