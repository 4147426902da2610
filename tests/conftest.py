"""Shared test doubles."""

import pytest


class RecordingLogger:
    """Collects log calls as (level, event, fields) tuples."""

    def __init__(self):
        self.records = []

    def debug(self, event, **fields):
        self.records.append(("debug", event, fields))

    def info(self, event, **fields):
        self.records.append(("info", event, fields))

    def warning(self, event, **fields):
        self.records.append(("warning", event, fields))

    def error(self, event, **fields):
        self.records.append(("error", event, fields))

    def events(self, level=None):
        return [event for lvl, event, _ in self.records if level is None or lvl == level]


@pytest.fixture
def log() -> RecordingLogger:
    """Logger double recording every call."""
    return RecordingLogger()
