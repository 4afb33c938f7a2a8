"""
Shared fixtures: a store in a temp directory, deterministic ids and clock,
and a sync client whose backends record calls instead of touching the network.
"""
import itertools
from datetime import date

import pytest

from iepminutes.schemas import Grade, LogEntry, Student, Subject
from iepminutes.store import LocalStore
from iepminutes.sync import SyncClient
from iepminutes.tracker import Tracker

FIXED_MS = 1736150400000  # 2025-01-06T08:00:00Z


class RecordingBackend:
    """Stands in for WebAppSync/SheetsSync."""

    def __init__(self, pulled=None, error=None):
        self.pushed = []
        self.pulled = pulled
        self.error  = error

    def push_logs(self, url, logs):
        if self.error:
            raise self.error
        self.pushed.append((url, list(logs)))

    def pull_logs(self, url):
        if self.error:
            raise self.error
        return self.pulled


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "data")


@pytest.fixture
def ids():
    counter = itertools.count(1)
    return lambda: f"id{next(counter)}"


@pytest.fixture
def web():
    return RecordingBackend()


@pytest.fixture
def sync(web):
    return SyncClient(web=web, background=False)


@pytest.fixture
def tracker(store, sync, ids):
    return Tracker(store, sync=sync, new_id=ids, clock=lambda: FIXED_MS)


@pytest.fixture
def student_x():
    return Student(
        id="x",
        name="Alex Thompson",
        grade=Grade.SIXTH,
        subject_goals={Subject.MATH: 30, Subject.ENGLISH: 20},
    )


@pytest.fixture
def scenario_logs():
    return [
        LogEntry(id="l1", student_id="x", subject=Subject.MATH, minutes=20,
                 date=date(2025, 1, 6), staff_name="Ms. Rivera", timestamp=1),
        LogEntry(id="l2", student_id="x", subject=Subject.MATH, minutes=15,
                 date=date(2025, 1, 8), staff_name="Mr. Davis", notes="fractions", timestamp=2),
    ]


@pytest.fixture
def mixed_logs(scenario_logs):
    return scenario_logs + [
        LogEntry(id="l3", student_id="x", subject=Subject.ENGLISH, minutes=25,
                 date=date(2025, 1, 14), staff_name="Ms. Chen", timestamp=3),
        LogEntry(id="l4", student_id="y", subject=Subject.MATH, minutes=40,
                 date=date(2025, 1, 7), staff_name="", timestamp=4),
        LogEntry(id="l5", student_id="x", subject=Subject.MATH, minutes=50,
                 date=date(2025, 2, 3), staff_name="Ms. Rivera", timestamp=5),
        LogEntry(id="l6", student_id="x", subject=Subject.MATH, minutes=10,
                 date=date(2024, 12, 31), staff_name="Ms. Rivera", timestamp=6),
    ]
