"""
Test: Tracker write-through state, session logging and backup flows.
"""
import json
from datetime import date

import pytest
import requests

from iepminutes.errors import BackupFormatError, SessionValidationError, StudentValidationError
from iepminutes.schemas import Grade, Subject
from iepminutes.store import LocalStore
from iepminutes.sync import SyncClient
from iepminutes.tracker import Tracker, logs_in_period, parse_minutes

from conftest import FIXED_MS, RecordingBackend

SYNC_URL = "https://script.google.com/macros/s/abc/exec"


@pytest.fixture
def roster(tracker):
    a = tracker.add_student("Maya Rodriguez", "7th", {"Math": 15, "English": 30})
    b = tracker.add_student("Casey Smith", Grade.SEVENTH, {Subject.MATH: 40})
    return a, b


class TestStudents:
    def test_add_persists(self, tracker, store):
        stu = tracker.add_student("  Jordan Lee ", "8th", {"Math": 45})
        assert stu.name == "Jordan Lee"
        assert stu.weekly_goal(Subject.TASK_COMPLETION) == 0
        assert store.load_students() == [stu]

    def test_blank_name_rejected(self, tracker, store):
        with pytest.raises(StudentValidationError):
            tracker.add_student("   ", "6th")
        assert store.load_students() == []

    def test_ids_unique_even_if_generator_repeats(self, store, sync):
        seq = iter(["dup", "dup", "other"])
        tracker = Tracker(store, sync=sync, new_id=lambda: next(seq))
        first = tracker.add_student("A", "6th")
        second = tracker.add_student("B", "6th")
        assert (first.id, second.id) == ("dup", "other")

    def test_update_keeps_id_and_other_goals(self, tracker, roster, store):
        maya, _ = roster
        updated = tracker.update_student(maya.id, name="Maya R.", goals={Subject.MATH: 20})
        assert updated.id == maya.id
        assert updated.weekly_goal(Subject.MATH) == 20
        assert updated.weekly_goal(Subject.ENGLISH) == 30
        assert store.load_students()[0].name == "Maya R."

    def test_update_unknown_student(self, tracker):
        with pytest.raises(StudentValidationError):
            tracker.update_student("nope", name="X")

    def test_grade_listing_sorted_by_name(self, tracker, roster):
        assert [s.name for s in tracker.students_in_grade("7th")] == ["Casey Smith", "Maya Rodriguez"]
        assert tracker.students_in_grade(Grade.SIXTH) == []

    def test_dangling_student_name(self, tracker):
        assert tracker.student_name("missing") == "Unknown"


class TestLogSession:
    def test_one_entry_per_student(self, tracker, roster, store):
        maya, casey = roster
        entries = tracker.log_session([maya.id, casey.id], "Math", "25", date(2025, 1, 6),
                                      staff_name="Ms. Chen", notes="  group work ")
        assert [e.student_id for e in entries] == [maya.id, casey.id]
        assert len({e.id for e in entries}) == 2
        for e in entries:
            assert (e.subject, e.minutes, e.date, e.staff_name, e.notes, e.timestamp) == (
                Subject.MATH, 25, date(2025, 1, 6), "Ms. Chen", "group work", FIXED_MS,
            )
        assert store.load_logs() == entries
        assert store.load_staff_name() == "Ms. Chen"

    def test_new_logs_go_to_front(self, tracker, roster):
        maya, _ = roster
        first = tracker.log_session([maya.id], "Math", 10, "2025-01-06", staff_name="A")
        second = tracker.log_session([maya.id], "English", 10, "2025-01-05", staff_name="B")
        assert tracker.logs == second + first

    def test_blank_notes_stored_as_none(self, tracker, roster):
        entry = tracker.log_session([roster[0].id], "Math", 5, staff_name="A", notes="  ")[0]
        assert entry.notes is None
        assert entry.date == date.today()

    def test_validation_collects_every_error(self, tracker, store):
        with pytest.raises(SessionValidationError) as exc:
            tracker.log_session([], None, "0", staff_name=" ")
        assert exc.value.errors == [
            "Select a subject.",
            "Select a staff member.",
            "Select at least one student.",
            "Minutes must be greater than zero.",
        ]
        assert store.load_logs() == []
        assert tracker.logs == []

    @pytest.mark.parametrize("minutes", [0, -5, "", "abc", None])
    def test_non_positive_minutes_rejected(self, tracker, roster, minutes):
        with pytest.raises(SessionValidationError):
            tracker.log_session([roster[0].id], "Math", minutes, staff_name="A")

    def test_unknown_subject_rejected(self, tracker, roster):
        with pytest.raises(SessionValidationError) as exc:
            tracker.log_session([roster[0].id], "Science", 10, staff_name="A")
        assert exc.value.errors == ["Select a subject."]

    def test_pushes_new_entries(self, tracker, roster, web):
        tracker.set_sync_url(SYNC_URL)
        entries = tracker.log_session([roster[0].id], "Math", 10, staff_name="A")
        assert web.pushed == [(SYNC_URL, entries)]

    def test_no_push_without_url(self, tracker, roster, web):
        tracker.log_session([roster[0].id], "Math", 10, staff_name="A")
        assert web.pushed == []

    def test_sync_failure_does_not_block_local_save(self, store, ids):
        broken = SyncClient(web=RecordingBackend(error=requests.ConnectionError("down")),
                            background=False)
        tracker = Tracker(store, sync=broken, new_id=ids)
        tracker.set_sync_url(SYNC_URL)
        stu = tracker.add_student("A", "6th")
        entries = tracker.log_session([stu.id], "Math", 10, staff_name="A")
        assert store.load_logs() == entries


class TestParsing:
    @pytest.mark.parametrize("raw,expected", [
        ("50", 50), (" 7 ", 7), (12, 12), ("", 0), (None, 0),
        ("45.5", 45), ("30 min", 30), (" 20m", 20), (4.9, 4), ("min", 0), ("-5", -5),
    ])
    def test_parse_minutes(self, raw, expected):
        assert parse_minutes(raw) == expected

    @pytest.mark.parametrize("raw,expected", [("45.5", 45), ("30 min", 30), (" 20m", 20)])
    def test_session_minutes_take_leading_number(self, tracker, roster, raw, expected):
        entries = tracker.log_session([roster[0].id], Subject.MATH, raw, date(2025, 1, 6), "Ms. Chen")
        assert [e.minutes for e in entries] == [expected]

    def test_logs_in_period(self, mixed_logs):
        assert [l.id for l in logs_in_period(mixed_logs, "January 2025")] == ["l1", "l2", "l3", "l4"]
        assert [l.id for l in logs_in_period(mixed_logs, "January 2025", date(2025, 1, 6))] == ["l1", "l2", "l4"]


class TestSettings:
    def test_sync_url_persisted(self, tracker, store):
        tracker.set_sync_url(f"  {SYNC_URL} ")
        assert tracker.sync_url == SYNC_URL
        assert store.load_sync_url() == SYNC_URL

    def test_rename_staff_keeps_colors(self, tracker, store):
        colors = [m.color for m in tracker.staff]
        tracker.rename_staff(["Coach K", "", "Ms. Lee"])
        names = [m.name for m in store.load_staff()]
        assert names[:3] == ["Coach K", "Mr. Thompson", "Ms. Lee"]
        assert len(names) == 5
        assert [m.color for m in tracker.staff] == colors

    def test_state_reloads_from_store(self, tracker, roster, store, sync):
        tracker.log_session([roster[0].id], "Math", 10, staff_name="A")
        again = Tracker(store, sync=sync)
        assert again.students == tracker.students
        assert again.logs == tracker.logs
        assert again.last_staff_name == "A"


class TestPull:
    def test_pull_replaces_logs(self, store, ids, mixed_logs, scenario_logs):
        sync = SyncClient(web=RecordingBackend(pulled=scenario_logs), background=False)
        store.save_logs(mixed_logs)
        tracker = Tracker(store, sync=sync, new_id=ids)
        tracker.set_sync_url(SYNC_URL)
        assert tracker.pull_logs() is True
        assert tracker.logs == scenario_logs
        assert store.load_logs() == scenario_logs

    def test_failed_pull_keeps_local(self, store, ids, mixed_logs):
        sync = SyncClient(web=RecordingBackend(error=requests.Timeout("slow")), background=False)
        store.save_logs(mixed_logs)
        tracker = Tracker(store, sync=sync, new_id=ids)
        tracker.set_sync_url(SYNC_URL)
        assert tracker.pull_logs() is False
        assert tracker.logs == mixed_logs

    def test_pull_without_url(self, tracker):
        assert tracker.pull_logs() is False


class TestBackupFlows:
    def test_export_then_import_reproduces_state(self, tracker, roster, tmp_path, sync):
        tracker.log_session([s.id for s in roster], "English", 30, "2025-01-07",
                            staff_name="Ms. Chen", notes="essay")
        exported = tracker.export_backup()
        assert json.loads(exported)["timestamp"] == FIXED_MS

        other = Tracker(LocalStore(tmp_path / "other"), sync=sync)
        other.import_backup(exported)
        assert other.students == tracker.students
        assert other.logs == tracker.logs
        assert other.store.load_logs() == tracker.logs

    def test_bad_import_leaves_state(self, tracker, roster):
        before = list(tracker.students)
        with pytest.raises(BackupFormatError):
            tracker.import_backup('{"logs": []}')
        assert tracker.students == before

    def test_export_csv_period(self, tracker, roster):
        maya, _ = roster
        tracker.log_session([maya.id], "Math", 10, "2025-01-06", staff_name="A")
        tracker.log_session([maya.id], "Math", 20, "2025-02-03", staff_name="A")
        lines = tracker.export_csv("January 2025").splitlines()
        assert len(lines) == 2
        assert '"Maya Rodriguez","7th","Math",10' in lines[1]

    def test_factory_reset(self, tracker, roster, store):
        tracker.set_sync_url(SYNC_URL)
        tracker.log_session([roster[0].id], "Math", 10, staff_name="A")
        tracker.factory_reset()
        assert tracker.students == [] and tracker.logs == []
        assert store.load_students() == [] and store.load_logs() == []
        assert store.load_sync_url() == SYNC_URL
