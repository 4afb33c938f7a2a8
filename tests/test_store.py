"""
Test: local JSON storage.
"""
import json

import pytest

from iepminutes.errors import StoreError
from iepminutes.schemas import DEFAULT_STAFF, StaffMember
from iepminutes.store import LOGS_FILE, STUDENTS_FILE, LocalStore


class TestDefaults:
    def test_empty_directory(self, store):
        assert store.load_students() == []
        assert store.load_logs() == []
        assert store.load_sync_url() == ""
        assert store.load_staff_name() == ""

    def test_staff_seeded(self, store):
        assert [m.name for m in store.load_staff()] == [m.name for m in DEFAULT_STAFF]

    def test_creates_data_dir(self, tmp_path):
        LocalStore(tmp_path / "a" / "b")
        assert (tmp_path / "a" / "b").is_dir()


class TestRoundTrip:
    def test_students(self, store, student_x):
        store.save_students([student_x])
        assert store.load_students() == [student_x]

    def test_logs_keep_order(self, store, scenario_logs):
        store.save_logs(list(reversed(scenario_logs)))
        assert [log.id for log in store.load_logs()] == ["l2", "l1"]

    def test_file_is_camel_case_json(self, store, scenario_logs):
        store.save_logs(scenario_logs)
        raw = json.loads((store.data_dir / LOGS_FILE).read_text())
        assert raw[0]["studentId"] == "x"
        assert raw[0]["date"] == "2025-01-06"

    def test_sync_url_trimmed(self, store):
        store.save_sync_url("  https://example.org/exec \n")
        assert store.load_sync_url() == "https://example.org/exec"

    def test_staff(self, store):
        store.save_staff([StaffMember(name="Coach K", color="#000000")])
        assert store.load_staff() == [StaffMember(name="Coach K", color="#000000")]

    def test_new_store_sees_saved_state(self, store, student_x):
        store.save_students([student_x])
        again = LocalStore(store.data_dir)
        assert again.load_students()[0].id == "x"


class TestErrors:
    def test_corrupt_file_raises(self, store):
        (store.data_dir / STUDENTS_FILE).write_text("{not json")
        with pytest.raises(StoreError):
            store.load_students()

    def test_invalid_record_raises(self, store):
        (store.data_dir / LOGS_FILE).write_text(json.dumps([{"id": "a"}]))
        with pytest.raises(StoreError):
            store.load_logs()


class TestClear:
    def test_clear_keeps_settings(self, store, student_x, scenario_logs):
        store.save_students([student_x])
        store.save_logs(scenario_logs)
        store.save_sync_url("https://example.org/exec")
        store.clear()
        assert store.load_students() == []
        assert store.load_logs() == []
        assert store.load_sync_url() == "https://example.org/exec"
