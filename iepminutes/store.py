"""
Local durable storage for students, logs and settings.

One file per key inside the data directory:
  • iep_students.json  : JSON array of Student
  • iep_logs.json      : JSON array of LogEntry, most recent first
  • iep_staff.json     : JSON array of StaffMember (team roster)
  • iep_sync_url.txt   : sync endpoint URL
  • iep_staff_name.txt : staff name last used on the log form

A missing file means the empty/default value.
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from iepminutes.errors import StoreError
from iepminutes.schemas import DEFAULT_STAFF, LogEntry, StaffMember, Student

logger = logging.getLogger(__name__)

STUDENTS_FILE   = "iep_students.json"
LOGS_FILE       = "iep_logs.json"
STAFF_FILE      = "iep_staff.json"
SYNC_URL_FILE   = "iep_sync_url.txt"
STAFF_NAME_FILE = "iep_staff_name.txt"


class LocalStore:
    """Reads and writes tracker state as JSON files under ``data_dir``."""

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    # ── Generic helpers ────────────────────────────────────────────────────────
    def _path(self, name: str) -> Path:
        return self.data_dir / name

    def _read_list(self, name: str, model):
        path = self._path(name)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            return [model.model_validate(item) for item in raw]
        except (OSError, ValueError, TypeError, ValidationError) as e:
            raise StoreError(f"Could not read {path}: {e}") from e

    def _write_list(self, name: str, items):
        path = self._path(name)
        tmp  = path.with_suffix(path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump([item.to_json_dict() for item in items], f, indent=2)
        tmp.replace(path)

    def _read_text(self, name: str) -> str:
        path = self._path(name)
        if not path.exists():
            return ""
        return path.read_text(encoding="utf-8").strip()

    def _write_text(self, name: str, value: str):
        self._path(name).write_text(value or "", encoding="utf-8")

    # ── Students ───────────────────────────────────────────────────────────────
    def load_students(self) -> list[Student]:
        return self._read_list(STUDENTS_FILE, Student) or []

    def save_students(self, students: list[Student]):
        self._write_list(STUDENTS_FILE, students)

    # ── Logs ───────────────────────────────────────────────────────────────────
    def load_logs(self) -> list[LogEntry]:
        return self._read_list(LOGS_FILE, LogEntry) or []

    def save_logs(self, logs: list[LogEntry]):
        self._write_list(LOGS_FILE, logs)

    # ── Staff ──────────────────────────────────────────────────────────────────
    def load_staff(self) -> list[StaffMember]:
        staff = self._read_list(STAFF_FILE, StaffMember)
        if not staff:
            return [m.model_copy() for m in DEFAULT_STAFF]
        return staff

    def save_staff(self, staff: list[StaffMember]):
        self._write_list(STAFF_FILE, staff)

    # ── Settings ───────────────────────────────────────────────────────────────
    def load_sync_url(self) -> str:
        return self._read_text(SYNC_URL_FILE)

    def save_sync_url(self, url: str):
        self._write_text(SYNC_URL_FILE, url.strip() if url else "")

    def load_staff_name(self) -> str:
        return self._read_text(STAFF_NAME_FILE)

    def save_staff_name(self, name: str):
        self._write_text(STAFF_NAME_FILE, name)

    def clear(self):
        """Remove stored students and logs; settings are kept."""
        for name in (STUDENTS_FILE, LOGS_FILE):
            path = self._path(name)
            if path.exists():
                path.unlink()
        logger.info("Cleared students and logs in %s", self.data_dir)
